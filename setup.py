"""Install the kvsession package."""

from setuptools import setup, find_packages

setup(
    name='kvsession',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "redis>=4.1",
        "flask>=3.0",
        "werkzeug>=3.0",
        "cryptography",
        "pytz",
        "python-json-logger>=2.0",
        "cachetools>=5.3"
    ],
    extras_require={
        'fake': ["fakeredis>=2.0"],
        'test': ["pytest", "hypothesis", "fakeredis>=2.0"]
    },
    zip_safe=False
)
