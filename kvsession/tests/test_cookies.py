"""Tests for :mod:`kvsession.cookies`."""

from datetime import datetime, timedelta
from unittest import TestCase, mock

from pytz import UTC

from .. import cookies
from ..domain import SameSite, SessionOptions


class TestSessionCookie(TestCase):
    """Cookie instructions render as ``Set-Cookie`` headers."""

    def test_live_cookie(self):
        """A live cookie carries its value and lifetime."""
        options = SessionOptions(path='/app', domain='example.com',
                                 max_age=3600, secure=True,
                                 same_site=SameSite.LAX)
        cookie = cookies.new_cookie('sid', 'abc123', options)
        self.assertFalse(cookie.expired)
        self.assertEqual(cookie.max_age, 3600)
        self.assertAlmostEqual(
            cookie.expires.timestamp(),
            (datetime.now(tz=UTC) + timedelta(seconds=3600)).timestamp(),
            delta=5
        )

        header = cookie.to_header()
        self.assertTrue(header.startswith('sid=abc123;'))
        self.assertIn('Max-Age=3600', header)
        self.assertIn('Path=/app', header)
        self.assertIn('Domain=example.com', header)
        self.assertIn('Secure', header)
        self.assertIn('HttpOnly', header)
        self.assertIn('SameSite=Lax', header)

    def test_options_are_copied(self):
        """Changing the options later does not change the cookie."""
        options = SessionOptions(max_age=3600)
        cookie = cookies.new_cookie('sid', 'abc123', options)
        options.max_age = -1
        self.assertFalse(cookie.expired)

    def test_expired_cookie(self):
        """An expired cookie clears the value on the client."""
        options = SessionOptions(max_age=3600, http_only=False)
        cookie = cookies.expired_cookie('sid', options)
        self.assertTrue(cookie.expired)
        self.assertEqual(cookie.value, '')
        self.assertEqual(cookie.max_age, 0)
        self.assertEqual(cookie.expires, cookies.EPOCH)
        self.assertEqual(options.max_age, 3600, 'Options are not changed')

        header = cookie.to_header()
        self.assertTrue(header.startswith('sid=;'))
        self.assertIn('Max-Age=0', header)
        self.assertIn('Expires=Thu, 01 Jan 1970 00:00:00 GMT', header)
        self.assertNotIn('HttpOnly', header)
        self.assertNotIn('SameSite', header)

    def test_apply(self):
        """Cookies are set on a response with the same attributes."""
        response = mock.MagicMock()
        options = SessionOptions(max_age=60, same_site=SameSite.STRICT)
        cookies.new_cookie('sid', 'abc', options).apply(response)
        args, kwargs = response.set_cookie.call_args
        self.assertEqual(args, ('sid', 'abc'))
        self.assertEqual(kwargs['max_age'], 60)
        self.assertEqual(kwargs['path'], '/')
        self.assertIsNone(kwargs['domain'])
        self.assertFalse(kwargs['secure'])
        self.assertTrue(kwargs['httponly'])
        self.assertEqual(kwargs['samesite'], 'Strict')
