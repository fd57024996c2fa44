"""Tests for :mod:`kvsession.backends`."""

from unittest import TestCase, mock

import fakeredis
from redis.exceptions import ConnectionError, ResponseError

from .. import backends
from ..exceptions import BackendError, NotFound


class TestRedisBackend(TestCase):
    """The Redis backend maps the key-value contract onto Redis commands."""

    def setUp(self):
        self.client = fakeredis.FakeRedis()
        self.backend = backends.RedisBackend(self.client)

    def test_set_get(self):
        """Values are stored with a TTL."""
        self.backend.set('session:foo', b'data', 120)
        self.assertEqual(self.backend.get('session:foo'), b'data')
        self.assertGreater(self.client.ttl('session:foo'), 100)
        self.assertLessEqual(self.client.ttl('session:foo'), 120)

    def test_not_found(self):
        """A missing key raises NotFound."""
        with self.assertRaises(NotFound):
            self.backend.get('session:nope')

    def test_delete(self):
        """Deleting removes the key, and deleting again is harmless."""
        self.backend.set('session:foo', b'data', 120)
        self.backend.delete('session:foo')
        self.assertEqual(self.client.exists('session:foo'), 0)
        self.backend.delete('session:foo')

    def test_ping(self):
        """A reachable server passes the ping check."""
        self.backend.ping()


class TestRedisBackendFailures(TestCase):
    """Redis errors are reported as BackendError, not NotFound."""

    def setUp(self):
        self.client = mock.MagicMock()
        self.backend = backends.RedisBackend(self.client)

    def test_get_connection_failed(self):
        """A connection failure on get is a BackendError."""
        self.client.get.side_effect = ConnectionError
        with self.assertRaises(BackendError) as ctx:
            self.backend.get('session:foo')
        self.assertNotIsInstance(ctx.exception, NotFound)

    def test_set_failed(self):
        """Any Redis error on set is a BackendError."""
        self.client.set.side_effect = ResponseError('OOM')
        with self.assertRaises(BackendError):
            self.backend.set('session:foo', b'data', 10)

    def test_delete_failed(self):
        """A connection failure on delete is a BackendError."""
        self.client.delete.side_effect = ConnectionError
        with self.assertRaises(BackendError):
            self.backend.delete('session:foo')

    def test_ping_failed(self):
        """An unreachable server fails the ping check."""
        self.client.ping.side_effect = ConnectionError
        with self.assertRaises(BackendError):
            self.backend.ping()

    def test_set_uses_expiry(self):
        """The TTL is passed as the EX option of SET."""
        self.backend.set('session:foo', b'data', 30)
        self.client.set.assert_called_once_with('session:foo', b'data', ex=30)

    def test_close(self):
        """Closing the backend closes the client."""
        self.backend.close()
        self.assertEqual(self.client.close.call_count, 1)


class TestRedisBackendConnect(TestCase):
    """Clients can be created from connection parameters."""

    @mock.patch(f'{backends.__name__}.redis')
    def test_connect(self, mock_redis):
        """A single node client is created by default."""
        backend = backends.RedisBackend.connect('redis', 1234, 4, 'pw')
        mock_redis.Redis.assert_called_once_with(host='redis', port=1234,
                                                 db=4, password='pw')
        self.assertIs(backend.r, mock_redis.Redis.return_value)

    @mock.patch(f'{backends.__name__}.redis')
    def test_connect_cluster(self, mock_redis):
        """A cluster client is created on request."""
        backend = backends.RedisBackend.connect('redis', 7000, cluster=True)
        mock_redis.cluster.RedisCluster.assert_called_once_with(
            host='redis', port=7000, password=None
        )
        self.assertIs(backend.r, mock_redis.cluster.RedisCluster.return_value)

    @mock.patch(f'{backends.__name__}.redis')
    def test_from_url(self, mock_redis):
        """A client can be created from a URL."""
        backends.RedisBackend.from_url('redis://localhost:6379/2')
        mock_redis.Redis.from_url.assert_called_once_with(
            'redis://localhost:6379/2'
        )


class TestMemoryBackend(TestCase):
    """The in-memory backend gives each entry its own TTL."""

    def setUp(self):
        self.clock = mock.MagicMock(return_value=100.0)
        self.backend = backends.MemoryBackend(timer=self.clock)

    def test_set_get(self):
        """Stored values can be read back."""
        self.backend.set('k', b'v', 60)
        self.assertEqual(self.backend.get('k'), b'v')
        self.assertIn('k', self.backend)
        self.assertEqual(len(self.backend), 1)

    def test_not_found(self):
        """A missing key raises NotFound."""
        with self.assertRaises(NotFound):
            self.backend.get('k')
        self.assertNotIn('k', self.backend)

    def test_expiry(self):
        """Values are gone once their TTL has passed."""
        self.backend.set('k', b'v', 60)
        self.backend.set('other', b'v', 120)
        self.clock.return_value = 159.0
        self.assertEqual(self.backend.get('k'), b'v')
        self.clock.return_value = 160.0
        with self.assertRaises(NotFound):
            self.backend.get('k')
        self.assertEqual(self.backend.get('other'), b'v')

    def test_expired_entries_are_evicted(self):
        """Abandoned sessions do not accumulate."""
        for i in range(1000):
            self.backend.set(f'old:{i}', b'v', 1)
        self.assertEqual(len(self.backend), 1000)

        self.clock.return_value = 10100.0
        for i in range(10):
            self.backend.set(f'new:{i}', b'v', 60)
        self.assertEqual(len(self.backend._cache), 10)
        self.assertEqual(len(self.backend), 10)

    def test_maxsize(self):
        """The least recently used entries are dropped when full."""
        backend = backends.MemoryBackend(maxsize=2, timer=self.clock)
        backend.set('a', b'1', 60)
        backend.set('b', b'2', 60)
        backend.get('a')
        backend.set('c', b'3', 60)
        self.assertIn('a', backend)
        self.assertNotIn('b', backend)
        self.assertIn('c', backend)

    def test_delete(self):
        """Delete is idempotent."""
        self.backend.set('k', b'v', 60)
        self.backend.delete('k')
        self.backend.delete('k')
        self.assertNotIn('k', self.backend)

    def test_close(self):
        """Closing drops all data."""
        self.backend.set('k', b'v', 60)
        self.backend.close()
        self.assertNotIn('k', self.backend)
