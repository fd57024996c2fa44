"""Tests for :mod:`kvsession.domain`."""

from unittest import TestCase, mock

from ..domain import FLASH_KEY, SameSite, Session, SessionOptions


class TestSession(TestCase):
    """Behavior of :class:`.Session` itself."""

    def setUp(self):
        self.store = mock.MagicMock()
        self.options = SessionOptions(max_age=60, same_site=SameSite.LAX)
        self.session = Session(self.store, 'sid', self.options)

    def test_new(self):
        """A new session has no ID and no values."""
        self.assertEqual(self.session.id, '')
        self.assertEqual(self.session.values, {})
        self.assertTrue(self.session.is_new)
        self.assertIsNone(self.session.decode_error)

    def test_options_are_copied(self):
        """Changing the session options does not affect the defaults."""
        self.session.options.max_age = -1
        self.assertEqual(self.options.max_age, 60)

    def test_id_is_immutable(self):
        """Once assigned, the session ID cannot change."""
        self.session.id = 'abc'
        self.session.id = 'abc'
        with self.assertRaises(AttributeError):
            self.session.id = 'def'
        self.assertEqual(self.session.id, 'abc')

    def test_flashes(self):
        """Flash messages are read once."""
        self.session.add_flash('hello')
        self.session.add_flash('world')
        self.session.add_flash('warn', key='_warnings')
        self.assertEqual(self.session.values[FLASH_KEY], ['hello', 'world'])
        self.assertEqual(self.session.flashes(), ['hello', 'world'])
        self.assertEqual(self.session.flashes(), [])
        self.assertEqual(self.session.flashes('_warnings'), ['warn'])

    def test_save_and_delete(self):
        """The owning store does the work."""
        self.assertEqual(self.session.save(),
                         self.store.save.return_value)
        self.store.save.assert_called_once_with(self.session)
        self.assertEqual(self.session.delete(),
                         self.store.delete.return_value)
        self.store.delete.assert_called_once_with(self.session)
