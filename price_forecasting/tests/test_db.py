"""
Tests for engine creation.
"""
import unittest
from unittest.mock import patch

from price_forecasting.db import create_db_engine

class TestCreateDbEngine(unittest.TestCase):

    @patch('price_forecasting.db.configure_sqlite')
    @patch('price_forecasting.db.create_engine')
    def test_sqlite_waits_for_locked_database(self, mock_create, mock_configure):
        engine = create_db_engine('sqlite:///forecasts.db', busy_timeout=12)

        kwargs = mock_create.call_args[1]
        self.assertEqual(kwargs['connect_args'], {'check_same_thread': False, 'timeout': 12})
        self.assertNotIn('pool_size', kwargs)
        mock_configure.assert_called_once_with(mock_create.return_value)
        self.assertIs(engine, mock_create.return_value)

    @patch('price_forecasting.db.configure_sqlite')
    @patch('price_forecasting.db.create_engine')
    def test_explicit_connect_args_are_kept(self, mock_create, mock_configure):
        create_db_engine('sqlite:///forecasts.db', busy_timeout=12, connect_args={'timeout': 3})

        self.assertEqual(
            mock_create.call_args[1]['connect_args'],
            {'timeout': 3, 'check_same_thread': False}
        )

    @patch('price_forecasting.db.configure_sqlite')
    @patch('price_forecasting.db.create_engine')
    def test_server_database_uses_pool_settings(self, mock_create, mock_configure):
        create_db_engine('postgresql://forecast@localhost/prices')

        kwargs = mock_create.call_args[1]
        self.assertIn('pool_size', kwargs)
        self.assertIn('pool_recycle', kwargs)
        self.assertNotIn('connect_args', kwargs)
        mock_configure.assert_not_called()

if __name__ == '__main__':
    unittest.main()
