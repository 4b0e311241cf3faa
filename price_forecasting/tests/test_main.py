"""
Tests for the command-line interface.
"""
import argparse
import unittest
from unittest.mock import patch

from price_forecasting import main as cli
from price_forecasting.exceptions import NotFoundError

class TestParser(unittest.TestCase):

    def test_parse_pair(self):
        self.assertEqual(cli._parse_pair('3:7'), (3, 7))
        with self.assertRaises(argparse.ArgumentTypeError):
            cli._parse_pair('3-7')

    def test_override_arguments(self):
        args = cli.build_parser().parse_args([
            'override', '--pair', '1:2', '--pair', '3:4',
            '--trend', '+10% Increase', '--reason', 'Storm'
        ])

        self.assertEqual(args.pair, [(1, 2), (3, 4)])
        self.assertEqual(args.trend, '+10% Increase')
        self.assertIsNone(args.price)

    def test_bulk_run_defaults(self):
        args = cli.build_parser().parse_args(['bulk-run'])

        self.assertIsNone(args.pair)
        self.assertFalse(args.force)
        self.assertFalse(args.background)

class TestMain(unittest.TestCase):

    @patch('price_forecasting.main.init_application')
    def test_no_command_prints_help(self, mock_init):
        with patch('sys.stdout'):
            self.assertEqual(cli.main([]), 1)
        mock_init.assert_not_called()

    @patch('price_forecasting.main.init_application')
    @patch('price_forecasting.main.show_calibration')
    def test_domain_error_returns_failure(self, mock_show, mock_init):
        mock_show.side_effect = NotFoundError("Market not found: 9")

        with patch('price_forecasting.main._print') as mock_print:
            code = cli.main(['calibration', '--market-id', '9'])

        self.assertEqual(code, 1)
        mock_print.assert_called_once()
        self.assertEqual(mock_print.call_args[0][0]['error'], 'NotFoundError')

    @patch('price_forecasting.main.init_application')
    @patch('price_forecasting.main.log_exception')
    @patch('price_forecasting.main.show_stats')
    def test_unexpected_error_is_logged(self, mock_show, mock_log, mock_init):
        error = RuntimeError("boom")
        mock_show.side_effect = error

        self.assertEqual(cli.main(['stats']), 1)
        mock_log.assert_called_once()
        self.assertEqual(mock_log.call_args[0][:2], ('app', error))

if __name__ == '__main__':
    unittest.main()
