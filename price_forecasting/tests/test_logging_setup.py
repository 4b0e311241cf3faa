"""
Tests for the logging manager's bulk run logging.
"""
import unittest
from datetime import datetime, timedelta
from unittest.mock import patch, MagicMock, PropertyMock

from price_forecasting.logging_setup import Logger, logger

class TestBatchLogging(unittest.TestCase):

    def setUp(self):
        patcher = patch.object(Logger, 'batch_logger', new_callable=PropertyMock)
        self.batch_logger = patcher.start().return_value
        self.addCleanup(patcher.stop)

    def test_start_log_carries_run_fields(self):
        log_info = logger.batch_start_log('job-1', total_pairs=120, total_chunks=3, force=True)

        self.assertEqual(log_info['job_id'], 'job-1')
        self.assertEqual(log_info['total_pairs'], 120)
        self.assertEqual(log_info['chunks_done'], 0)
        message = self.batch_logger.info.call_args[0][0]
        self.assertIn('[job-1]', message)
        self.assertIn('120 pairs in 3 chunks (force)', message)

    def test_chunk_log_counts_progress(self):
        log_info = logger.batch_start_log('job-2', total_pairs=100, total_chunks=2)

        logger.batch_chunk_log(log_info, {'chunk': 1, 'success': 50, 'failed': 0, 'written': 350})
        logger.batch_chunk_log(log_info, {'chunk': 0, 'success': 48, 'failed': 2, 'written': 336})

        self.assertEqual(log_info['chunks_done'], 2)
        self.assertIn('(1/2)', self.batch_logger.info.call_args[0][0])
        warning = self.batch_logger.warning.call_args[0][0]
        self.assertIn('Chunk 0 done (2/2)', warning)
        self.assertIn('failed=2', warning)

    def test_end_log_reports_failures_as_error(self):
        log_info = {'job_id': 'job-3', 'start_time': datetime.now() - timedelta(seconds=5)}

        duration = logger.batch_end_log(log_info, {'success': 9, 'failed': 1, 'written': 63})

        self.assertGreaterEqual(duration, timedelta(seconds=5))
        message = self.batch_logger.error.call_args[0][0]
        self.assertIn('[job-3]', message)
        self.assertIn('success=9, failed=1, skipped=0, written=63, anomalies=0', message)

class TestLogFiles(unittest.TestCase):

    def test_module_loggers_drop_package_prefix(self):
        path = logger.log_file_for('price_forecasting.services.forecast_service')
        self.assertEqual(path.name, 'services.forecast_service.log')
        self.assertEqual(logger.log_file_for('batch').name, 'batch.log')

    def test_log_exception_keeps_traceback(self):
        target = MagicMock()
        error = ValueError('bad history')

        with patch.object(logger, 'get_logger', return_value=target):
            logger.log_exception('app', error, 'Bulk run failed')

        target.error.assert_called_once_with('Bulk run failed: bad history', exc_info=error)

if __name__ == '__main__':
    unittest.main()
