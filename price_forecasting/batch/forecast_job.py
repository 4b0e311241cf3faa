# price_forecasting/batch/forecast_job.py
import atexit
import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from price_forecasting.config import config
from price_forecasting.db import session_scope
from price_forecasting.services.forecast_service import ForecastService
from price_forecasting.services.forecast_store import ForecastStore
from price_forecasting.services.price_history_service import PriceHistoryService
from price_forecasting.exceptions import BatchProcessError
from price_forecasting.logging_setup import get_logger, logger as log_manager, RUN_COUNTERS

logger = get_logger('forecast_job')
logger.setLevel(logging.INFO)

Pair = Tuple[int, int]

def generate_pair_forecast(session, product_id: int, market_id: int, force: bool = False) -> Dict:
    """Generate and store the forecast horizon for one pair."""
    return ForecastService(session).generate_forecast(product_id, market_id, force=force)

def partition(pairs: List[Pair], chunk_size: int) -> List[List[Pair]]:
    """Split pairs into consecutive chunks of at most chunk_size."""
    if chunk_size <= 0:
        raise BatchProcessError(f"Chunk size must be positive, got {chunk_size}")
    return [pairs[i:i + chunk_size] for i in range(0, len(pairs), chunk_size)]

class BatchOrchestrator:
    """Drives forecast generation for many pairs on a bounded thread pool.

    Each chunk runs in its own session and transaction. Each pair inside a
    chunk runs in its own SAVEPOINT, so a failing pair is rolled back alone
    and the rest of the chunk still commits. A chunk whose commit fails is
    reported as entirely failed without affecting the other chunks.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        chunk_size: Optional[int] = None,
        session_scope_factory: Optional[Callable] = None,
        pair_processor: Optional[Callable] = None
    ):
        """Initialize the orchestrator.

        Args:
            max_workers: Worker pool size (defaults to max(4, cpu count))
            chunk_size: Pairs per chunk (defaults to config)
            session_scope_factory: Context manager factory yielding a session
            pair_processor: Callable(session, product_id, market_id, force) -> dict
        """
        settings = config.batch_config
        self.max_workers = max_workers or settings['max_workers']
        self.chunk_size = chunk_size or settings['chunk_size']
        self.purge_after_days = settings['purge_after_days']
        self.session_scope_factory = session_scope_factory or session_scope
        self.pair_processor = pair_processor or generate_pair_forecast

        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix='forecast-chunk'
        )
        # Runs triggered jobs so the caller returns immediately
        self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix='forecast-dispatch')
        self._jobs = {}
        self._jobs_lock = threading.Lock()
        self._shutdown = False

        atexit.register(self.shutdown)

    def partition(self, pairs: List[Pair]) -> List[List[Pair]]:
        return partition(pairs, self.chunk_size)

    def list_pairs(self) -> List[Pair]:
        """Enumerate all active pairs with price history."""
        with self.session_scope_factory() as session:
            return PriceHistoryService(session).list_active_pairs()

    def process_chunk(self, chunk_index: int, pairs: List[Pair], force: bool = False) -> Dict:
        """Process one chunk of pairs as a single unit of work.

        Args:
            chunk_index: Position of the chunk in the run
            pairs: Pairs in the chunk
            force: Regenerate overridden rows as well

        Returns:
            Dictionary with the chunk's counts and errors
        """
        result = {
            'chunk': chunk_index,
            'total': len(pairs),
            'success': 0,
            'failed': 0,
            'skipped': 0,
            'written': 0,
            'anomalies': 0,
            'errors': []
        }

        try:
            with self.session_scope_factory() as session:
                for product_id, market_id in pairs:
                    try:
                        with session.begin_nested():
                            outcome = self.pair_processor(session, product_id, market_id, force)

                        result['success'] += 1
                        if outcome.get('skipped'):
                            result['skipped'] += 1
                        result['written'] += outcome.get('written', 0)
                        result['anomalies'] += outcome.get('anomalies', 0)

                    except Exception as e:
                        logger.error(
                            f"Chunk {chunk_index}: error forecasting product {product_id} "
                            f"in market {market_id}: {str(e)}",
                            exc_info=True
                        )
                        result['failed'] += 1
                        result['errors'].append({
                            'product_id': product_id,
                            'market_id': market_id,
                            'error': str(e)
                        })

        except Exception as e:
            # The chunk's transaction did not commit, so none of its writes persisted
            logger.error(f"Chunk {chunk_index} failed: {str(e)}", exc_info=True)
            result['success'] = 0
            result['skipped'] = 0
            result['written'] = 0
            result['anomalies'] = 0
            result['failed'] = len(pairs)
            result['errors'].append({'chunk': chunk_index, 'error': str(e)})

        return result

    def purge_old_forecasts(self, as_of: Optional[date] = None) -> int:
        """Delete automated forecasts older than the configured retention."""
        if not self.purge_after_days or self.purge_after_days <= 0:
            return 0

        cutoff = (as_of or date.today()) - timedelta(days=self.purge_after_days)
        with self.session_scope_factory() as session:
            return ForecastStore(session).purge_old_forecasts(cutoff)

    def run_bulk_forecast(
        self,
        pairs: Optional[List[Pair]] = None,
        force: bool = False,
        job_id: Optional[str] = None
    ) -> Dict:
        """Forecast every pair and wait for all chunks to finish.

        Individual pair or chunk failures are counted, never raised.

        Args:
            pairs: Pairs to process (defaults to all active pairs)
            force: Regenerate overridden rows as well
            job_id: Identifier used in log messages

        Returns:
            Dictionary with aggregate counts and per-chunk results
        """
        job_id = job_id or uuid.uuid4().hex
        if pairs is None:
            pairs = self.list_pairs()

        chunks = self.partition(list(pairs))
        log_info = log_manager.batch_start_log(job_id, len(pairs), len(chunks), force=force)

        start_time = datetime.now()
        results = {
            'job_id': job_id,
            'start_time': start_time,
            'end_time': None,
            'duration': None,
            'total_pairs': len(pairs),
            'total_chunks': len(chunks),
            'success': 0,
            'failed': 0,
            'skipped': 0,
            'written': 0,
            'anomalies': 0,
            'purged': 0,
            'chunks': [],
            'errors': []
        }

        futures = {
            self._executor.submit(self.process_chunk, index, chunk, force): index
            for index, chunk in enumerate(chunks)
        }

        chunk_results = []
        for future in as_completed(futures):
            index = futures[future]
            try:
                chunk_result = future.result()
            except Exception as e:
                logger.error(f"Chunk {index} raised outside its unit of work: {str(e)}", exc_info=True)
                chunk_result = {
                    'chunk': index,
                    'total': len(chunks[index]),
                    'success': 0,
                    'failed': len(chunks[index]),
                    'skipped': 0,
                    'written': 0,
                    'anomalies': 0,
                    'errors': [{'chunk': index, 'error': str(e)}]
                }
            log_manager.batch_chunk_log(log_info, chunk_result)
            chunk_results.append(chunk_result)

        chunk_results.sort(key=lambda r: r['chunk'])
        for chunk_result in chunk_results:
            for key in RUN_COUNTERS:
                results[key] += chunk_result[key]
            results['errors'].extend(chunk_result['errors'])
        results['chunks'] = chunk_results

        try:
            results['purged'] = self.purge_old_forecasts()
        except Exception as e:
            logger.error(f"Error purging old forecasts: {str(e)}", exc_info=True)
            results['errors'].append({'purge': True, 'error': str(e)})

        results['end_time'] = datetime.now()
        results['duration'] = results['end_time'] - start_time

        log_manager.batch_end_log(log_info, results)

        return results

    def trigger_bulk_run(self, pairs: Optional[List[Pair]] = None, force: bool = False) -> Dict:
        """Start a bulk run in the background and return immediately.

        Progress is observable only through the stored forecasts.

        Returns:
            Acknowledgement dictionary
        """
        if self._shutdown:
            raise BatchProcessError("Orchestrator has been shut down")

        job_id = uuid.uuid4().hex
        total_pairs = len(pairs) if pairs is not None else None

        # Registered under the lock so the job cannot unregister itself first
        with self._jobs_lock:
            self._jobs[job_id] = self._dispatcher.submit(self._run_job, job_id, pairs, force)

        logger.info(f"Triggered bulk forecast job {job_id}")

        return {
            'status': 'STARTED',
            'job_id': job_id,
            'message': 'Bulk forecast generation started',
            'total_pairs': total_pairs,
            'timestamp': datetime.now()
        }

    def _run_job(self, job_id: str, pairs: Optional[List[Pair]], force: bool) -> Optional[Dict]:
        try:
            return self.run_bulk_forecast(pairs=pairs, force=force, job_id=job_id)
        except Exception as e:
            logger.error(f"Bulk forecast job {job_id} failed: {str(e)}", exc_info=True)
            return None
        finally:
            with self._jobs_lock:
                self._jobs.pop(job_id, None)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[Dict]:
        """Block until a triggered job finishes; None if it is unknown or already done."""
        with self._jobs_lock:
            future = self._jobs.get(job_id)
        if future is None:
            return None
        return future.result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and release the worker threads."""
        if self._shutdown:
            return
        self._shutdown = True
        self._dispatcher.shutdown(wait=wait)
        self._executor.shutdown(wait=wait)

_default_orchestrator = None
_default_lock = threading.Lock()

def get_orchestrator() -> BatchOrchestrator:
    """Get the process-wide orchestrator, creating it on first use."""
    global _default_orchestrator
    with _default_lock:
        if _default_orchestrator is None:
            _default_orchestrator = BatchOrchestrator()
        return _default_orchestrator

def run_bulk_forecast(pairs: Optional[List[Pair]] = None, force: bool = False) -> Dict:
    """Run a bulk forecast and wait for it to complete."""
    return get_orchestrator().run_bulk_forecast(pairs=pairs, force=force)

def trigger_bulk_run(pairs: Optional[List[Pair]] = None, force: bool = False) -> Dict:
    """Start a bulk forecast without waiting for it."""
    return get_orchestrator().trigger_bulk_run(pairs=pairs, force=force)

def generate_single_forecast(product_id: int, market_id: int, force: bool = False) -> Dict:
    """Generate the forecast for one pair in its own transaction."""
    logger.info(f"Generating forecast for product {product_id} in market {market_id}")

    with session_scope() as session:
        return generate_pair_forecast(session, product_id, market_id, force=force)

if __name__ == "__main__":
    run_bulk_forecast()
