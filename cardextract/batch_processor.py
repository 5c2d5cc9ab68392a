"""
Progressive batch processing for business card texts.
Large uploads are split into chunks that clients advance one request at a time.
"""

import threading
import time
import uuid
from typing import Dict, List, Optional
import logging

from .parser import RawText

logger = logging.getLogger(__name__)


class ProgressiveBatchProcessor:
    """Handles progressive batch processing with progress tracking."""

    def __init__(self, batch_size: int = 20, job_ttl: float = 3600):
        """
        Initialize processor.

        Args:
            batch_size: Number of card texts to parse in each batch
            job_ttl: Seconds a job may sit without progress before it is evicted
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.job_ttl = job_ttl
        self.active_jobs: Dict[str, Dict] = {}
        self._lock = threading.Lock()

    def start_batch_job(self, texts: List[RawText], job_id: Optional[str] = None,
                        strategy: Optional[str] = None, batch_size: Optional[int] = None) -> str:
        """
        Start a new batch processing job.

        Args:
            texts: Card texts to parse
            job_id: Optional job ID (generates one if not provided)
            strategy: Optional extraction strategy for every text in the job
            batch_size: Optional chunk size overriding the processor default

        Returns:
            Job ID for tracking progress
        """
        self.cleanup_stale_jobs()

        if job_id is None:
            job_id = str(uuid.uuid4())

        size = batch_size or self.batch_size
        batches = [texts[i:i + size] for i in range(0, len(texts), size)]

        with self._lock:
            self.active_jobs[job_id] = {
                'status': 'started',
                'strategy': strategy,
                'batch_size': size,
                'total_texts': len(texts),
                'processed': 0,
                'successful': 0,
                'failed': 0,
                'current_batch': 0,
                'total_batches': len(batches),
                'batches': batches,
                'results': [],
                'started_at': time.time(),
                'last_update': time.time()
            }

        logger.info(f"Started batch job {job_id} with {len(texts)} texts in {len(batches)} batches")
        return job_id

    def get_job_status(self, job_id: str) -> Optional[Dict]:
        """Snapshot of a job, without the pending batches."""
        with self._lock:
            job = self.active_jobs.get(job_id)
            if job is None:
                return None
            status = {k: v for k, v in job.items() if k != 'batches'}
            status['results'] = list(job['results'])

        total = status['total_texts']
        status['progress'] = (status['processed'] / total) * 100 if total else 100.0
        status['is_complete'] = status['current_batch'] >= status['total_batches']
        return status

    def _claim_next_batch(self, job_id: str):
        with self._lock:
            job = self.active_jobs.get(job_id)
            if job is None:
                return None, None
            if job['current_batch'] >= job['total_batches']:
                job['status'] = 'completed'
                return job, None
            # another request is already working on this job
            if job['status'].startswith('processing'):
                return job, None
            number = job['current_batch']
            job['status'] = f"processing_batch_{number + 1}"
            return job, job['batches'][number]

    def process_next_batch(self, job_id: str, pipeline) -> Optional[Dict]:
        """
        Process the next batch for a job.

        Args:
            job_id: Job ID
            pipeline: CardTextPipeline instance

        Returns:
            Batch results, or None if the job is complete, busy or not found
        """
        job, batch_texts = self._claim_next_batch(job_id)
        if batch_texts is None:
            return None

        batch_results = []
        successful = failed = 0

        offset = job['current_batch'] * job['batch_size']

        for i, text in enumerate(batch_texts):
            try:
                result = pipeline.process_text(text, job['strategy'])
            except Exception as e:
                logger.error(f"Error processing text in job {job_id}: {e}")
                result = {
                    'success': False,
                    'error': str(e)
                }

            batch_results.append({
                'index': offset + i,
                'result': result
            })
            if result.get('success'):
                successful += 1
            else:
                failed += 1

        with self._lock:
            job['results'].extend(batch_results)
            job['processed'] += len(batch_results)
            job['successful'] += successful
            job['failed'] += failed
            job['current_batch'] += 1
            job['last_update'] = time.time()
            is_complete = job['current_batch'] >= job['total_batches']
            job['status'] = 'completed' if is_complete else 'in_progress'

            progress = (job['processed'] / job['total_texts']) * 100

            return {
                'job_id': job_id,
                'batch_number': job['current_batch'],
                'total_batches': job['total_batches'],
                'batch_results': batch_results,
                'progress': progress,
                'processed': job['processed'],
                'successful': job['successful'],
                'failed': job['failed'],
                'total': job['total_texts'],
                'status': job['status'],
                'is_complete': is_complete
            }

    def cleanup_job(self, job_id: str) -> bool:
        """Remove a job from memory."""
        with self._lock:
            return self.active_jobs.pop(job_id, None) is not None

    def cleanup_stale_jobs(self, now: Optional[float] = None) -> int:
        """Evict jobs with no progress for longer than ``job_ttl`` seconds."""
        now = time.time() if now is None else now
        with self._lock:
            stale = [
                job_id for job_id, job in self.active_jobs.items()
                if now - job['last_update'] > self.job_ttl
            ]
            for job_id in stale:
                del self.active_jobs[job_id]

        if stale:
            logger.info(f"Evicted {len(stale)} stale batch jobs")
        return len(stale)


# Global processor instance
batch_processor = ProgressiveBatchProcessor()
