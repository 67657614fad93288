from typing import List, Optional

from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.services.records import RecordStore
from gigmatch.utils.logging_config import get_logger

logger = get_logger(__name__)


class CandidatePoolResolver:
    """Eligible counterparts for a subject. Performs no scoring."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def postings_for_worker(self, worker: WorkerProfile) -> List[JobPosting]:
        """Open postings the worker neither owns nor has already bid on."""
        jobs = await self.store.find_open_jobs(exclude_employer_id=worker.id)
        bid_job_ids = await self.store.find_bid_job_ids(worker.id)
        eligible = [
            job for job in jobs
            if job.status == "open"
            and job.employer_id != worker.id
            and job.id not in bid_job_ids
        ]
        logger.debug(f"Worker {worker.id}: {len(eligible)} eligible postings of {len(jobs)} open")
        return eligible

    async def workers_for_posting(self, job: JobPosting, limit: Optional[int] = None) -> List[WorkerProfile]:
        """Active workers with a completed profile, optionally capped to the first ``limit`` fetched."""
        workers = await self.store.find_active_workers(limit=limit)
        eligible = [
            w for w in workers
            if w.profile_status == "active"
            and w.profile_completed
            and w.id != job.employer_id
        ]
        if limit is not None:
            eligible = eligible[:limit]
        logger.debug(f"Job {job.id}: {len(eligible)} eligible workers")
        return eligible
