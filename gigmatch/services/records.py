"""
Record store adapter over the marketplace collections.

Postings and profiles are owned by the rest of the marketplace; this module
only reads them and writes the stored-embedding field.
"""
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from gigmatch.models.models import JobPosting, RecordKind, WorkerProfile
from gigmatch.utils.exceptions import ExceptionContext
from gigmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

EMBEDDING_FIELD = "skills_embedding"


def _parse_many(model, docs: List[Dict[str, Any]]) -> list:
    out = []
    for doc in docs:
        try:
            out.append(model(**doc))
        except PydanticValidationError as e:
            logger.warning(f"Skipping malformed {model.__name__} record {doc.get('id')}: {e.error_count()} errors")
    return out


class RecordStore:
    def __init__(self, users_coll=None, jobs_coll=None, bids_coll=None):
        if users_coll is None or jobs_coll is None or bids_coll is None:
            from gigmatch.services import db
            users_coll = users_coll if users_coll is not None else db.users_coll
            jobs_coll = jobs_coll if jobs_coll is not None else db.jobs_coll
            bids_coll = bids_coll if bids_coll is not None else db.bids_coll
        self.users = users_coll
        self.jobs = jobs_coll
        self.bids = bids_coll

    def _collection(self, kind: RecordKind):
        return self.users if kind == RecordKind.WORKER else self.jobs

    async def get_worker(self, worker_id: str) -> Optional[WorkerProfile]:
        with ExceptionContext("get_worker", logger, worker_id=worker_id):
            doc = await self.users.find_one({"id": worker_id, "user_type": "gig_worker"})
            return WorkerProfile(**doc) if doc else None

    async def get_job(self, job_id: str) -> Optional[JobPosting]:
        with ExceptionContext("get_job", logger, job_id=job_id):
            doc = await self.jobs.find_one({"id": job_id})
            return JobPosting(**doc) if doc else None

    async def find_open_jobs(self, exclude_employer_id: str = None) -> List[JobPosting]:
        query: Dict[str, Any] = {"status": "open"}
        if exclude_employer_id is not None:
            query["employer_id"] = {"$ne": exclude_employer_id}
        with ExceptionContext("find_open_jobs", logger):
            docs = await self.jobs.find(query).to_list(length=None)
        return _parse_many(JobPosting, docs)

    async def find_open_jobs_by_employer(self, employer_id: str, limit: int = None) -> List[JobPosting]:
        cursor = self.jobs.find({"status": "open", "employer_id": employer_id})
        if limit:
            cursor = cursor.limit(limit)
        with ExceptionContext("find_open_jobs_by_employer", logger, employer_id=employer_id):
            docs = await cursor.to_list(length=None)
        return _parse_many(JobPosting, docs)

    async def find_bid_job_ids(self, worker_id: str) -> Set[str]:
        with ExceptionContext("find_bid_job_ids", logger, worker_id=worker_id):
            docs = await self.bids.find({"gig_worker_id": worker_id}).to_list(length=None)
        return {str(d["job_id"]) for d in docs if d.get("job_id") is not None}

    async def find_active_workers(self, limit: int = None) -> List[WorkerProfile]:
        cursor = self.users.find({
            "user_type": "gig_worker",
            "profile_status": "active",
            "profile_completed": True,
        })
        if limit:
            cursor = cursor.limit(limit)
        with ExceptionContext("find_active_workers", logger):
            docs = await cursor.to_list(length=None)
        return _parse_many(WorkerProfile, docs)

    async def save_embedding(self, kind: RecordKind, record_id: str, vector: List[float]) -> None:
        with ExceptionContext("save_embedding", logger, kind=kind.value, record_id=record_id):
            await self._collection(kind).update_one(
                {"id": record_id}, {"$set": {EMBEDDING_FIELD: list(vector)}}
            )

    async def clear_embedding(self, kind: RecordKind, record_id: str) -> None:
        with ExceptionContext("clear_embedding", logger, kind=kind.value, record_id=record_id):
            await self._collection(kind).update_one(
                {"id": record_id}, {"$set": {EMBEDDING_FIELD: None}}
            )

    async def update_worker_profile(self, worker_id: str, changes: Dict[str, Any]) -> None:
        if not changes:
            return
        with ExceptionContext("update_worker_profile", logger, worker_id=worker_id):
            await self.users.update_one({"id": worker_id}, {"$set": changes})

    async def list_required_skills(self) -> List[List[str]]:
        with ExceptionContext("list_required_skills", logger):
            docs = await self.jobs.find({"required_skills": {"$ne": None}}).to_list(length=None)
        return [d.get("required_skills") or [] for d in docs]
