"""
Read-through resolution of the vector stored on a worker or posting record.

A usable stored vector short-circuits the provider. Otherwise the vector is
generated (through the provider client and its cache) and written back to the
record. Concurrent requests for the same record may each call the provider;
the writes are idempotent.
"""
import asyncio
from typing import Callable, Optional

from gigmatch.models.models import JobPosting, RecordKind, WorkerProfile
from gigmatch.services.embedding_client import EmbeddingClient, EmbeddingResult
from gigmatch.services.records import RecordStore
from gigmatch.utils.exceptions import GigMatchBaseException
from gigmatch.utils.logging_config import get_logger
from gigmatch.utils.utils import coerce_vector

logger = get_logger(__name__)


async def run_in_thread(fn: Callable, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, fn, *args)


class RecordEmbeddings:
    def __init__(self, client: EmbeddingClient, store: RecordStore, run_blocking=run_in_thread):
        self.client = client
        self.store = store
        self._run_blocking = run_blocking

    async def resolve_worker(self, worker: WorkerProfile) -> EmbeddingResult:
        return await self._resolve(RecordKind.WORKER, worker, self.client.embed_worker)

    async def resolve_job(self, job: JobPosting) -> EmbeddingResult:
        return await self._resolve(RecordKind.JOB, job, self.client.embed_job)

    async def _resolve(self, kind: RecordKind, record, embed_fn) -> EmbeddingResult:
        stored = self.stored_vector(record)
        if stored is not None:
            return EmbeddingResult(vector=stored, cached=True)

        result = await self._run_blocking(embed_fn, record)
        if not result.ok:
            return result

        record.skills_embedding = result.vector
        try:
            await self.store.save_embedding(kind, record.id, result.vector)
        except GigMatchBaseException as e:
            # the vector is still usable for this request
            logger.warning(f"Could not persist {kind.value} embedding for {record.id}: {e.message}")
        return result

    @staticmethod
    def stored_vector(record) -> Optional[list]:
        if record.skills_embedding is None:
            return None
        vector = coerce_vector(record.skills_embedding)
        if vector is None:
            logger.warning(f"Stored embedding on record {record.id} is malformed; regenerating")
        return vector
