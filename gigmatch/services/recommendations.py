"""
Recommendation service: the operations exposed to callers.
"""
import json
from typing import Dict, List, Optional

from pymongo.errors import PyMongoError

from gigmatch.models.match_settings import Settings, CacheBackend
from gigmatch.models.models import ProfileUpdate, RecordKind
from gigmatch.models.response import (
    BandedRecommendations, EmployerOverview, MatchMode, ProfileUpdateResponse,
    ProviderStatus, RecommendationList, WarmEmbeddingsReport
)
from gigmatch.helpers.skill_synonyms import load_skill_synonyms
from gigmatch.services.candidate_pool import CandidatePoolResolver
from gigmatch.services.embedding_client import (
    EmbeddingClient, EmbeddingErrorKind, job_embedding_text, worker_embedding_text
)
from gigmatch.services.fallback_scorer import FallbackScorer
from gigmatch.services.ranking import RankingPipeline
from gigmatch.services.record_embeddings import RecordEmbeddings, run_in_thread
from gigmatch.services.records import RecordStore
from gigmatch.services.vector_cache import MemoryVectorCache, MongoVectorCache
from gigmatch.utils.exceptions import (
    ConfigurationError, ExternalServiceError, NotFoundError, RateLimitError, ValidationError
)
from gigmatch.utils.logging_config import PerformanceMonitor, get_logger, log_function_call

logger = get_logger(__name__)


class RecommendationService:
    def __init__(
        self,
        store: RecordStore,
        client: EmbeddingClient,
        pipeline: RankingPipeline,
        settings: Settings,
        run_blocking=run_in_thread,
    ):
        self.store = store
        self.client = client
        self.pipeline = pipeline
        self.settings = settings
        self._run_blocking = run_blocking

    @classmethod
    def from_settings(cls, settings: Settings, store: RecordStore = None) -> "RecommendationService":
        store = store or RecordStore()
        if settings.embedding.cache_backend == CacheBackend.MONGO:
            from gigmatch.services.db import get_sync_cache_collection
            cache = MongoVectorCache(get_sync_cache_collection())
            try:
                cache.ensure_indexes()
            except PyMongoError as e:
                logger.warning(f"Could not create embedding cache index: {e}")
        else:
            cache = MemoryVectorCache()
        client = EmbeddingClient(settings.embedding, cache=cache)
        scorer = FallbackScorer(load_skill_synonyms(settings.matching.skill_synonyms_path))
        pipeline = RankingPipeline(
            client=client,
            embeddings=RecordEmbeddings(client, store),
            pool=CandidatePoolResolver(store),
            scorer=scorer,
            settings=settings.matching,
        )
        return cls(store, client, pipeline, settings)

    async def _require_worker(self, worker_id: str):
        worker = await self.store.get_worker(worker_id)
        if worker is None:
            raise NotFoundError(f"Gig worker {worker_id} not found", resource="worker", resource_id=worker_id)
        return worker

    async def _require_job(self, job_id: str, employer_id: Optional[str] = None):
        job = await self.store.get_job(job_id)
        if job is None or (employer_id is not None and job.employer_id != employer_id):
            raise NotFoundError(f"Job {job_id} not found", resource="job", resource_id=job_id)
        return job

    async def get_recommendations_for(self, worker_id: str, mode: MatchMode = MatchMode.AI) -> RecommendationList:
        worker = await self._require_worker(worker_id)
        with PerformanceMonitor(f"rank_jobs_for_worker[{worker_id}]", logger, threshold_ms=5000):
            result = await self.pipeline.rank_jobs_for_worker(worker, mode)
        logger.info(
            f"Worker {worker_id}: {len(result.recommendations)} recommendations "
            f"(ai_powered={result.ai_powered}, partial={result.partial})"
        )
        return result

    async def get_candidates_for(self, job_id: str, mode: MatchMode = MatchMode.AI,
                                 employer_id: Optional[str] = None) -> BandedRecommendations:
        job = await self._require_job(job_id, employer_id)
        with PerformanceMonitor(f"rank_workers_for_job[{job_id}]", logger, threshold_ms=5000):
            return await self.pipeline.rank_workers_for_job(job, mode)

    async def get_employer_overview(self, employer_id: str, mode: MatchMode = MatchMode.AI) -> EmployerOverview:
        jobs = await self.store.find_open_jobs_by_employer(
            employer_id, limit=self.settings.matching.employer_posting_cap
        )
        # one budget for the whole overview, not one per posting
        deadline = self.pipeline.start_deadline()
        overview = EmployerOverview(employer_id=employer_id)
        for job in jobs:
            overview.jobs.append(await self.pipeline.rank_workers_for_job(job, mode, deadline=deadline))
        return overview

    async def update_profile(self, worker_id: str, update: ProfileUpdate) -> ProfileUpdateResponse:
        """Apply a profile change, drop the stale vector and re-rank."""
        await self._require_worker(worker_id)
        changes = update.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError("No profile fields provided", field="body")

        await self.store.update_worker_profile(worker_id, changes)
        await self.store.clear_embedding(RecordKind.WORKER, worker_id)
        logger.info(f"Profile updated for worker {worker_id}; stored embedding cleared",
                    extra={"updated_fields": sorted(changes)})

        recommendations = await self.get_recommendations_for(worker_id)
        return ProfileUpdateResponse(
            message="Profile updated and recommendations refreshed successfully",
            updated_fields=sorted(changes),
            recommendations=recommendations,
        )

    @log_function_call
    async def warm_embeddings(self, kind: RecordKind) -> WarmEmbeddingsReport:
        """Batch-generate vectors for records that have none stored.

        Partial success is reported in the counts. A batch that produces
        nothing raises, so the caller sees why.
        """
        if not self.client.is_configured():
            raise ConfigurationError("Embedding provider is not configured", config_key="VOYAGE_API_KEY")

        if kind == RecordKind.JOB:
            records = await self.store.find_open_jobs()
            to_text = job_embedding_text
        else:
            records = await self.store.find_active_workers()
            to_text = worker_embedding_text

        missing = [r for r in records if RecordEmbeddings.stored_vector(r) is None]
        if not missing:
            return WarmEmbeddingsReport(kind=kind.value, requested=0, generated=0, failed=0)

        results = await self._run_blocking(self.client.embed_batch, [to_text(r) for r in missing])
        generated = 0
        for record, result in zip(missing, results):
            if result.ok:
                await self.store.save_embedding(kind, record.id, result.vector)
                generated += 1
        failed = len(missing) - generated
        if not generated:
            errors = {r.error for r in results if r.error is not None}
            if EmbeddingErrorKind.RATE_LIMITED in errors:
                raise RateLimitError(f"Provider rate limit hit while warming {kind.value} embeddings")
            raise ExternalServiceError(
                f"No {kind.value} embeddings could be generated",
                service_name="embedding provider",
                details={"errors": sorted(e.value for e in errors)},
            )
        if failed:
            logger.warning(f"Warm-up for {kind.value}: {failed}/{len(missing)} embeddings failed")
        return WarmEmbeddingsReport(kind=kind.value, requested=len(missing), generated=generated, failed=failed)

    async def list_skills(self) -> List[str]:
        """Unique required skills across postings, first spelling wins."""
        unique: Dict[str, str] = {}
        for skill_set in await self.store.list_required_skills():
            if isinstance(skill_set, str):
                try:
                    skill_set = json.loads(skill_set)
                except ValueError:
                    skill_set = []
            if not isinstance(skill_set, list):
                continue
            for skill in skill_set:
                trimmed = str(skill).strip()
                if trimmed and trimmed.lower() not in unique:
                    unique[trimmed.lower()] = trimmed
        return sorted(unique.values(), key=str.lower)

    async def provider_status(self) -> ProviderStatus:
        configured = self.client.is_configured()
        if not configured:
            return ProviderStatus(configured=False, reachable=False,
                                  model_name=self.settings.embedding.model_name,
                                  error="unconfigured")
        result = await self._run_blocking(self.client.test_connection)
        return ProviderStatus(
            configured=True,
            reachable=result.ok,
            model_name=self.settings.embedding.model_name,
            error=None if result.ok else result.error.value,
        )
