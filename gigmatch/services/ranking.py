"""
Ranking pipeline: semantic matching with automatic degradation to the
deterministic fallback scorer.

Semantic path: resolve the subject's vector, resolve each candidate's vector,
score by cosine similarity, drop scores under the threshold, order by score
(ties by candidate id), then cap (worker view) or band (employer view).

The whole request falls back to the five-factor scorer when the provider is
unconfigured, when the subject's own vector cannot be produced, or when the
caller asks for traditional matching. A failure on a single candidate only
drops that candidate.
"""
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from gigmatch.models.match_settings import MatchingSettings
from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.models.response import (
    BandedRecommendations, MatchMode, MatchResult, RecommendationList, ScoreBand
)
from gigmatch.services.candidate_pool import CandidatePoolResolver
from gigmatch.services.embedding_client import EmbeddingClient, EmbeddingResult
from gigmatch.services.fallback_scorer import FallbackScorer
from gigmatch.services.matching import cosine_similarity, score_band, similarity_to_score
from gigmatch.services.reasons import fallback_reason, job_match_reason, worker_match_reason
from gigmatch.services.record_embeddings import RecordEmbeddings
from gigmatch.utils.logging_config import get_logger

logger = get_logger(__name__)


def order_results(results: List[MatchResult]) -> List[MatchResult]:
    return sorted(results, key=lambda r: (-r.score, r.candidate_id))


def partition_bands(results: List[MatchResult]) -> dict:
    bands = {ScoreBand.EXCELLENT: [], ScoreBand.GOOD: [], ScoreBand.BASIC: []}
    for r in results:
        bands[r.band].append(r)
    return bands


class RankingPipeline:
    def __init__(
        self,
        client: EmbeddingClient,
        embeddings: RecordEmbeddings,
        pool: CandidatePoolResolver,
        scorer: FallbackScorer,
        settings: MatchingSettings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.embeddings = embeddings
        self.pool = pool
        self.scorer = scorer
        self.settings = settings
        self._clock = clock

    def start_deadline(self) -> float:
        return self._clock() + self.settings.request_budget_seconds

    # ---- worker view -------------------------------------------------------

    async def rank_jobs_for_worker(self, worker: WorkerProfile, mode: MatchMode = MatchMode.AI) -> RecommendationList:
        if mode == MatchMode.TRADITIONAL:
            return await self._fallback_jobs(worker, degraded=False)

        if not self.client.is_configured():
            logger.info(f"Embedding provider unconfigured; fallback scoring for worker {worker.id}")
            return await self._fallback_jobs(worker, degraded=True)

        deadline = self.start_deadline()
        subject = await self.embeddings.resolve_worker(worker)
        if not subject.ok:
            logger.warning(
                f"Worker {worker.id} embedding unavailable ({subject.error.value}); fallback scoring",
                extra={"worker_id": worker.id, "error_kind": subject.error.value}
            )
            return await self._fallback_jobs(worker, degraded=True)

        jobs = await self.pool.postings_for_worker(worker)
        results, partial = await self._score_semantic(
            subject_id=worker.id,
            subject_vector=subject.vector,
            candidates=jobs,
            resolve=self.embeddings.resolve_job,
            reason=lambda job, score: job_match_reason(worker, job, score),
            deadline=deadline,
        )
        ranked = order_results(results)[:self.settings.worker_result_cap]
        return RecommendationList(
            subject_id=worker.id, ai_powered=True, partial=partial, recommendations=ranked
        )

    async def _fallback_jobs(self, worker: WorkerProfile, degraded: bool) -> RecommendationList:
        jobs = await self.pool.postings_for_worker(worker)
        results = []
        for job in jobs:
            result = self._fallback_result(worker.id, job.id, worker, job)
            if result is not None:
                results.append(result)
        ranked = order_results(results)[:self.settings.worker_result_cap]
        return RecommendationList(
            subject_id=worker.id, ai_powered=False, fallback=degraded, recommendations=ranked
        )

    # ---- employer view -----------------------------------------------------

    async def rank_workers_for_job(self, job: JobPosting, mode: MatchMode = MatchMode.AI,
                                   deadline: Optional[float] = None) -> BandedRecommendations:
        """Banded candidates for one posting.

        ``deadline`` (on this pipeline's clock) lets several postings share one
        request budget; past it the posting is returned empty and partial.
        """
        if deadline is None:
            deadline = self.start_deadline()
        elif self._clock() >= deadline:
            logger.warning(f"Ranking budget exhausted before job {job.id}; skipped")
            return self._banded(job.id, [], ai_powered=False, partial=True)

        if mode == MatchMode.TRADITIONAL:
            return await self._fallback_workers(job, degraded=False)

        if not self.client.is_configured():
            logger.info(f"Embedding provider unconfigured; fallback scoring for job {job.id}")
            return await self._fallback_workers(job, degraded=True)

        subject = await self.embeddings.resolve_job(job)
        if not subject.ok:
            logger.warning(
                f"Job {job.id} embedding unavailable ({subject.error.value}); fallback scoring",
                extra={"job_id": job.id, "error_kind": subject.error.value}
            )
            return await self._fallback_workers(job, degraded=True)

        workers = await self.pool.workers_for_posting(job, limit=self.settings.employer_pool_cap)
        results, partial = await self._score_semantic(
            subject_id=job.id,
            subject_vector=subject.vector,
            candidates=workers,
            resolve=self.embeddings.resolve_worker,
            reason=lambda worker, score: worker_match_reason(job, worker, score),
            deadline=deadline,
        )
        return self._banded(job.id, order_results(results), ai_powered=True, partial=partial)

    async def _fallback_workers(self, job: JobPosting, degraded: bool) -> BandedRecommendations:
        workers = await self.pool.workers_for_posting(job, limit=self.settings.employer_pool_cap)
        results = []
        for worker in workers:
            result = self._fallback_result(job.id, worker.id, worker, job)
            if result is not None:
                results.append(result)
        return self._banded(job.id, order_results(results), ai_powered=False, fallback=degraded)

    # ---- shared ------------------------------------------------------------

    async def _score_semantic(
        self,
        subject_id: str,
        subject_vector: Sequence[float],
        candidates: list,
        resolve: Callable[[object], Awaitable[EmbeddingResult]],
        reason: Callable[[object, float], str],
        deadline: float,
    ) -> Tuple[List[MatchResult], bool]:
        results = []
        dropped = 0
        for index, candidate in enumerate(candidates):
            if self._clock() >= deadline:
                logger.warning(
                    f"Ranking budget exhausted for {subject_id} after {index}/{len(candidates)} candidates",
                    extra={"subject_id": subject_id, "budget": self.settings.request_budget_seconds}
                )
                return results, True

            resolved = await resolve(candidate)
            if not resolved.ok:
                dropped += 1
                logger.debug(f"Dropping candidate {candidate.id}: {resolved.error.value}")
                continue

            score = similarity_to_score(cosine_similarity(subject_vector, resolved.vector))
            band = self._band(score)
            if band is None:
                continue
            results.append(MatchResult(
                subject_id=subject_id,
                candidate_id=candidate.id,
                score=score,
                band=band,
                reason=reason(candidate, score),
                ai_powered=True,
            ))

        if dropped:
            logger.info(f"{dropped} candidates for {subject_id} had no embedding and were skipped")
        return results, False

    def _fallback_result(self, subject_id: str, candidate_id: str, worker: WorkerProfile, job: JobPosting):
        scored = self.scorer.score(worker, job)
        band = self._band(scored.score)
        if band is None:
            return None
        return MatchResult(
            subject_id=subject_id,
            candidate_id=candidate_id,
            score=float(scored.score),
            band=band,
            reason=fallback_reason(scored.factors, scored.score),
            ai_powered=False,
            factors=scored.factors,
        )

    def _band(self, score: float):
        if score < self.settings.match_threshold:
            return None
        return score_band(score, basic_min=min(self.settings.match_threshold, 30.0))

    @staticmethod
    def _banded(job_id: str, ordered: List[MatchResult], ai_powered: bool,
                fallback: bool = False, partial: bool = False) -> BandedRecommendations:
        bands = partition_bands(ordered)
        return BandedRecommendations(
            job_id=job_id,
            ai_powered=ai_powered,
            fallback=fallback,
            partial=partial,
            excellent=bands[ScoreBand.EXCELLENT],
            good=bands[ScoreBand.GOOD],
            basic=bands[ScoreBand.BASIC],
        )
