import math
from datetime import timedelta

import pytest

from gigmatch.models.match_settings import MatchingSettings
from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.models.response import MatchMode, ScoreBand
from gigmatch.services.embedding_client import EmbeddingErrorKind
from conftest import FakeClock, FakeEmbeddingClient, make_job, make_worker


def at(similarity):
    """Unit vector whose cosine with [1, 0] is ``similarity``."""
    return [similarity, math.sqrt(1 - similarity ** 2)]


SUBJECT = [1.0, 0.0]


class TestWorkerRanking:
    """Test cases for postings ranked for a worker"""

    @pytest.mark.asyncio
    async def test_semantic_sorted_and_thresholded(self, build_pipeline, jobs_coll, worker):
        jobs_coll.docs.extend([make_job("ja"), make_job("jb"), make_job("jc"), make_job("jd")])
        client = FakeEmbeddingClient(vectors={
            "w1": SUBJECT, "ja": at(0.65), "jb": at(0.92), "jc": at(0.1), "jd": [-1.0, 0.0],
        })

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert result.ai_powered is True
        assert result.fallback is False
        assert [r.candidate_id for r in result.recommendations] == ["jb", "ja"]
        assert [r.score for r in result.recommendations] == [92.0, 65.0]
        assert result.recommendations[0].band == ScoreBand.EXCELLENT
        assert result.recommendations[1].band == ScoreBand.GOOD
        assert all(r.ai_powered for r in result.recommendations)
        assert result.recommendations[0].reason.startswith("Excellent match!")
        assert result.generated_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_ties_broken_by_candidate_id(self, build_pipeline, jobs_coll, worker):
        jobs_coll.docs.extend([make_job("j3"), make_job("j1"), make_job("j2")])
        client = FakeEmbeddingClient(vectors={"w1": SUBJECT, "j1": at(0.7), "j2": at(0.7), "j3": at(0.7)})

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert [r.candidate_id for r in result.recommendations] == ["j1", "j2", "j3"]

    @pytest.mark.asyncio
    async def test_capped_at_twenty(self, build_pipeline, jobs_coll, worker):
        vectors = {"w1": SUBJECT}
        for i in range(25):
            jobs_coll.docs.append(make_job(f"j{i:02d}"))
            vectors[f"j{i:02d}"] = at(0.5 + i / 100)
        client = FakeEmbeddingClient(vectors=vectors)

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert len(result.recommendations) == 20
        assert result.recommendations[0].candidate_id == "j24"
        scores = [r.score for r in result.recommendations]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_own_and_bid_postings_excluded(self, build_pipeline, jobs_coll, bids_coll, worker):
        jobs_coll.docs.extend([make_job("j1"), make_job("j2", employer_id="w1"), make_job("j3")])
        bids_coll.docs.append({"gig_worker_id": "w1", "job_id": "j3"})
        client = FakeEmbeddingClient(vectors={"w1": SUBJECT, "j1": at(0.9), "j2": at(0.9), "j3": at(0.9)})

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert [r.candidate_id for r in result.recommendations] == ["j1"]

    @pytest.mark.asyncio
    async def test_unconfigured_provider_falls_back(self, build_pipeline, jobs_coll, worker):
        jobs_coll.docs.append(make_job("j1"))
        client = FakeEmbeddingClient(configured=False)

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert result.ai_powered is False
        assert result.fallback is True
        assert client.calls == []
        [match] = result.recommendations
        assert match.score == 78
        assert match.band == ScoreBand.GOOD
        assert match.ai_powered is False
        assert [f.key for f in match.factors] == ["skills", "experience", "budget", "profile", "location"]

    @pytest.mark.asyncio
    async def test_traditional_mode_skips_provider(self, build_pipeline, jobs_coll, worker):
        jobs_coll.docs.append(make_job("j1"))
        client = FakeEmbeddingClient(vectors={"w1": SUBJECT, "j1": at(0.9)})

        result = await build_pipeline(client).rank_jobs_for_worker(worker, MatchMode.TRADITIONAL)

        assert result.ai_powered is False
        assert result.fallback is False
        assert client.calls == []
        assert result.recommendations[0].score == 78

    @pytest.mark.asyncio
    async def test_subject_failure_falls_back(self, build_pipeline, jobs_coll, worker):
        jobs_coll.docs.append(make_job("j1"))
        client = FakeEmbeddingClient(vectors={"j1": at(0.9)}, failures={"w1": EmbeddingErrorKind.TIMEOUT})

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert result.ai_powered is False
        assert result.fallback is True
        assert len(result.recommendations) == 1

    @pytest.mark.asyncio
    async def test_fallback_applies_threshold(self, build_pipeline, jobs_coll):
        jobs_coll.docs.append(make_job("j1", required_skills=["Rust"], experience_level="expert",
                                       budget_min=200, budget_max=300))
        weak = WorkerProfile(**make_worker(skills=[], experience_level="beginner", bio="", hourly_rate=None,
                                           professional_title=""))

        result = await build_pipeline(FakeEmbeddingClient(configured=False)).rank_jobs_for_worker(weak)

        assert result.recommendations == []

    @pytest.mark.asyncio
    async def test_candidate_failure_only_drops_candidate(self, build_pipeline, jobs_coll, worker):
        jobs_coll.docs.extend([make_job("j1"), make_job("j2"), make_job("j3")])
        client = FakeEmbeddingClient(
            vectors={"w1": SUBJECT, "j1": at(0.8), "j3": at(0.6)},
            failures={"j2": EmbeddingErrorKind.RATE_LIMITED},
        )

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert result.ai_powered is True
        assert [r.candidate_id for r in result.recommendations] == ["j1", "j3"]

    @pytest.mark.asyncio
    async def test_stored_candidate_vector_reused(self, build_pipeline, jobs_coll, worker):
        jobs_coll.docs.append(make_job("j1", skills_embedding=at(0.75)))
        client = FakeEmbeddingClient(vectors={"w1": SUBJECT})

        result = await build_pipeline(client).rank_jobs_for_worker(worker)

        assert client.calls == ["w1"]
        assert result.recommendations[0].score == 75.0

    @pytest.mark.asyncio
    async def test_budget_exhausted_returns_partial(self, build_pipeline, jobs_coll, worker):
        for i in range(5):
            jobs_coll.docs.append(make_job(f"j{i}"))
        client = FakeEmbeddingClient(vectors={"w1": SUBJECT, **{f"j{i}": at(0.9) for i in range(5)}})
        settings = MatchingSettings(request_budget_seconds=2.5)

        result = await build_pipeline(client, clock=FakeClock(step=1.0), settings=settings).rank_jobs_for_worker(worker)

        assert result.partial is True
        assert result.ai_powered is True
        assert [r.candidate_id for r in result.recommendations] == ["j0", "j1"]


class TestEmployerRanking:
    """Test cases for workers banded for a posting"""

    @pytest.mark.asyncio
    async def test_semantic_banding(self, build_pipeline, users_coll, job):
        users_coll.docs.extend([make_worker("wa"), make_worker("wb"), make_worker("wc"), make_worker("wd")])
        client = FakeEmbeddingClient(vectors={
            "j1": SUBJECT, "wa": at(0.85), "wb": at(0.7), "wc": at(0.4), "wd": at(0.2),
        })

        result = await build_pipeline(client).rank_workers_for_job(job)

        assert result.ai_powered is True
        assert [r.candidate_id for r in result.excellent] == ["wa"]
        assert [r.candidate_id for r in result.good] == ["wb"]
        assert [r.candidate_id for r in result.basic] == ["wc"]
        assert result.excellent[0].reason.startswith("Perfect candidate! Ama")

    @pytest.mark.asyncio
    async def test_pool_capped_at_ten(self, build_pipeline, users_coll, job):
        users_coll.docs.extend([make_worker(f"w{i:02d}") for i in range(12)])
        client = FakeEmbeddingClient(vectors={"j1": SUBJECT, **{f"w{i:02d}": at(0.9) for i in range(12)}})

        result = await build_pipeline(client).rank_workers_for_job(job)

        assert len(result.excellent) == 10
        assert len(client.calls) == 11

    @pytest.mark.asyncio
    async def test_employer_not_a_candidate(self, build_pipeline, users_coll, job):
        users_coll.docs.extend([make_worker("e1"), make_worker("w1")])
        client = FakeEmbeddingClient(vectors={"j1": SUBJECT, "e1": at(0.9), "w1": at(0.9)})

        result = await build_pipeline(client).rank_workers_for_job(job)

        assert [r.candidate_id for r in result.excellent] == ["w1"]

    @pytest.mark.asyncio
    async def test_expired_shared_deadline_skips_posting(self, build_pipeline, users_coll, job):
        users_coll.docs.append(make_worker("w1"))
        client = FakeEmbeddingClient(vectors={"j1": SUBJECT, "w1": at(0.9)})
        pipeline = build_pipeline(client, clock=FakeClock(start=30.0))

        result = await pipeline.rank_workers_for_job(job, deadline=25.0)

        assert result.partial is True
        assert result.excellent == result.good == result.basic == []
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_unconfigured_falls_back_with_bands(self, build_pipeline, users_coll):
        users_coll.docs.append(make_worker("w1"))
        job = JobPosting(**make_job("j1"))

        result = await build_pipeline(FakeEmbeddingClient(configured=False)).rank_workers_for_job(job)

        assert result.ai_powered is False
        assert result.fallback is True
        assert [r.candidate_id for r in result.good] == ["w1"]
        assert result.good[0].score == 78
        assert result.good[0].reason.startswith("Good match.")
