"""Shared fixtures: in-memory stand-ins for Mongo collections and the embedding provider."""
import os

os.environ.setdefault("ENVIRONMENT", "testing")

import copy

import pytest

from gigmatch.models.match_settings import MatchingSettings
from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.services.candidate_pool import CandidatePoolResolver
from gigmatch.services.embedding_client import EmbeddingErrorKind, EmbeddingResult
from gigmatch.services.fallback_scorer import FallbackScorer
from gigmatch.services.ranking import RankingPipeline
from gigmatch.services.record_embeddings import RecordEmbeddings
from gigmatch.services.records import RecordStore


def _matches(doc, query):
    for field, cond in query.items():
        value = doc.get(field)
        if isinstance(cond, dict):
            for op, arg in cond.items():
                if op == "$ne" and value == arg:
                    return False
                if op == "$in" and value not in arg:
                    return False
                if op == "$nin" and value in arg:
                    return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._limit = None

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs[:self._limit] if self._limit else self._docs
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    """Just enough of the motor collection API for the record store."""

    def __init__(self, name="fake", docs=None):
        self.name = name
        self.docs = [dict(d) for d in (docs or [])]
        self.updates = []

    def find(self, query=None, projection=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def find_one(self, query):
        for d in self.docs:
            if _matches(d, query):
                return copy.deepcopy(d)
        return None

    async def update_one(self, query, update, upsert=False):
        self.updates.append((query, update))
        for d in self.docs:
            if _matches(d, query):
                d.update(update.get("$set", {}))
                return
        if upsert:
            self.docs.append({**query, **update.get("$set", {})})

    async def create_index(self, keys, **kwargs):
        return "_".join(k for k, _ in keys)


class FakeEmbeddingClient:
    """Provider stand-in keyed by record id instead of text."""

    def __init__(self, vectors=None, configured=True, failures=None):
        self.vectors = vectors or {}
        self.configured = configured
        self.failures = failures or {}
        self.calls = []

    def is_configured(self):
        return self.configured

    def _lookup(self, record_id):
        self.calls.append(record_id)
        if not self.configured:
            return EmbeddingResult.failure(EmbeddingErrorKind.UNCONFIGURED)
        if record_id in self.failures:
            return EmbeddingResult.failure(self.failures[record_id])
        if record_id not in self.vectors:
            return EmbeddingResult.failure(EmbeddingErrorKind.PROVIDER_ERROR)
        return EmbeddingResult(vector=list(self.vectors[record_id]))

    def embed_worker(self, worker):
        return self._lookup(worker.id)

    def embed_job(self, job):
        return self._lookup(job.id)

    def test_connection(self):
        return EmbeddingResult(vector=[1.0]) if self.configured else EmbeddingResult.failure(EmbeddingErrorKind.UNCONFIGURED)


async def run_inline(fn, *args):
    return fn(*args)


def make_worker(worker_id="w1", **overrides):
    data = {
        "id": worker_id,
        "first_name": "Ama",
        "user_type": "gig_worker",
        "skills": ["PHP", "Laravel", "Git"],
        "bio": "Backend developer focused on Laravel APIs and MySQL-backed web applications.",
        "professional_title": "Backend Developer",
        "experience_level": "intermediate",
        "hourly_rate": 25,
        "profile_status": "active",
        "profile_completed": True,
    }
    data.update(overrides)
    return data


def make_job(job_id="j1", employer_id="e1", **overrides):
    data = {
        "id": job_id,
        "employer_id": employer_id,
        "title": "Laravel developer",
        "description": "Build and maintain a Laravel API.",
        "required_skills": ["Laravel", "MySQL"],
        "experience_level": "intermediate",
        "budget_min": 20,
        "budget_max": 30,
        "status": "open",
    }
    data.update(overrides)
    return data


class FakeClock:
    def __init__(self, start=0.0, step=0.0):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def users_coll():
    return FakeCollection("users")


@pytest.fixture
def jobs_coll():
    return FakeCollection("gig_jobs")


@pytest.fixture
def bids_coll():
    return FakeCollection("bids")


@pytest.fixture
def store(users_coll, jobs_coll, bids_coll):
    return RecordStore(users_coll=users_coll, jobs_coll=jobs_coll, bids_coll=bids_coll)


@pytest.fixture
def matching_settings():
    return MatchingSettings()


@pytest.fixture
def build_pipeline(store, matching_settings):
    def _build(client, clock=None, settings=None):
        kwargs = {}
        if clock is not None:
            kwargs["clock"] = clock
        return RankingPipeline(
            client=client,
            embeddings=RecordEmbeddings(client, store, run_blocking=run_inline),
            pool=CandidatePoolResolver(store),
            scorer=FallbackScorer(),
            settings=settings or matching_settings,
            **kwargs,
        )
    return _build


@pytest.fixture
def worker():
    return WorkerProfile(**make_worker())


@pytest.fixture
def job():
    return JobPosting(**make_job())
