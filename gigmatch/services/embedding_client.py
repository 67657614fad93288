"""
Client for the remote text-embedding provider (Voyage-compatible API).

Failures are reported through ``EmbeddingResult.error`` rather than raised, so
callers can branch on the kind of failure.
"""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import requests

from gigmatch.models.match_settings import EmbeddingSettings
from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.services.vector_cache import VectorCache, MemoryVectorCache, cache_key
from gigmatch.utils.logging_config import get_logger

logger = get_logger(__name__)


class EmbeddingErrorKind(str, Enum):
    UNCONFIGURED = "unconfigured"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"


@dataclass
class EmbeddingResult:
    vector: Optional[List[float]] = None
    error: Optional[EmbeddingErrorKind] = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.vector is not None

    @classmethod
    def failure(cls, kind: EmbeddingErrorKind) -> "EmbeddingResult":
        return cls(vector=None, error=kind)


def job_embedding_text(job: JobPosting) -> str:
    skills_text = ", ".join(job.required_skills)
    return f"Job Title: {job.title}\nRequired Skills: {skills_text}\nDescription: {job.description}"


def worker_embedding_text(worker: WorkerProfile) -> str:
    skills_text = ", ".join(worker.skills)
    level = worker.experience_level or "beginner"
    return (
        f"Professional Title: {worker.professional_title}\n"
        f"Experience Level: {level}\n"
        f"Skills: {skills_text}\n"
        f"Bio: {worker.bio}"
    )


class EmbeddingClient:
    def __init__(
        self,
        settings: EmbeddingSettings,
        cache: VectorCache = None,
        session: requests.Session = None,
        sleep=time.sleep,
    ):
        self.settings = settings
        self.cache = cache if cache is not None else MemoryVectorCache()
        self.session = session or requests.Session()
        self._sleep = sleep

    def is_configured(self) -> bool:
        return bool(self.settings.api_key)

    def embed(self, text: str, before_request: Callable[[], None] = None) -> EmbeddingResult:
        """Embed one text, consulting the vector cache first.

        ``before_request`` runs only when the provider is actually called.
        """
        if not self.is_configured():
            logger.warning("Embedding provider API key not configured")
            return EmbeddingResult.failure(EmbeddingErrorKind.UNCONFIGURED)

        key = cache_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            return EmbeddingResult(vector=cached, cached=True)

        if before_request is not None:
            before_request()
        try:
            resp = self.session.post(
                self.settings.embeddings_url,
                headers={
                    "Authorization": f"Bearer {self.settings.api_key}",
                    "Content-Type": "application/json",
                },
                json={"model": self.settings.model_name, "input": text},
                timeout=self.settings.timeout,
            )
        except requests.Timeout:
            logger.error(
                "Embedding provider timed out",
                extra={"timeout": self.settings.timeout, "text": text[:100]}
            )
            return EmbeddingResult.failure(EmbeddingErrorKind.TIMEOUT)
        except requests.RequestException as e:
            logger.error(
                f"Embedding provider request failed: {e}",
                extra={"text": text[:100]}
            )
            return EmbeddingResult.failure(EmbeddingErrorKind.PROVIDER_ERROR)

        if resp.status_code == 429:
            logger.warning("Embedding provider rate limit hit", extra={"status": resp.status_code})
            return EmbeddingResult.failure(EmbeddingErrorKind.RATE_LIMITED)

        if not resp.ok:
            logger.error(
                "Embedding provider API error",
                extra={"status": resp.status_code, "response": resp.text[:500]}
            )
            return EmbeddingResult.failure(EmbeddingErrorKind.PROVIDER_ERROR)

        vector = self._parse_vector(resp)
        if vector is None:
            logger.error("Embedding provider returned no usable vector", extra={"text": text[:100]})
            return EmbeddingResult.failure(EmbeddingErrorKind.PROVIDER_ERROR)

        self.cache.put(key, vector, self.settings.cache_ttl_seconds)
        return EmbeddingResult(vector=vector)

    @staticmethod
    def _parse_vector(resp) -> Optional[List[float]]:
        try:
            data = resp.json()
            embedding = data["data"][0]["embedding"]
            return [float(x) for x in embedding]
        except (ValueError, KeyError, IndexError, TypeError):
            return None

    def embed_batch(self, texts: List[str]) -> List[EmbeddingResult]:
        """Embed texts one at a time, pausing between provider calls.

        One failure does not abort the batch; each index carries its own result.
        Cache hits neither wait nor count as a provider call.
        """
        provider_calls = 0

        def pace():
            nonlocal provider_calls
            if provider_calls and self.settings.batch_delay_seconds:
                self._sleep(self.settings.batch_delay_seconds)
            provider_calls += 1

        return [self.embed(text, before_request=pace) for text in texts]

    def embed_job(self, job: JobPosting) -> EmbeddingResult:
        return self.embed(job_embedding_text(job))

    def embed_worker(self, worker: WorkerProfile) -> EmbeddingResult:
        return self.embed(worker_embedding_text(worker))

    def test_connection(self) -> EmbeddingResult:
        return self.embed("test connection")
