"""
Settings Models for the matching engine
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CacheBackend(str, Enum):
    """Available vector cache backends"""
    MEMORY = "memory"
    MONGO = "mongo"


class EmbeddingSettings(BaseModel):
    """Embedding provider configuration"""
    api_key: str = Field(default="", description="Provider credential; empty means unconfigured")
    base_url: str = Field(default="https://api.voyageai.com/v1", description="Provider base URL")
    model_name: str = Field(default="voyage-3", description="Embedding model name")
    timeout: float = Field(default=30.0, gt=0, le=300, description="Request timeout in seconds")
    cache_ttl_seconds: int = Field(default=24 * 60 * 60, ge=1, description="Vector cache time-to-live")
    batch_delay_seconds: float = Field(default=0.1, ge=0.0, le=10.0, description="Pause between sequential batch calls")
    cache_backend: CacheBackend = Field(default=CacheBackend.MEMORY, description="Where cached vectors live")

    model_config = {"protected_namespaces": ()}

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @property
    def embeddings_url(self) -> str:
        return f"{self.base_url}/embeddings"


class MatchingSettings(BaseModel):
    """Ranking pipeline thresholds and caps"""
    match_threshold: float = Field(default=30.0, ge=0.0, le=100.0, description="Minimum score kept in a ranked list")
    worker_result_cap: int = Field(default=20, ge=1, description="Maximum postings returned to a worker")
    employer_pool_cap: int = Field(default=10, ge=1, description="Workers fetched per posting before scoring")
    employer_posting_cap: int = Field(default=5, ge=1, description="Postings covered by the employer overview")
    request_budget_seconds: float = Field(default=25.0, gt=0, description="Wall-clock budget for one ranking request")
    skill_synonyms_path: Optional[str] = Field(default=None, description="JSON file overriding the skill synonym table")


class StoreSettings(BaseModel):
    """Record store connection settings"""
    mongo_details: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="gigmatch_db", description="Database name")


class Settings(BaseModel):
    """Complete settings bundle"""
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
