import os
import json
import math
from typing import List, Optional

import numpy as np
from dotenv import load_dotenv

from gigmatch.models.match_settings import (
    CacheBackend, EmbeddingSettings, MatchingSettings, Settings, StoreSettings
)

load_dotenv()


def load_settings() -> Settings:
    """Build the settings bundle from the environment (.env included)."""
    return Settings(
        embedding=EmbeddingSettings(
            api_key=os.getenv("VOYAGE_API_KEY", ""),
            base_url=os.getenv("VOYAGE_BASE_URL", "https://api.voyageai.com/v1"),
            model_name=os.getenv("VOYAGE_MODEL", "voyage-3"),
            timeout=float(os.getenv("EMBED_TIMEOUT", "30")),
            cache_ttl_seconds=int(os.getenv("EMBED_CACHE_TTL", str(24 * 60 * 60))),
            batch_delay_seconds=float(os.getenv("EMBED_BATCH_DELAY", "0.1")),
            cache_backend=CacheBackend(os.getenv("VECTOR_CACHE_BACKEND", "memory").lower()),
        ),
        matching=MatchingSettings(
            match_threshold=float(os.getenv("MATCH_THRESHOLD", "30")),
            worker_result_cap=int(os.getenv("WORKER_RESULT_CAP", "20")),
            employer_pool_cap=int(os.getenv("EMPLOYER_POOL_CAP", "10")),
            employer_posting_cap=int(os.getenv("EMPLOYER_POSTING_CAP", "5")),
            request_budget_seconds=float(os.getenv("RANKING_BUDGET_SECONDS", "25")),
            skill_synonyms_path=os.getenv("SKILL_SYNONYMS_PATH") or None,
        ),
        store=StoreSettings(
            mongo_details=os.getenv("MONGO_DETAILS", "mongodb://localhost:27017"),
            db_name=os.getenv("DB_NAME", "gigmatch_db"),
        ),
    )


def coerce_vector(raw) -> Optional[List[float]]:
    """Parse a stored embedding; anything malformed is treated as absent."""
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, (list, tuple)) or not raw:
        return None
    try:
        arr = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if arr.ndim != 1 or not np.all(np.isfinite(arr)):
        return None
    return arr.tolist()


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))
