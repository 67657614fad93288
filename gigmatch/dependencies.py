"""
FastAPI dependencies for dependency injection.
"""
from functools import lru_cache

from gigmatch.models.match_settings import Settings
from gigmatch.utils.utils import load_settings


@lru_cache()
def get_settings() -> Settings:
    return load_settings()


@lru_cache()
def get_recommendation_service():
    """
    Process-wide recommendation service.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(service: RecommendationService = Depends(get_recommendation_service)):
            ...
    """
    from gigmatch.services.recommendations import RecommendationService
    return RecommendationService.from_settings(get_settings())
