from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from gigmatch.dependencies import get_recommendation_service
from gigmatch.models.models import ProfileUpdate, RecordKind
from gigmatch.models.response import (
    BandedRecommendations, EmployerOverview, MatchMode, ProfileUpdateResponse,
    ProviderStatus, RecommendationList, WarmEmbeddingsReport
)
from gigmatch.services.recommendations import RecommendationService
from gigmatch.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/gig-worker/{worker_id}/recommendations", response_model=RecommendationList)
async def get_job_recommendations(
    worker_id: str,
    request: Request,
    mode: MatchMode = Query(MatchMode.AI, description="'ai' for semantic matching, 'traditional' for the weighted scorer"),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Ranked postings for a gig worker"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.info(
        f"Job recommendations requested for worker {worker_id}",
        extra={"request_id": request_id, "worker_id": worker_id, "mode": mode.value}
    )
    return await service.get_recommendations_for(worker_id, mode)


@router.get("/employer/jobs/{job_id}/recommendations", response_model=BandedRecommendations)
async def get_worker_recommendations(
    job_id: str,
    request: Request,
    mode: MatchMode = Query(MatchMode.AI),
    employer_id: Optional[str] = Query(None, description="Restrict to postings owned by this employer"),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Banded worker candidates for one posting"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.info(
        f"Worker recommendations requested for job {job_id}",
        extra={"request_id": request_id, "job_id": job_id, "mode": mode.value}
    )
    return await service.get_candidates_for(job_id, mode, employer_id=employer_id)


@router.get("/employer/{employer_id}/recommendations", response_model=EmployerOverview)
async def get_employer_overview(
    employer_id: str,
    mode: MatchMode = Query(MatchMode.AI),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Banded candidates for each of the employer's open postings"""
    return await service.get_employer_overview(employer_id, mode)


@router.post("/ai/recommendations/update-profile/{worker_id}", response_model=ProfileUpdateResponse)
async def update_profile_recommendations(
    worker_id: str,
    update: ProfileUpdate,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Apply a profile change and return refreshed recommendations"""
    return await service.update_profile(worker_id, update)


@router.post("/ai/embeddings/warm", response_model=WarmEmbeddingsReport)
async def warm_embeddings(
    kind: RecordKind = Query(RecordKind.JOB, description="'job' or 'worker'"),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Generate stored vectors for records that have none"""
    return await service.warm_embeddings(kind)


@router.get("/ai/test-connection", response_model=ProviderStatus)
async def test_connection(service: RecommendationService = Depends(get_recommendation_service)):
    """Embedding provider configuration and reachability"""
    return await service.provider_status()


@router.get("/skills", response_model=List[str])
async def all_skills(service: RecommendationService = Depends(get_recommendation_service)):
    """All unique required skills across postings"""
    return await service.list_skills()
