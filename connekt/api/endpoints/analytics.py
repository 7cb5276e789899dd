from fastapi import APIRouter, Depends, HTTPException, Query

from connekt.api.deps import get_viewer_id
from connekt.models.analytics import (
    AdvancedSearchFilters,
    PortfolioAnalytics,
    ProductivityReport,
    ProjectMetrics,
    SearchResults,
    WorkspaceAnalytics,
)
from connekt.services.analytics.pro import connect_pro_service
from connekt.services.analytics.reputation import reputation_scorer
from connekt.services.profile.privacy import PrivacyFilter

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/workspaces/{workspace_id}", response_model=WorkspaceAnalytics)
async def workspace_analytics(workspace_id: str):
    return await connect_pro_service.workspace_analytics(workspace_id)


@router.get("/projects/{project_id}", response_model=ProjectMetrics)
async def project_metrics(project_id: str):
    metrics = await connect_pro_service.project_performance_metrics(project_id)
    if metrics is None:
        raise HTTPException(status_code=404, detail="Project not found.")
    return metrics


@router.get("/users/{uid}/productivity", response_model=ProductivityReport)
async def productivity_report(uid: str, period: str | None = Query(default=None, description="YYYY-MM")):
    try:
        return await connect_pro_service.user_productivity_report(uid, period)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/users/{uid}/portfolio", response_model=PortfolioAnalytics)
async def portfolio_analytics(uid: str):
    return await connect_pro_service.portfolio_analytics(uid)


@router.get("/users/{uid}/reputation")
async def reputation(uid: str) -> dict:
    return {"uid": uid, "score": await reputation_scorer.calculate_reputation_score(uid)}


@router.post("/search", response_model=SearchResults, response_model_exclude_none=True)
async def advanced_search(
    filters: AdvancedSearchFilters,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    viewer_id: str | None = Depends(get_viewer_id),
):
    """Candidate search. A page may hold fewer than ``page_size`` users even when more matches exist."""
    results = await connect_pro_service.advanced_search(filters, page, page_size)
    results.users = PrivacyFilter.filter_profiles(results.users, viewer_id)
    return results
