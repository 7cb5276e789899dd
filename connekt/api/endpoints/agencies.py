from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from connekt.api.deps import get_viewer_id
from connekt.models.analytics import ClientDashboard, CommissionBreakdown, PlacementMetrics, TalentPoolAnalytics
from connekt.models.profile import AgencyProfile, BrandingConfig, UserProfile
from connekt.services.analytics.pro_plus import connect_pro_plus_service
from connekt.services.profile.privacy import PrivacyFilter
from connekt.services.profile.store import profile_store

router = APIRouter(prefix="/agencies", tags=["agencies"])


class BrandingRequest(BaseModel):
    logo: str | None = None
    primaryColor: str
    secondaryColor: str
    customDomain: str | None = None
    emailTemplates: dict[str, str] | None = None


class PrioritySearchRequest(BaseModel):
    jobDescription: str = ""
    requiredSkills: list[str] = Field(default_factory=list)
    maxResults: int = Field(default=20, ge=1, le=100)


async def _require_agency_owner(agency_id: str, viewer_id: str | None) -> AgencyProfile:
    if viewer_id is None:
        raise HTTPException(status_code=401, detail="Authentication required.")
    agency = await profile_store.get_agency_profile(agency_id)
    if agency is None:
        raise HTTPException(status_code=404, detail="Agency not found.")
    if agency.ownerId != viewer_id:
        raise HTTPException(status_code=403, detail="Only the agency owner can change this agency.")
    return agency


# Routes without an agency id come first so they are not read as one


@router.get("/commissions/{placement_id}", response_model=CommissionBreakdown, response_model_exclude_none=True)
async def commission(placement_id: str, rate: float | None = Query(default=None, ge=0, le=100)):
    breakdown = await connect_pro_plus_service.calculate_commission(placement_id, rate)
    if breakdown is None:
        raise HTTPException(status_code=404, detail="Placement not found.")
    return breakdown


@router.post("/candidates/priority-search", response_model=list[UserProfile], response_model_exclude_none=True)
async def priority_candidate_search(payload: PrioritySearchRequest, viewer_id: str | None = Depends(get_viewer_id)):
    candidates = await connect_pro_plus_service.priority_candidate_search(
        payload.jobDescription, payload.requiredSkills, payload.maxResults
    )
    return PrivacyFilter.filter_profiles(candidates, viewer_id)


@router.get("/{agency_id}", response_model=AgencyProfile, response_model_exclude_none=True)
async def get_agency(agency_id: str):
    agency = await profile_store.get_agency_profile(agency_id)
    if agency is None:
        raise HTTPException(status_code=404, detail="Agency not found.")
    return agency


@router.put("/{agency_id}")
async def update_agency(
    agency_id: str, payload: dict[str, Any] = Body(...), viewer_id: str | None = Depends(get_viewer_id)
):
    await _require_agency_owner(agency_id, viewer_id)
    for name in ("id", "ownerId", "stats", "branding"):
        payload.pop(name, None)
    try:
        ok = await profile_store.update_agency_profile(agency_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not ok:
        raise HTTPException(status_code=502, detail="Failed to update agency profile.")
    return {"status": "ok"}


@router.get("/{agency_id}/talent-pool", response_model=TalentPoolAnalytics)
async def talent_pool(agency_id: str):
    analytics = await connect_pro_plus_service.talent_pool_analytics(agency_id)
    if analytics is None:
        raise HTTPException(status_code=404, detail="Agency not found.")
    return analytics


@router.get("/{agency_id}/clients", response_model=ClientDashboard, response_model_exclude_none=True)
async def client_dashboard(agency_id: str):
    return await connect_pro_plus_service.client_management_dashboard(agency_id)


@router.get("/{agency_id}/placements", response_model=PlacementMetrics)
async def placements(agency_id: str):
    return await connect_pro_plus_service.placement_tracking(agency_id)


@router.put("/{agency_id}/branding")
async def setup_branding(agency_id: str, payload: BrandingRequest, viewer_id: str | None = Depends(get_viewer_id)):
    await _require_agency_owner(agency_id, viewer_id)
    branding = BrandingConfig(agencyId=agency_id, **payload.model_dump())
    if not await connect_pro_plus_service.setup_custom_branding(agency_id, branding):
        raise HTTPException(status_code=502, detail="Failed to save branding.")
    return {"status": "ok"}


@router.get("/{agency_id}/portal-url")
async def portal_url(agency_id: str) -> dict[str, str]:
    url = await connect_pro_plus_service.branded_portal_url(agency_id)
    if url is None:
        raise HTTPException(status_code=404, detail="Agency not found.")
    return {"url": url}
