import asyncio
from typing import Any

from loguru import logger

from connekt.core.config import settings
from connekt.core.constants import AGENCY_PROFILES, CONTRACTS, PLACEMENT_CONTRACT_TYPES, SECONDS_PER_DAY, USER_PROFILES
from connekt.core.security import redact_id
from connekt.models.analytics import (
    AdvancedSearchFilters,
    ClientDashboard,
    CommissionBreakdown,
    PerformanceMetrics,
    PlacementMetrics,
    TalentPoolAnalytics,
    TopClient,
    TopPerformer,
)
from connekt.models.profile import BrandingConfig, UserProfile, dump_document
from connekt.services.analytics.constants import (
    AVAILABLE_MEMBERS_PLACEHOLDER,
    CLIENT_RETENTION_RATE_PLACEHOLDER,
    CLIENT_SATISFACTION_PLACEHOLDER,
    MONTHS_PER_YEAR,
    PLACEMENTS_BY_SKILL_PLACEHOLDER,
    PRIORITY_SEARCH_MAX_RESULTS,
    TALENT_COMPLETION_RATE_PLACEHOLDER,
    TOP_CLIENTS_COUNT,
    TOP_PERFORMERS_COUNT,
)
from connekt.services.analytics.pro import ConnectProService, month_key, profile_from_document
from connekt.services.document_store import STORE_ERRORS, collection, get_path, to_datetime


def _contract_value(contract: dict[str, Any]) -> float:
    return get_path(contract, "terms.paymentAmount") or 0


class ConnectProPlusService(ConnectProService):
    """
    Pro Plus analytics for agencies: talent pool, clients, placements,
    commissions and white-label branding, on top of every Pro report.
    """

    # ==========================================
    # TALENT POOL
    # ==========================================

    async def _member_profile(self, uid: str) -> UserProfile | None:
        doc = await self.store.get(USER_PROFILES, uid)
        return profile_from_document(doc) if doc else None

    async def talent_pool_analytics(self, agency_id: str) -> TalentPoolAnalytics | None:
        """
        Skill histogram and top performers across an agency's members.

        Member profiles are fetched concurrently, all at once, for at most
        TALENT_POOL_MEMBER_LIMIT members. A member whose profile cannot be
        fetched is left out of the distributions.
        """
        agency = await self.profiles.get_agency_profile(agency_id)
        if agency is None:
            logger.warning(f"Agency {redact_id(agency_id)} not found")
            return None

        members = agency.members
        active_members = sum(1 for member in members if member.status == "active")

        fetched = await asyncio.gather(
            *[self._member_profile(member.userId) for member in members[: settings.TALENT_POOL_MEMBER_LIMIT]],
            return_exceptions=True,
        )
        profiles: list[UserProfile] = []
        for result in fetched:
            if isinstance(result, Exception):
                logger.warning(f"Skipping member profile for agency {redact_id(agency_id)}: {result}")
                continue
            if result is not None:
                profiles.append(result)

        skill_distribution: dict[str, int] = {}
        for profile in profiles:
            for skill in profile.skills:
                skill_distribution[skill] = skill_distribution.get(skill, 0) + 1

        # Members without any rating do not pull the average down
        ratings = [p.stats.averageRating for p in profiles if p.stats.averageRating]
        average_rating = sum(ratings) / len(ratings) if ratings else 0

        ranked = sorted(profiles, key=lambda p: p.stats.averageRating, reverse=True)
        top_performers = [
            TopPerformer(
                userId=p.uid,
                username=p.username,
                rating=p.stats.averageRating,
                projectsCompleted=p.stats.projectsCompleted,
            )
            for p in ranked[:TOP_PERFORMERS_COUNT]
        ]

        return TalentPoolAnalytics(
            agencyId=agency_id,
            totalTalent=len(members),
            activeMembers=active_members,
            availableMembers=AVAILABLE_MEMBERS_PLACEHOLDER,
            skillDistribution=skill_distribution,
            performanceMetrics=PerformanceMetrics(
                averageRating=average_rating,
                completionRate=TALENT_COMPLETION_RATE_PLACEHOLDER,
                clientSatisfaction=CLIENT_SATISFACTION_PLACEHOLDER,
            ),
            topPerformers=top_performers,
        )

    # ==========================================
    # CLIENTS & PLACEMENTS
    # ==========================================

    async def client_management_dashboard(self, agency_id: str) -> ClientDashboard:
        """
        Revenue per client over active contracts.

        Contracts are not linked to agencies, so every active contract on the
        platform is counted regardless of ``agency_id``.
        """
        try:
            contracts = await self.store.query(collection(CONTRACTS).where("status", "==", "active"))
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get client dashboard for {redact_id(agency_id)}: {exc}")
            return ClientDashboard(agencyId=agency_id)

        clients: dict[str, TopClient] = {}
        total_revenue = 0.0
        for contract in contracts:
            client_id = contract.get("fromUserId") or ""
            client = clients.get(client_id)
            if client is None:
                client = TopClient(clientId=client_id, clientName=contract.get("fromUsername"))
                clients[client_id] = client
            value = _contract_value(contract)
            client.totalSpent += value
            client.projectsCount += 1
            total_revenue += value

        top_clients = sorted(clients.values(), key=lambda c: c.totalSpent, reverse=True)[:TOP_CLIENTS_COUNT]

        return ClientDashboard(
            agencyId=agency_id,
            totalClients=len(clients),
            activeContracts=len(contracts),
            monthlyRevenue=total_revenue / MONTHS_PER_YEAR,
            clientRetentionRate=CLIENT_RETENTION_RATE_PLACEHOLDER,
            topClients=top_clients,
        )

    async def placement_tracking(self, agency_id: str) -> PlacementMetrics:
        """Placement volume, acceptance and time-to-place over job contracts (not agency scoped)."""
        try:
            placements = await self.store.query(
                collection(CONTRACTS).where("type", "in", list(PLACEMENT_CONTRACT_TYPES))
            )
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get placement metrics for {redact_id(agency_id)}: {exc}")
            return PlacementMetrics(agencyId=agency_id)

        total = len(placements)
        accepted = sum(1 for p in placements if p.get("status") == "accepted")

        days_to_place = []
        for placement in placements:
            created, responded = to_datetime(placement.get("createdAt")), to_datetime(placement.get("respondedAt"))
            if created and responded:
                days_to_place.append((responded - created).total_seconds() / SECONDS_PER_DAY)

        by_month: dict[str, int] = {}
        for placement in placements:
            month = month_key(placement.get("createdAt"))
            if month:
                by_month[month] = by_month.get(month, 0) + 1

        return PlacementMetrics(
            agencyId=agency_id,
            totalPlacements=total,
            successRate=accepted / total * 100 if total > 0 else 0,
            averageTimeToPlace=sum(days_to_place) / len(days_to_place) if days_to_place else 0,
            placementsByMonth=by_month,
            placementsBySkill=dict(PLACEMENTS_BY_SKILL_PLACEHOLDER),
        )

    async def calculate_commission(
        self, placement_id: str, commission_rate: float | None = None
    ) -> CommissionBreakdown | None:
        """Commission owed on one placement contract; None when the contract does not exist."""
        rate = commission_rate if commission_rate is not None else settings.DEFAULT_COMMISSION_RATE
        try:
            placement = await self.store.get(CONTRACTS, placement_id)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to calculate commission for {placement_id}: {exc}")
            return None
        if placement is None:
            logger.warning(f"Placement {placement_id} not found")
            return None

        value = _contract_value(placement)
        return CommissionBreakdown(
            placementId=placement_id,
            candidateName=placement.get("toUsername"),
            clientName=placement.get("fromUsername"),
            contractValue=value,
            commissionRate=rate,
            commissionAmount=value * (rate / 100),
            paymentStatus="pending",
        )

    # ==========================================
    # WHITE-LABEL
    # ==========================================

    async def setup_custom_branding(self, agency_id: str, branding: BrandingConfig) -> bool:
        """Store the branding on the agency profile; the custom domain also drives the portal URL."""
        try:
            if not await self.store.exists(AGENCY_PROFILES, agency_id):
                logger.warning(f"Cannot brand unknown agency {redact_id(agency_id)}")
                return False
        except STORE_ERRORS as exc:
            logger.error(f"Failed to set up branding for {redact_id(agency_id)}: {exc}")
            return False

        config = branding.model_copy(update={"agencyId": agency_id})
        updates: dict[str, Any] = {"branding": dump_document(config)}
        if config.customDomain:
            updates["customDomain"] = config.customDomain
        return await self.profiles.update_agency_profile(agency_id, updates)

    async def branded_portal_url(self, agency_id: str) -> str | None:
        agency = await self.profiles.get_agency_profile(agency_id)
        if agency is None:
            return None
        if agency.customDomain:
            return f"https://{agency.customDomain}/portal"
        return f"https://{agency.username}.{settings.PORTAL_BASE_DOMAIN}/portal"

    async def priority_candidate_search(
        self, job_description: str, required_skills: list[str], max_results: int = PRIORITY_SEARCH_MAX_RESULTS
    ) -> list[UserProfile]:
        """First page of an advanced search on the required skills.

        ``job_description`` is accepted for callers but not used for ranking yet.
        """
        results = await self.advanced_search(AdvancedSearchFilters(skills=required_skills), 1, max_results)
        return results.users


connect_pro_plus_service = ConnectProPlusService()
