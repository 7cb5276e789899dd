import re
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from connekt.core.config import settings
from connekt.core.constants import COMPLETED_TASK_STATUSES, PROJECTS, SECONDS_PER_DAY, TASKS, USER_PROFILES
from connekt.core.security import redact_id
from connekt.models.analytics import (
    AdvancedSearchFilters,
    PortfolioAnalytics,
    ProductivityReport,
    ProjectMetrics,
    SearchResults,
    TimelineHealth,
    WorkspaceAnalytics,
)
from connekt.models.profile import UserProfile
from connekt.services.analytics.constants import (
    AT_RISK_COMPLETION_RATE,
    AT_RISK_DAYS_TO_DEADLINE,
    BUDGET_UTILIZATION_PLACEHOLDER,
    GROWTH_AREAS_PLACEHOLDER,
    ON_TIME_RATE_WITHOUT_COMPLETIONS,
    PERFORMANCE_MAX_SCORE,
    PERFORMANCE_WEIGHT_RATING,
    PERFORMANCE_WEIGHT_TASKS,
    TOP_SKILLS_COUNT,
)
from connekt.services.document_store import (
    STORE_ERRORS,
    DocumentStore,
    collection,
    document_store,
    get_path,
    to_datetime,
)
from connekt.services.profile.store import ProfileStore, merge_profile_sources, profile_store

_PERIOD_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def _is_completed_task(task: dict[str, Any]) -> bool:
    return task.get("status") in COMPLETED_TASK_STATUSES


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0


def month_key(value: Any) -> str | None:
    moment = to_datetime(value)
    return moment.strftime("%Y-%m") if moment else None


def month_window(period: str) -> tuple[datetime, datetime]:
    """
    Parse a ``YYYY-MM`` period into its ``[start, end)`` UTC window.

    Raises:
        ValueError: when ``period`` is not a valid ``YYYY-MM`` string
    """
    match = _PERIOD_PATTERN.match(period)
    if not match:
        raise ValueError(f"Invalid period '{period}', expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def timeline_health(completion_rate: float, deadline: datetime | None, now: datetime) -> TimelineHealth:
    """Evaluate project timeline health from the current completion rate and deadline."""
    if deadline is None:
        return "on_track"
    days_until_deadline = (deadline - now).total_seconds() / SECONDS_PER_DAY
    if days_until_deadline < 0:
        return "delayed"
    if completion_rate < AT_RISK_COMPLETION_RATE and days_until_deadline < AT_RISK_DAYS_TO_DEADLINE:
        return "at_risk"
    return "on_track"


def profile_from_document(doc: dict[str, Any]) -> UserProfile:
    """Build a UserProfile from a raw ``user_profiles`` document."""
    return UserProfile.model_validate(merge_profile_sources(doc["id"], doc, None))


class ConnectProService:
    """
    Pro-tier analytics over projects, tasks and profiles.

    Every report is recomputed from the source collections on each call.
    Backend failures are logged and turned into a zeroed report.
    """

    def __init__(self, store: DocumentStore | None = None, profiles: ProfileStore | None = None):
        self.store = store or document_store
        self.profiles = profiles or profile_store

    # ==========================================
    # TEAM ANALYTICS
    # ==========================================

    async def workspace_analytics(self, workspace_id: str) -> WorkspaceAnalytics:
        try:
            projects = await self.store.query(collection(PROJECTS).where("workspaceId", "==", workspace_id))
            tasks = await self.store.query(collection(TASKS).where("workspaceId", "==", workspace_id))
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get workspace analytics for {workspace_id}: {exc}")
            return WorkspaceAnalytics(workspaceId=workspace_id)

        active_projects = sum(1 for p in projects if p.get("status") == "active")
        completed_projects = sum(1 for p in projects if p.get("status") == "completed")
        completed_tasks = sum(1 for t in tasks if _is_completed_task(t))

        # Only completed projects with both timestamps count towards the mean
        durations = []
        for project in projects:
            if project.get("status") != "completed":
                continue
            start, end = to_datetime(project.get("createdAt")), to_datetime(project.get("updatedAt"))
            if start and end:
                durations.append((end - start).total_seconds() / SECONDS_PER_DAY)
        average_duration = sum(durations) / len(durations) if durations else 0

        # Placeholder heuristic: there is no "delivered on time" signal to measure against
        if completed_projects > 0:
            on_time_rate = completed_projects / (completed_projects + 1) * 100
        else:
            on_time_rate = ON_TIME_RATE_WITHOUT_COMPLETIONS

        return WorkspaceAnalytics(
            workspaceId=workspace_id,
            totalProjects=len(projects),
            activeProjects=active_projects,
            completedProjects=completed_projects,
            totalTasks=len(tasks),
            completedTasks=completed_tasks,
            teamProductivity=_percentage(completed_tasks, len(tasks)),
            averageProjectDuration=average_duration,
            onTimeDeliveryRate=on_time_rate,
            budgetUtilization=BUDGET_UTILIZATION_PLACEHOLDER,
        )

    async def project_performance_metrics(self, project_id: str, now: datetime | None = None) -> ProjectMetrics | None:
        """Completion, workload and timeline health of one project; None when it does not exist."""
        now = now or datetime.now(timezone.utc)
        try:
            project = await self.store.get(PROJECTS, project_id)
            if project is None:
                logger.warning(f"Project {project_id} not found")
                return None
            tasks = await self.store.query(collection(TASKS).where("projectId", "==", project_id))
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get project metrics for {project_id}: {exc}")
            return None

        completion_rate = _percentage(sum(1 for t in tasks if _is_completed_task(t)), len(tasks))

        distribution: dict[str, int] = {}
        for task in tasks:
            assignee = task.get("assigneeUsername")
            if assignee:
                distribution[assignee] = distribution.get(assignee, 0) + 1

        return ProjectMetrics(
            projectId=project_id,
            completionRate=completion_rate,
            taskDistribution=distribution,
            timelineHealth=timeline_health(completion_rate, to_datetime(project.get("deadline")), now),
            budgetHealth="on_budget",
            teamEfficiency=completion_rate,
        )

    async def user_productivity_report(
        self, user_id: str, period: str | None = None, now: datetime | None = None
    ) -> ProductivityReport:
        """
        Monthly productivity report for a user.

        Completed tasks are fetched across the user's whole history and
        narrowed to the period by ``updatedAt`` afterwards.

        Args:
            user_id: Assignee uid
            period: ``YYYY-MM``; defaults to the current month
            now: Reference time for the default period

        Raises:
            ValueError: when ``period`` is malformed
        """
        now = now or datetime.now(timezone.utc)
        period = period or now.strftime("%Y-%m")
        start, end = month_window(period)

        try:
            profile = await self.profiles.get_profile(user_id)
            tasks = await self.store.query(
                collection(TASKS)
                .where("assigneeId", "==", user_id)
                .where("status", "in", list(COMPLETED_TASK_STATUSES))
            )
            projects = await self.store.query(
                collection(PROJECTS).where("assignedOwnerId", "==", user_id).where("status", "==", "completed")
            )
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get productivity report for {redact_id(user_id)}: {exc}")
            return ProductivityReport(userId=user_id, period=period)

        period_tasks = []
        for task in tasks:
            moment = to_datetime(task.get("updatedAt"))
            if moment and start <= moment < end:
                period_tasks.append(task)

        earnings = sum(get_path(task, "pricing.amount") or 0 for task in period_tasks)
        hours = 0.0
        for task in period_tasks:
            actual = get_path(task, "timeline.actualHours")
            hours += actual if actual is not None else get_path(task, "timeline.estimatedHours") or 0

        average_rating = profile.stats.averageRating if profile else 0
        score = min(
            PERFORMANCE_MAX_SCORE,
            len(period_tasks) * PERFORMANCE_WEIGHT_TASKS + average_rating * PERFORMANCE_WEIGHT_RATING,
        )

        return ProductivityReport(
            userId=user_id,
            period=period,
            tasksCompleted=len(period_tasks),
            projectsCompleted=len(projects),
            hoursLogged=hours,
            earningsTotal=earnings,
            performanceScore=score,
            topSkills=profile.skills[:TOP_SKILLS_COUNT] if profile else [],
            growthAreas=list(GROWTH_AREAS_PLACEHOLDER),
        )

    # ==========================================
    # SEARCH
    # ==========================================

    async def advanced_search(
        self, filters: AdvancedSearchFilters, page: int = 1, page_size: int = 20
    ) -> SearchResults:
        """
        Candidate search.

        Skills, availability and location are applied as store-level filters
        together with the page window. Rating, hourly rate and experience are
        filtered afterwards over that window only, so a page can come back
        short while further matches exist; ``hasMore`` is derived from the
        post-filtered page and does not reflect the total number of matches.
        """
        query = collection(USER_PROFILES)
        if filters.skills:
            query = query.where("skills", "array-contains-any", filters.skills[: settings.SEARCH_SKILLS_LIMIT])
        if filters.availability:
            query = query.where("availability", "in", filters.availability)
        if filters.location:
            query = query.where("location", "==", filters.location)
        query = query.offset((page - 1) * page_size).limit(page_size)

        try:
            users = [profile_from_document(doc) for doc in await self.store.query(query)]
        except STORE_ERRORS as exc:
            logger.error(f"Advanced search failed: {exc}")
            return SearchResults(page=page)

        if filters.minRating:
            users = [u for u in users if u.stats.averageRating >= filters.minRating]
        if filters.maxHourlyRate:
            users = [u for u in users if (u.hourlyRate or 0) <= filters.maxHourlyRate]
        if filters.yearsExperience:
            # One experience entry counts as one year
            users = [u for u in users if len(u.experience) >= filters.yearsExperience]

        return SearchResults(
            users=users[:page_size],
            totalCount=len(users),
            page=page,
            hasMore=len(users) > page_size,
        )

    # ==========================================
    # PORTFOLIO
    # ==========================================

    async def portfolio_analytics(self, user_id: str) -> PortfolioAnalytics:
        """Earnings and skill usage across the user's completed projects."""
        try:
            profile = await self.profiles.get_profile(user_id)
            projects = await self.store.query(
                collection(PROJECTS).where("assignedOwnerId", "==", user_id).where("status", "==", "completed")
            )
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get portfolio analytics for {redact_id(user_id)}: {exc}")
            return PortfolioAnalytics()

        earnings_by_month: dict[str, float] = {}
        for project in projects:
            month = month_key(project.get("createdAt"))
            if month:
                earnings_by_month[month] = earnings_by_month.get(month, 0) + (project.get("budget") or 0)

        total_budget = sum(project.get("budget") or 0 for project in projects)

        skill_projects: dict[str, int] = {}
        for skill in profile.skills if profile else []:
            needle = skill.lower()
            skill_projects[skill] = sum(
                1 for project in projects if needle in (project.get("description") or "").lower()
            )
        ranked = sorted(skill_projects.items(), key=lambda item: item[1], reverse=True)

        return PortfolioAnalytics(
            totalProjects=len(projects),
            totalEarnings=sum(earnings_by_month.values()),
            earningsByMonth=earnings_by_month,
            averageProjectValue=total_budget / len(projects) if projects else 0,
            skillProjects=ranked[:TOP_SKILLS_COUNT],
        )


connect_pro_service = ConnectProService()
