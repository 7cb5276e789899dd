from typing import Literal

from pydantic import BaseModel, Field

from connekt.models.profile import UserProfile

TimelineHealth = Literal["on_track", "at_risk", "delayed"]
BudgetHealth = Literal["under_budget", "on_budget", "over_budget"]


class WorkspaceAnalytics(BaseModel):
    workspaceId: str
    totalProjects: int = 0
    activeProjects: int = 0
    completedProjects: int = 0
    totalTasks: int = 0
    completedTasks: int = 0
    teamProductivity: float = 0  # 0-100
    averageProjectDuration: float = 0  # days
    # Placeholder: heuristic with no ground-truth "on time" signal
    onTimeDeliveryRate: float = 0
    # Placeholder: constant until budget tracking exists
    budgetUtilization: float = 0


class ProjectMetrics(BaseModel):
    projectId: str
    completionRate: float = 0
    taskDistribution: dict[str, int] = Field(default_factory=dict)  # username -> task count
    timelineHealth: TimelineHealth = "on_track"
    # Placeholder: always on_budget
    budgetHealth: BudgetHealth = "on_budget"
    teamEfficiency: float = 0


class ProductivityReport(BaseModel):
    userId: str
    period: str  # YYYY-MM
    tasksCompleted: int = 0
    projectsCompleted: int = 0
    hoursLogged: float = 0
    earningsTotal: float = 0
    performanceScore: float = 0  # 0-100
    topSkills: list[str] = Field(default_factory=list)
    # Placeholder: constant list
    growthAreas: list[str] = Field(default_factory=list)


class AdvancedSearchFilters(BaseModel):
    skills: list[str] | None = None
    minRating: float | None = None
    maxHourlyRate: float | None = None
    availability: list[str] | None = None
    location: str | None = None
    yearsExperience: int | None = None
    industries: list[str] | None = None


class SearchResults(BaseModel):
    users: list[UserProfile] = Field(default_factory=list)
    # Count of the post-filtered page, not of all matches
    totalCount: int = 0
    page: int = 1
    hasMore: bool = False


class PortfolioAnalytics(BaseModel):
    totalProjects: int = 0
    totalEarnings: float = 0
    earningsByMonth: dict[str, float] = Field(default_factory=dict)
    averageProjectValue: float = 0
    skillProjects: list[tuple[str, int]] = Field(default_factory=list)


class PerformanceMetrics(BaseModel):
    averageRating: float = 0
    # Placeholders: constants until completion and client feedback data exist
    completionRate: float = 0
    clientSatisfaction: float = 0


class TopPerformer(BaseModel):
    userId: str
    username: str = ""
    rating: float = 0
    projectsCompleted: int = 0


class TalentPoolAnalytics(BaseModel):
    agencyId: str
    totalTalent: int = 0
    activeMembers: int = 0
    # Placeholder: always 0, member availability is not checked
    availableMembers: int = 0
    skillDistribution: dict[str, int] = Field(default_factory=dict)
    performanceMetrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    topPerformers: list[TopPerformer] = Field(default_factory=list)


class TopClient(BaseModel):
    clientId: str
    clientName: str | None = None
    totalSpent: float = 0
    projectsCount: int = 0


class ClientDashboard(BaseModel):
    agencyId: str
    totalClients: int = 0
    activeContracts: int = 0
    # Placeholder: total active contract value spread over 12 months
    monthlyRevenue: float = 0
    # Placeholder: constant until historical data exists
    clientRetentionRate: float = 0
    topClients: list[TopClient] = Field(default_factory=list)


class PlacementMetrics(BaseModel):
    agencyId: str
    totalPlacements: int = 0
    successRate: float = 0
    averageTimeToPlace: float = 0  # days
    placementsByMonth: dict[str, int] = Field(default_factory=dict)
    # Placeholder: constant map, placements carry no skill data
    placementsBySkill: dict[str, int] = Field(default_factory=dict)


class CommissionBreakdown(BaseModel):
    placementId: str
    candidateName: str | None = None
    clientName: str | None = None
    contractValue: float = 0
    commissionRate: float = 0
    commissionAmount: float = 0
    paymentStatus: Literal["pending", "paid", "partial"] = "pending"
