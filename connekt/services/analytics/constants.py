from typing import Final

# Reputation weights (score = rating*15 + projects*0.5 + response*0.1 + tenure years, capped at 100)
REPUTATION_WEIGHT_RATING: Final[float] = 15.0  # Max 75
REPUTATION_WEIGHT_PROJECTS: Final[float] = 0.5
REPUTATION_WEIGHT_RESPONSE_RATE: Final[float] = 0.1  # Max 10
REPUTATION_TENURE_CAP_YEARS: Final[float] = 5.0
REPUTATION_MAX_SCORE: Final[int] = 100
DAYS_PER_YEAR: Final[int] = 365

# Productivity heuristic (min(100, tasks*10 + rating*15))
PERFORMANCE_WEIGHT_TASKS: Final[float] = 10.0
PERFORMANCE_WEIGHT_RATING: Final[float] = 15.0
PERFORMANCE_MAX_SCORE: Final[float] = 100.0

# Timeline health thresholds
AT_RISK_COMPLETION_RATE: Final[float] = 50.0
AT_RISK_DAYS_TO_DEADLINE: Final[float] = 7.0

# Ranking sizes
TOP_SKILLS_COUNT: Final[int] = 5
TOP_PERFORMERS_COUNT: Final[int] = 5
TOP_CLIENTS_COUNT: Final[int] = 10
PRIORITY_SEARCH_MAX_RESULTS: Final[int] = 20

# Placeholders: constant values standing in for data that is not tracked yet.
# Reports keep them so callers can tell the fields exist; they are not estimates.
BUDGET_UTILIZATION_PLACEHOLDER: Final[float] = 85.0
ON_TIME_RATE_WITHOUT_COMPLETIONS: Final[float] = 100.0
TALENT_COMPLETION_RATE_PLACEHOLDER: Final[float] = 85.0
CLIENT_SATISFACTION_PLACEHOLDER: Final[float] = 90.0
CLIENT_RETENTION_RATE_PLACEHOLDER: Final[float] = 85.0
AVAILABLE_MEMBERS_PLACEHOLDER: Final[int] = 0
MONTHS_PER_YEAR: Final[int] = 12  # monthlyRevenue = active contract value / 12
PLACEMENTS_BY_SKILL_PLACEHOLDER: Final[dict[str, int]] = {
    "Software Development": 15,
    "Digital Marketing": 12,
    "Design": 10,
}
GROWTH_AREAS_PLACEHOLDER: Final[tuple[str, ...]] = ("Time management", "Communication")
