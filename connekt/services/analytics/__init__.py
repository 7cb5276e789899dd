"""
Pro and Pro Plus rollups plus the reputation score.

Nothing here is cached: each report is recomputed from the project, task,
contract and profile collections when it is requested.
"""

from connekt.services.analytics.pro import ConnectProService, connect_pro_service
from connekt.services.analytics.pro_plus import ConnectProPlusService, connect_pro_plus_service
from connekt.services.analytics.reputation import ReputationScorer, reputation_scorer

__all__ = [
    "ConnectProService",
    "ConnectProPlusService",
    "ReputationScorer",
    "connect_pro_service",
    "connect_pro_plus_service",
    "reputation_scorer",
]
