from .advisor_service import AdvisorOrchestrator, AdvisorSource, SourceResult, parse_advisor_reply
from .automation_service import AutomationService
from .notification_service import NotificationService
from .recommendation_service import RecommendationService
from .scheduler_service import SchedulerService

__all__ = [
    "AdvisorOrchestrator",
    "AdvisorSource",
    "SourceResult",
    "parse_advisor_reply",
    "AutomationService",
    "NotificationService",
    "RecommendationService",
    "SchedulerService",
]
