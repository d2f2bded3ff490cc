from app.coach.coordinator import ResponseCoordinator
from app.coach.feedback import TIP_PLACEHOLDER, FeedbackRecord, normalize, parse_feedback
from app.coach.models import CoachConfig

__all__ = [
    "CoachConfig",
    "FeedbackRecord",
    "ResponseCoordinator",
    "TIP_PLACEHOLDER",
    "normalize",
    "parse_feedback",
]
