"""koine: spaced repetition scheduling for Koine Greek study."""

__version__ = "0.1.0"

from koine.models import Card, Phase, ReviewQuality, StudyQueueEntry
from koine.algorithm import compute_next
from koine.session import SessionScheduler, SessionState
from koine.app import App

__all__ = ["App", "Card", "Phase", "ReviewQuality", "SessionScheduler", "SessionState",
           "StudyQueueEntry", "compute_next"]
