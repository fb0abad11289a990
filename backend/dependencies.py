"""
Shared service instances for the routers

Each getter is a FastAPI dependency so tests can swap in fakes through
app.dependency_overrides.
"""
import os
from typing import Optional

from lib.clients import get_firestore_client, get_supabase_client

from explorer_portal.availability import AvailabilityManager
from explorer_portal.bookings import BookingManager
from explorer_portal.chat_completion import ChatCompletionClient
from explorer_portal.earnings import EarningsManager
from explorer_portal.grid_data import GridData, get_grid_data
from explorer_portal.grid_progress import GridProgressManager
from explorer_portal.learning_points import LearningPointReviewManager
from explorer_portal.pin_guard import PinAttemptTracker
from explorer_portal.push_notifications import PushDispatcher
from explorer_portal.spelling import SpellingBankManager
from explorer_portal.spelling_quiz import QuizRecordManager
from explorer_portal.tutees import TuteeManager
from explorer_portal.work_progress import WorkProgressManager
from explorer_portal.worksheets import WorksheetManager

_pin_tracker: Optional[PinAttemptTracker] = None
_chat_client: Optional[ChatCompletionClient] = None


def get_grid() -> GridData:
    return get_grid_data()


def get_progress_manager() -> GridProgressManager:
    return GridProgressManager(get_firestore_client())


def get_tutee_manager() -> TuteeManager:
    return TuteeManager(get_supabase_client())


def get_pin_tracker() -> PinAttemptTracker:
    """Process-wide PIN attempt counter."""
    global _pin_tracker
    if _pin_tracker is None:
        _pin_tracker = PinAttemptTracker(
            max_attempts=int(os.getenv("PIN_MAX_ATTEMPTS", "3")),
            lockout_seconds=int(os.getenv("PIN_LOCKOUT_SECONDS", "900")),
        )
    return _pin_tracker


def get_earnings_manager() -> EarningsManager:
    return EarningsManager(get_supabase_client())


def get_chat_client() -> ChatCompletionClient:
    global _chat_client
    if _chat_client is None:
        _chat_client = ChatCompletionClient()
    return _chat_client


def get_spelling_manager() -> SpellingBankManager:
    return SpellingBankManager(get_supabase_client(), get_chat_client())


def get_quiz_record_manager() -> QuizRecordManager:
    return QuizRecordManager(get_supabase_client())


def get_worksheet_manager() -> WorksheetManager:
    return WorksheetManager(get_supabase_client())


def build_push_dispatcher() -> Optional[PushDispatcher]:
    """Dispatcher from environment, or None when VAPID keys are missing."""
    private_key = os.getenv("VAPID_PRIVATE_KEY")
    if not private_key:
        return None
    return PushDispatcher(
        get_supabase_client(),
        vapid_private_key=private_key,
        vapid_claims_email=os.getenv("VAPID_CLAIMS_EMAIL"),
    )


def get_push_dispatcher() -> Optional[PushDispatcher]:
    return build_push_dispatcher()


def get_learning_point_manager() -> LearningPointReviewManager:
    return LearningPointReviewManager(get_supabase_client())


def get_work_progress_manager() -> WorkProgressManager:
    return WorkProgressManager(get_supabase_client())


def get_availability_manager() -> AvailabilityManager:
    return AvailabilityManager(get_supabase_client())


def get_booking_manager() -> BookingManager:
    return BookingManager(get_supabase_client(), dispatcher=build_push_dispatcher())
