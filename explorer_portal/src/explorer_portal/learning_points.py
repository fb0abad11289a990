"""
Learning-point reviews (`learning_point_reviews` table)

One row per (tutee, session date) recording when that session's learning
points were last reviewed and how many times. The push dispatcher reads
these rows to decide when the next spaced-repetition reminder is due.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .push_notifications import next_review_date

logger = logging.getLogger(__name__)


@dataclass
class LearningPointReview:
    id: str
    tutee_id: str
    session_date: str
    last_reviewed: str
    review_count: int = 0

    @property
    def next_review(self) -> str:
        return next_review_date(self.review_count, self.last_reviewed).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tutee_id": self.tutee_id,
            "session_date": self.session_date,
            "last_reviewed": self.last_reviewed,
            "review_count": self.review_count,
            "next_review": self.next_review,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "LearningPointReview":
        return cls(
            id=row["id"],
            tutee_id=row["tutee_id"],
            session_date=str(row["session_date"]),
            last_reviewed=str(row["last_reviewed"]),
            review_count=int(row.get("review_count") or 0),
        )


class LearningPointReviewManager:
    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def list_reviews(self, tutee_id: str) -> List[LearningPointReview]:
        """Reviews for a tutee, latest session first."""
        try:
            result = self.supabase.table('learning_point_reviews') \
                .select('*') \
                .eq('tutee_id', tutee_id) \
                .order('session_date', desc=True) \
                .execute()
            return [LearningPointReview.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [LearningPointReviewManager] Error fetching reviews: {e}")
            raise

    def _find(self, tutee_id: str, session_date: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table('learning_point_reviews') \
            .select('*') \
            .eq('tutee_id', tutee_id) \
            .eq('session_date', session_date) \
            .limit(1) \
            .execute()
        return result.data[0] if result.data else None

    def record_review(
        self,
        tutee_id: str,
        session_date: str,
        last_reviewed: Optional[str] = None,
        review_count: Optional[int] = None
    ) -> LearningPointReview:
        """
        Upsert the review row for one session.

        Args:
            last_reviewed: Defaults to now
            review_count: Defaults to one more than the stored count (1 for a new row)
        """
        if review_count is not None and review_count < 0:
            raise ValueError("Review count cannot be negative")
        now = datetime.now(timezone.utc).isoformat()
        last_reviewed = last_reviewed or now

        try:
            existing = self._find(tutee_id, session_date)
            if existing:
                count = review_count if review_count is not None else int(existing.get("review_count") or 0) + 1
                result = self.supabase.table('learning_point_reviews').update({
                    "last_reviewed": last_reviewed,
                    "review_count": count,
                    "updated_at": now,
                }).eq('id', existing["id"]).execute()
            else:
                result = self.supabase.table('learning_point_reviews').insert({
                    "tutee_id": tutee_id,
                    "session_date": session_date,
                    "last_reviewed": last_reviewed,
                    "review_count": review_count if review_count is not None else 1,
                }).execute()
        except Exception as e:
            logger.error(f"❌ [LearningPointReviewManager] Error saving review: {e}")
            raise

        review = LearningPointReview.from_row(result.data[0])
        logger.info(
            f"📚 [LearningPointReviewManager] {tutee_id} reviewed {session_date} "
            f"(count {review.review_count})"
        )
        return review

    def delete_review(self, review_id: str) -> None:
        try:
            self.supabase.table('learning_point_reviews').delete().eq('id', review_id).execute()
        except Exception as e:
            logger.error(f"❌ [LearningPointReviewManager] Error deleting review: {e}")
            raise
