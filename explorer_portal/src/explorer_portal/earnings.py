"""
Tuition Earnings

Session tracking, per-tutee fee settings and monthly invoice records.

Tables:
    tuition_earnings_settings  one row per tutee (unique tutee_id)
    tuition_sessions           individual lessons
    tuition_earnings_records   one row per (tutee_id, year, month)
    available_dates            calendar slots; booked slots become sessions
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_FEE_PER_HOUR = 140.0


class CalculationType(str, Enum):
    HOURLY = "hourly"
    PER_SESSION = "per_session"


@dataclass
class EarningsSettings:
    id: str
    tutee_id: str
    message_template: str
    fee_per_hour: float
    fee_per_session: Optional[float] = None
    calculation_type: CalculationType = CalculationType.HOURLY

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "EarningsSettings":
        fee_per_session = row.get("fee_per_session")
        return cls(
            id=row["id"],
            tutee_id=row["tutee_id"],
            message_template=row.get("message_template") or "",
            fee_per_hour=float(row.get("fee_per_hour") or 0),
            fee_per_session=float(fee_per_session) if fee_per_session is not None else None,
            calculation_type=CalculationType(row.get("calculation_type") or "hourly"),
        )


@dataclass
class TuitionSession:
    id: str
    tutee_id: str
    session_date: date
    start_time: str
    end_time: str
    duration_hours: float
    amount: float
    earnings_record_id: Optional[str] = None
    available_date_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TuitionSession":
        return cls(
            id=row["id"],
            tutee_id=row["tutee_id"],
            session_date=_parse_date(row["session_date"]),
            start_time=normalize_time(row["start_time"]),
            end_time=normalize_time(row["end_time"]),
            duration_hours=float(row.get("duration_hours") or 0),
            amount=float(row.get("amount") or 0),
            earnings_record_id=row.get("earnings_record_id"),
            available_date_id=row.get("available_date_id"),
        )


@dataclass
class EarningsRecord:
    id: str
    tutee_id: str
    year: int
    month: int
    total_sessions: int
    total_hours: float
    total_amount: float
    generated_message: Optional[str] = None
    sessions: List[TuitionSession] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any], sessions: Optional[List[TuitionSession]] = None) -> "EarningsRecord":
        return cls(
            id=row["id"],
            tutee_id=row["tutee_id"],
            year=int(row["year"]),
            month=int(row["month"]),
            total_sessions=int(row.get("total_sessions") or 0),
            total_hours=float(row.get("total_hours") or 0),
            total_amount=float(row.get("total_amount") or 0),
            generated_message=row.get("generated_message") or None,
            sessions=sessions or [],
        )


def _parse_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def normalize_time(value: str) -> str:
    """'9:5', '09:05:00' -> '09:05'"""
    parts = str(value).strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time: {value!r}")
    return f"{hour:02d}:{minute:02d}"


def _minutes(value: str) -> int:
    hour, minute = normalize_time(value).split(":")
    return int(hour) * 60 + int(minute)


def _money(value: float) -> str:
    return f"${value:.2f}"


def _hour12(hour: int) -> int:
    if hour > 12:
        return hour - 12
    if hour == 0:
        return 12
    return hour


def calculate_session_amount(
    start_time: str,
    end_time: str,
    fee: float,
    calculation_type: Union[CalculationType, str] = CalculationType.HOURLY
) -> Tuple[float, float]:
    """
    Compute a lesson's duration and charge.

    Returns:
        (duration_hours, amount), both rounded to 2 decimals
    """
    duration_minutes = _minutes(end_time) - _minutes(start_time)
    if duration_minutes < 0:
        raise ValueError("End time must be after start time")

    duration_hours = duration_minutes / 60
    if CalculationType(calculation_type) == CalculationType.HOURLY:
        amount = duration_hours * fee
    else:
        amount = fee
    return round(duration_hours, 2), round(amount, 2)


def _format_session_line(index: int, session: TuitionSession) -> str:
    # 1)061225 -> 3-5pm
    d = session.session_date
    start_hour = int(session.start_time.split(":")[0])
    end_hour = int(session.end_time.split(":")[0])
    period = "pm" if end_hour >= 12 else "am"
    return f"{index}){d:%d%m}{d.year % 100:02d} -> {_hour12(start_hour)}-{_hour12(end_hour)}{period}"


def generate_earnings_message(
    settings: EarningsSettings,
    sessions: List[TuitionSession],
    year: int,
    month: int,
    tutee_name: Optional[str] = None
) -> str:
    """
    Fill the tutee's message template for one month.

    Totals are recomputed from the current settings rather than summed from
    stored session amounts.
    """
    message = settings.message_template \
        .replace("{month}", calendar.month_name[month]) \
        .replace("{year}", str(year))

    if tutee_name:
        message = message.replace("{tutee_name}", tutee_name)

    fee_per_hour = _money(settings.fee_per_hour)
    fee_per_session = _money(settings.fee_per_session or 0)

    if not sessions:
        replacements = {
            "{sessions_list}": "",
            "{sessions_dates}": "",
            "{total_sessions}": "0",
            "{total_hours}": "0",
            "{total_amount}": "$0.00",
            "{fee_per_hour}": fee_per_hour,
            "{fee_per_session}": fee_per_session,
        }
    else:
        ordered = sorted(sessions, key=lambda s: (s.session_date, s.start_time))
        total_sessions = len(ordered)
        total_hours = sum(s.duration_hours for s in ordered)

        if settings.calculation_type == CalculationType.HOURLY:
            total_amount = total_hours * settings.fee_per_hour
        else:
            total_amount = total_sessions * (settings.fee_per_session or 0)

        hours_text = f"{total_hours:.0f}" if total_hours % 1 == 0 else f"{total_hours:.2f}"

        replacements = {
            "{sessions_list}": "\n".join(
                _format_session_line(i, s) for i, s in enumerate(ordered, start=1)
            ),
            "{sessions_dates}": ", ".join(
                f"{s.session_date.day} {calendar.month_name[s.session_date.month][:3]}" for s in ordered
            ),
            "{total_sessions}": str(total_sessions),
            "{total_hours}": hours_text,
            "{total_amount}": _money(total_amount),
            "{fee_per_hour}": fee_per_hour,
            "{fee_per_session}": fee_per_session,
        }

    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return message


def _month_bounds(year: int, month: int) -> Tuple[str, str]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()


class EarningsManager:
    """
    Supabase-backed earnings bookkeeping.

    Store errors are logged and re-raised.
    """

    def __init__(self, supabase_client):
        self.supabase = supabase_client

    # ==================== Settings ====================

    def get_settings(self, tutee_id: str) -> Optional[EarningsSettings]:
        try:
            result = self.supabase.table('tuition_earnings_settings') \
                .select('*') \
                .eq('tutee_id', tutee_id) \
                .limit(1) \
                .execute()
            return EarningsSettings.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error fetching earnings settings: {e}")
            raise

    def upsert_settings(
        self,
        tutee_id: str,
        message_template: str,
        fee_per_hour: float,
        fee_per_session: Optional[float] = None,
        calculation_type: Union[CalculationType, str] = CalculationType.HOURLY
    ) -> EarningsSettings:
        if fee_per_hour < 0 or (fee_per_session is not None and fee_per_session < 0):
            raise ValueError("Fees cannot be negative")

        row = {
            "tutee_id": tutee_id,
            "message_template": message_template,
            "fee_per_hour": fee_per_hour,
            "fee_per_session": fee_per_session,
            "calculation_type": CalculationType(calculation_type).value,
        }
        try:
            result = self.supabase.table('tuition_earnings_settings') \
                .upsert(row, on_conflict='tutee_id') \
                .execute()
            logger.info(f"💰 [EarningsManager] Saved settings for tutee {tutee_id}")
            return EarningsSettings.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error upserting earnings settings: {e}")
            raise

    def update_settings(self, settings_id: str, **changes) -> Optional[EarningsSettings]:
        allowed = {"message_template", "fee_per_hour", "fee_per_session", "calculation_type"}
        update_data = {k: v for k, v in changes.items() if k in allowed and v is not None}
        if "calculation_type" in update_data:
            update_data["calculation_type"] = CalculationType(update_data["calculation_type"]).value
        if not update_data:
            raise ValueError("No settings to update")

        try:
            result = self.supabase.table('tuition_earnings_settings') \
                .update(update_data) \
                .eq('id', settings_id) \
                .execute()
            return EarningsSettings.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error updating earnings settings: {e}")
            raise

    # ==================== Sessions ====================

    def list_sessions(
        self,
        tutee_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[TuitionSession]:
        """Sessions for a tutee, newest first, optionally bounded by date (inclusive)."""
        try:
            query = self.supabase.table('tuition_sessions') \
                .select('*') \
                .eq('tutee_id', tutee_id)
            if start_date:
                query = query.gte('session_date', start_date)
            if end_date:
                query = query.lte('session_date', end_date)
            result = query \
                .order('session_date', desc=True) \
                .order('start_time', desc=True) \
                .execute()
            return [TuitionSession.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error fetching tuition sessions: {e}")
            raise

    def list_sessions_for_record(self, record_id: str) -> List[TuitionSession]:
        try:
            result = self.supabase.table('tuition_sessions') \
                .select('*') \
                .eq('earnings_record_id', record_id) \
                .order('session_date', desc=False) \
                .order('start_time', desc=False) \
                .execute()
            return [TuitionSession.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error fetching sessions by earnings record: {e}")
            raise

    def create_session(
        self,
        tutee_id: str,
        session_date: Union[str, date],
        start_time: str,
        end_time: str,
        duration_hours: float,
        amount: float,
        available_date_id: Optional[str] = None
    ) -> TuitionSession:
        row = {
            "tutee_id": tutee_id,
            "session_date": _parse_date(session_date).isoformat(),
            "start_time": normalize_time(start_time),
            "end_time": normalize_time(end_time),
            "duration_hours": duration_hours,
            "amount": amount,
            "available_date_id": available_date_id,
        }
        try:
            result = self.supabase.table('tuition_sessions').insert(row).execute()
            return TuitionSession.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error creating tuition session: {e}")
            raise

    def update_session(self, session_id: str, **changes) -> Optional[TuitionSession]:
        update_data: Dict[str, Any] = {}
        for key in ("duration_hours", "amount"):
            if changes.get(key) is not None:
                update_data[key] = changes[key]
        if changes.get("session_date") is not None:
            update_data["session_date"] = _parse_date(changes["session_date"]).isoformat()
        for key in ("start_time", "end_time"):
            if changes.get(key) is not None:
                update_data[key] = normalize_time(changes[key])
        # Explicit None clears the link
        for key in ("earnings_record_id", "available_date_id"):
            if key in changes:
                update_data[key] = changes[key] or None

        if not update_data:
            raise ValueError("No session fields to update")

        try:
            result = self.supabase.table('tuition_sessions') \
                .update(update_data) \
                .eq('id', session_id) \
                .execute()
            return TuitionSession.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error updating tuition session: {e}")
            raise

    def delete_session(self, session_id: str) -> None:
        try:
            self.supabase.table('tuition_sessions').delete().eq('id', session_id).execute()
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error deleting tuition session: {e}")
            raise

    def record_session(
        self,
        tutee_id: str,
        session_date: Union[str, date],
        start_time: str,
        end_time: str
    ) -> TuitionSession:
        """Create a session priced from the tutee's current settings."""
        settings = self.get_settings(tutee_id)
        if settings is None:
            fee, calculation_type = DEFAULT_FEE_PER_HOUR, CalculationType.HOURLY
        elif settings.calculation_type == CalculationType.PER_SESSION:
            fee, calculation_type = settings.fee_per_session or 0, CalculationType.PER_SESSION
        else:
            fee, calculation_type = settings.fee_per_hour, CalculationType.HOURLY

        duration_hours, amount = calculate_session_amount(start_time, end_time, fee, calculation_type)
        return self.create_session(tutee_id, session_date, start_time, end_time, duration_hours, amount)

    # ==================== Records ====================

    def list_records(self, tutee_id: str) -> List[EarningsRecord]:
        try:
            result = self.supabase.table('tuition_earnings_records') \
                .select('*') \
                .eq('tutee_id', tutee_id) \
                .order('year', desc=True) \
                .order('month', desc=True) \
                .execute()
            return [EarningsRecord.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error fetching earnings records: {e}")
            raise

    def get_record(self, tutee_id: str, year: int, month: int) -> Optional[EarningsRecord]:
        try:
            result = self.supabase.table('tuition_earnings_records') \
                .select('*') \
                .eq('tutee_id', tutee_id) \
                .eq('year', year) \
                .eq('month', month) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error fetching earnings record by month: {e}")
            raise

        if not result.data:
            return None
        row = result.data[0]
        return EarningsRecord.from_row(row, self.list_sessions_for_record(row["id"]))

    def list_records_for_month(self, year: int, month: int) -> List[EarningsRecord]:
        try:
            result = self.supabase.table('tuition_earnings_records') \
                .select('*') \
                .eq('year', year) \
                .eq('month', month) \
                .execute()
            return [EarningsRecord.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error fetching all earnings records by month: {e}")
            raise

    def build_monthly_record(
        self,
        tutee_id: str,
        year: int,
        month: int,
        tutee_name: Optional[str] = None
    ) -> EarningsRecord:
        """
        Generate (or regenerate) the invoice for one month.

        Collects the month's sessions, writes the totals and message, and
        links every session to the resulting record.
        """
        if not 1 <= month <= 12:
            raise ValueError("Month must be between 1 and 12")

        start, end = _month_bounds(year, month)
        sessions = self.list_sessions(tutee_id, start, end)
        settings = self.get_settings(tutee_id)

        message = generate_earnings_message(settings, sessions, year, month, tutee_name) if settings else None

        row = {
            "tutee_id": tutee_id,
            "year": year,
            "month": month,
            "total_sessions": len(sessions),
            "total_hours": round(sum(s.duration_hours for s in sessions), 2),
            "total_amount": round(sum(s.amount for s in sessions), 2),
            "generated_message": message,
        }

        try:
            result = self.supabase.table('tuition_earnings_records') \
                .upsert(row, on_conflict='tutee_id,year,month') \
                .execute()
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error upserting earnings record: {e}")
            raise

        record = EarningsRecord.from_row(result.data[0], sorted(sessions, key=lambda s: (s.session_date, s.start_time)))

        for session in record.sessions:
            self.update_session(session.id, earnings_record_id=record.id)
            session.earnings_record_id = record.id

        logger.info(
            f"🧾 [EarningsManager] Built {calendar.month_name[month]} {year} record for {tutee_id}: "
            f"{record.total_sessions} sessions, {_money(record.total_amount)}"
        )
        return record

    def recalculate_session_amounts(
        self,
        tutee_id: str,
        fee: float,
        calculation_type: Union[CalculationType, str],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> int:
        """Re-price existing sessions at a new fee. Returns the number updated."""
        sessions = self.list_sessions(tutee_id, start_date, end_date)
        for session in sessions:
            _, amount = calculate_session_amount(session.start_time, session.end_time, fee, calculation_type)
            self.update_session(session.id, amount=amount)
        return len(sessions)

    def sync_booked_slots(self) -> int:
        """
        Create sessions for booked calendar slots that have none yet.

        Returns:
            Number of sessions created
        """
        try:
            result = self.supabase.table('available_dates') \
                .select('*') \
                .eq('is_available', False) \
                .execute()
        except Exception as e:
            logger.error(f"❌ [EarningsManager] Error syncing booked sessions: {e}")
            raise

        booked = [slot for slot in result.data or [] if slot.get("booked_by")]
        created = 0

        for slot in booked:
            try:
                existing = self.supabase.table('tuition_sessions') \
                    .select('id') \
                    .eq('available_date_id', slot["id"]) \
                    .limit(1) \
                    .execute()
                if existing.data:
                    continue

                settings = self.get_settings(slot["booked_by"])
                fee = settings.fee_per_hour if settings else DEFAULT_FEE_PER_HOUR
                duration_hours, amount = calculate_session_amount(slot["start_time"], slot["end_time"], fee)

                self.create_session(
                    slot["booked_by"],
                    slot["date"],
                    slot["start_time"],
                    slot["end_time"],
                    duration_hours,
                    amount,
                    available_date_id=slot["id"],
                )
                created += 1
            except Exception as e:
                logger.error(f"⚠️ [EarningsManager] Failed to create session for slot {slot.get('id')}: {e}")

        if created:
            logger.info(f"🔄 [EarningsManager] Synced {created} booked slot(s) into sessions")
        return created
