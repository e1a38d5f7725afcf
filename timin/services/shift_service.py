"""
Shift lifecycle: create -> apply -> hire -> check in -> check out.

Every mutation is one locked read-modify-write of the shifts collection.
There is no terminal state; a hired worker may check in again after
checking out. A hire can be repeated with the same worker; it can never be
undone or moved to another worker.
"""

import math
from datetime import datetime
from typing import Any, List, Mapping, Optional

from ..models.shift import Checkin, Location, Shift
from ..models.user import User
from ..utils.common import generate_id, parse_timestamp, to_iso, utc_now_iso
from ..utils.exceptions import (
    AlreadyCheckedIn,
    AlreadyHired,
    Forbidden,
    InvalidRate,
    InvalidTime,
    MissingFields,
    NotApplied,
    NotCheckedIn,
    NotFoundError,
    Unauthorized,
)
from ..utils.logger import get_logger
from .record_store import SHIFTS, Record, RecordStore

logger = get_logger(__name__)

REQUIRED_FIELDS = ("title", "hourlyRateAUD", "location", "start", "end")


def rate_to_cents(value: Any) -> int:
    """AUD amount -> integer cents, rounding halves up"""
    if isinstance(value, bool):
        raise InvalidRate("Hourly rate must be a number")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidRate(f"Hourly rate {value!r} is not a number")
    scaled = amount * 100
    if not math.isfinite(scaled):
        raise InvalidRate("Hourly rate must be finite")
    cents = math.floor(scaled + 0.5)
    if cents <= 0:
        raise InvalidRate("Hourly rate must be positive")
    return cents


def _location(raw: Any) -> Location:
    raw = raw if isinstance(raw, Mapping) else {}
    return Location(
        state=str(raw.get("state") or "NSW"),
        postcode=str(raw.get("postcode") or ""),
        suburb=str(raw.get("suburb") or ""),
    )


class ShiftService:
    """State machine over the shifts collection"""

    def __init__(self, store: RecordStore):
        self.store = store

    def _index(self, records: List[Record], shift_id: str) -> int:
        for i, record in enumerate(records):
            if record.get("id") == shift_id:
                return i
        raise NotFoundError(f"Shift {shift_id} not found")

    def get(self, shift_id: str) -> Optional[Shift]:
        for record in self.store.load(SHIFTS):
            if record.get("id") == shift_id:
                return Shift.model_validate(record)
        return None

    def list(self, caller: Optional[User], mine_only: bool = False) -> List[Shift]:
        if caller is None:
            raise Unauthorized("Login required")
        shifts = [Shift.model_validate(r) for r in self.store.load(SHIFTS)]
        if mine_only and caller.is_employer:
            return [s for s in shifts if s.employer_id == caller.id]
        return shifts

    def create(self, caller: Optional[User], spec: Mapping[str, Any]) -> Shift:
        if caller is None or not caller.is_employer:
            raise Forbidden("Only employers can post shifts")
        missing = [f for f in REQUIRED_FIELDS if not spec.get(f)]
        if missing:
            raise MissingFields(f"Missing fields: {', '.join(missing)}")

        start = parse_timestamp(spec["start"])
        end = parse_timestamp(spec["end"])
        if start is None or end is None or end <= start:
            raise InvalidTime("Shift end must be after start")
        cents = rate_to_cents(spec["hourlyRateAUD"])

        required_skills = spec.get("requiredSkills")
        shift = Shift(
            id=generate_id("sft"),
            employer_id=caller.id,
            title=str(spec["title"]),
            description=str(spec.get("description") or ""),
            hourly_rate_cents=cents,
            category=str(spec.get("category") or "general"),
            required_skills=[str(s) for s in required_skills] if isinstance(required_skills, list) else [],
            dresscode=str(spec.get("dresscode") or ""),
            requirements=str(spec.get("requirements") or ""),
            location=_location(spec["location"]),
            start=to_iso(start),
            end=to_iso(end),
        )
        with self.store.mutate(SHIFTS) as records:
            records.append(shift.to_record())

        logger.info("Shift created", shift_id=shift.id, employer_id=caller.id, hourly_rate_cents=cents)
        return shift

    def apply(self, shift_id: str, caller: Optional[User]) -> Shift:
        """Add the worker to the applicants; applying twice is a no-op"""
        if caller is None or not caller.is_worker:
            raise Forbidden("Only workers can apply")
        with self.store.mutate(SHIFTS) as records:
            idx = self._index(records, shift_id)
            shift = Shift.model_validate(records[idx])
            if caller.id not in shift.applicants:
                shift.applicants.append(caller.id)
                logger.info("Shift application", shift_id=shift_id, worker_id=caller.id)
            records[idx] = shift.to_record()
        return shift

    def hire(self, shift_id: str, caller: Optional[User], worker_id: Any) -> Shift:
        if caller is None or not caller.is_employer:
            raise Forbidden("Only employers can hire")
        worker_id = str(worker_id or "")
        with self.store.mutate(SHIFTS) as records:
            idx = self._index(records, shift_id)
            shift = Shift.model_validate(records[idx])
            if shift.employer_id != caller.id:
                raise Forbidden("Shift belongs to another employer")
            if worker_id not in shift.applicants:
                raise NotApplied(f"Worker {worker_id} has not applied")
            if shift.hired_worker_id and shift.hired_worker_id != worker_id:
                raise AlreadyHired(f"Shift already has hired worker {shift.hired_worker_id}")
            shift.hired_worker_id = worker_id
            records[idx] = shift.to_record()

        logger.info("Worker hired", shift_id=shift_id, worker_id=worker_id, employer_id=caller.id)
        return shift

    def checkin(self, shift_id: str, caller: Optional[User], now: Optional[datetime] = None) -> Shift:
        if caller is None or not caller.is_worker:
            raise Forbidden("Only workers can check in")
        with self.store.mutate(SHIFTS) as records:
            idx = self._index(records, shift_id)
            shift = Shift.model_validate(records[idx])
            if shift.hired_worker_id != caller.id:
                raise Forbidden("Only the hired worker can check in")
            if shift.open_checkin(caller.id) is not None:
                raise AlreadyCheckedIn("Already checked in")
            stamp = to_iso(now) if now else utc_now_iso()
            shift.checkins.append(Checkin(user_id=caller.id, checkin_at=stamp, checkout_at=None))
            records[idx] = shift.to_record()

        logger.info("Checked in", shift_id=shift_id, worker_id=caller.id, at=stamp)
        return shift

    def checkout(self, shift_id: str, caller: Optional[User], now: Optional[datetime] = None) -> Shift:
        if caller is None or not caller.is_worker:
            raise Forbidden("Only workers can check out")
        with self.store.mutate(SHIFTS) as records:
            idx = self._index(records, shift_id)
            shift = Shift.model_validate(records[idx])
            if shift.hired_worker_id != caller.id:
                raise Forbidden("Only the hired worker can check out")
            record = shift.open_checkin(caller.id)
            if record is None:
                raise NotCheckedIn("No open check-in")
            record.checkout_at = to_iso(now) if now else utc_now_iso()
            records[idx] = shift.to_record()

        logger.info("Checked out", shift_id=shift_id, worker_id=caller.id, at=record.checkout_at)
        return shift

