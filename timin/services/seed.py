"""Demo data for an empty install"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..auth.user_auth import hash_password
from ..models.shift import Location, Shift
from ..models.user import EMPLOYER, WORKER, User
from ..utils.common import generate_id, to_iso
from ..utils.logger import get_logger
from .record_store import SHIFTS, USERS, RecordStore

logger = get_logger(__name__)

DEMO_PASSWORD = "password123"
DEMO_EMPLOYER_EMAIL = "employer@example.com"
DEMO_WORKER_EMAIL = "worker@example.com"
DEMO_ABN = "51824753556"


def ensure_seed(store: RecordStore, now: Optional[datetime] = None) -> None:
    """Seed users when there are none, and a shift when there are none."""
    with store.mutate(USERS) as users:
        if not users:
            users.append(User(
                id=generate_id("usr"),
                email=DEMO_EMPLOYER_EMAIL,
                role=EMPLOYER,
                password_hash=hash_password(DEMO_PASSWORD),
                abn=DEMO_ABN,
            ).to_record())
            users.append(User(
                id=generate_id("usr"),
                email=DEMO_WORKER_EMAIL,
                role=WORKER,
                password_hash=hash_password(DEMO_PASSWORD),
            ).to_record())
            logger.info("Seeded demo users", count=2)
        employer = next((u for u in users if u.get("role") == EMPLOYER), None)

    if employer is None:
        return

    with store.mutate(SHIFTS) as shifts:
        if shifts:
            return
        start = (now or datetime.now(timezone.utc)) + timedelta(hours=24)
        end = start + timedelta(hours=4)
        shift = Shift(
            id=generate_id("sft"),
            employer_id=employer["id"],
            title="Cafe Barista (Casual)",
            description="Help morning rush. Basic coffee making. Friendly attitude.",
            hourly_rate_cents=2850,
            location=Location(state="NSW", postcode="2000", suburb="Sydney"),
            start=to_iso(start),
            end=to_iso(end),
        )
        shifts.append(shift.to_record())
        logger.info("Seeded demo shift", shift_id=shift.id)
