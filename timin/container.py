"""
Composition root: builds the services around one record store.

The web layer keeps a Container on app.state; tests build their own with a
temporary data directory or a MemoryRecordStore.
"""

from pathlib import Path
from typing import Optional

from .auth.tokens import TokenService
from .services.record_store import JsonRecordStore, RecordStore
from .services.review_service import ReviewService
from .services.shift_service import ShiftService
from .services.user_store import UserStore
from .utils.config import Settings


class Container:
    def __init__(self, settings: Settings, store: Optional[RecordStore] = None):
        self.settings = settings
        self.store = store or JsonRecordStore(
            Path(settings.storage.data_dir),
            lock_timeout_seconds=settings.storage.lock_timeout_seconds,
        )
        self.tokens = TokenService(settings.auth.signing_key, settings.auth.token_ttl_seconds)
        self.users = UserStore(self.store)
        self.shifts = ShiftService(self.store)
        self.reviews = ReviewService(self.store)
