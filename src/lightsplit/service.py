"""Service layer that composes the ledger store and settlement logic.

This is the surface external callers (CLI, MCP server, web handlers) use.
Results are recomputed from the current ledger snapshot; an optional cache
keeps the last assembled result per room and is dropped on every write.
"""

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .db import Database
from .exceptions import ValidationError
from .ledger import LedgerStore
from .models import PaymentRecord, PaymentUpdate, Room, RoomResult, RoomSnapshot
from .result import assemble_result

logger = logging.getLogger(__name__)


class ResultCache:
    """Per-room cache of assembled results, keyed by snapshot version."""

    def __init__(self):
        """Initialize an empty cache."""
        self._results: dict[str, RoomResult] = {}
        self._lock = threading.Lock()

    def get(self, snapshot: RoomSnapshot) -> RoomResult | None:
        """Return the cached result only if it was built from this snapshot."""
        with self._lock:
            cached = self._results.get(snapshot.room.id)
        if cached is not None and cached.version == snapshot.version:
            return cached
        return None

    def put(self, result: RoomResult):
        """Store a result unless a newer one is already cached."""
        with self._lock:
            cached = self._results.get(result.room_id)
            if cached is None or cached.version <= result.version:
                self._results[result.room_id] = result

    def invalidate(self, room_id: str):
        """Drop the cached result for a room."""
        with self._lock:
            self._results.pop(room_id, None)


class LightSplitService:
    """Room, payment and settlement operations for external callers."""

    def __init__(self, settings: Settings, database: Database | None = None):
        """Initialize the service and its ledger store."""
        self.settings = settings
        self.db = database
        self.store = LedgerStore(
            database=database, room_id_bytes=settings.room_id_bytes
        )
        self.cache = ResultCache() if settings.cache_results else None
        if self.cache is not None:
            self.store.subscribe(self.cache.invalidate)

    # ========================================================================
    # Rooms
    # ========================================================================

    def create_room(self, title: str, members: Sequence[str]) -> Room:
        """Create a room with at least two distinct members."""
        return self.store.create_room(title, members)

    def get_room(self, room_id: str) -> RoomSnapshot:
        """Return the current snapshot of a room."""
        return self.store.get_room(room_id)

    def list_rooms(self) -> list[RoomSnapshot]:
        """Return snapshots of all live rooms."""
        return self.store.list_rooms()

    def add_member(self, room_id: str, name: str) -> Room:
        """Add a member to an existing room."""
        return self.store.add_member(room_id, name)

    def delete_room(self, room_id: str):
        """Delete a room and all of its payments."""
        self.store.delete_room(room_id)

    # ========================================================================
    # Results
    # ========================================================================

    def get_result(self, room_id: str) -> RoomResult:
        """
        Get balances, transfers and totals for a room.

        Args:
            room_id: The room to settle

        Returns:
            The assembled result for the room's current records

        Raises:
            RoomNotFoundError: If the room doesn't exist
        """
        snapshot = self.store.get_room(room_id)

        if self.cache is not None:
            cached = self.cache.get(snapshot)
            if cached is not None:
                logger.debug(
                    f"Result cache hit for room {room_id} v{snapshot.version}"
                )
                return cached

        result = assemble_result(snapshot)

        if self.cache is not None:
            self.cache.put(result)

        return result

    # ========================================================================
    # Payments
    # ========================================================================

    def submit_payment(
        self,
        room_id: str,
        payer: str,
        amount: Any,
        description: str | None = None,
        involved_members: Sequence[str] | None = None,
    ) -> PaymentRecord:
        """
        Record a payment.

        If ``involved_members`` is omitted, the cost is shared by every
        current member of the room.
        """
        if involved_members is None:
            involved_members = self.store.get_room(room_id).room.members

        return self.store.add_payment(
            room_id, payer, amount, description, involved_members
        )

    def edit_payment(
        self,
        room_id: str,
        record_id: str,
        fields: PaymentUpdate | Mapping[str, Any],
    ) -> PaymentRecord:
        """Replace fields of an existing payment, keeping its id and position."""
        if isinstance(fields, PaymentUpdate):
            update = fields
        else:
            try:
                update = PaymentUpdate.model_validate(dict(fields))
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid payment fields: {e}") from e
        return self.store.edit_payment(room_id, record_id, update)

    def delete_payment(self, room_id: str, record_id: str):
        """Remove a payment permanently."""
        self.store.delete_payment(room_id, record_id)
