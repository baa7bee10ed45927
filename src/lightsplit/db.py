"""SQLite database operations for LightSplit."""

import json
import sqlite3
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import PaymentRecord, Room


class Database:
    """SQLite database manager.

    The connection is shared between threads; a lock serializes statements so
    that writes from different rooms never interleave within a transaction.
    """

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Rooms table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS rooms (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                members TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        # Payment records table; seq keeps insertion order across edits
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS payment_records (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL,
                room_id TEXT NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
                payer TEXT NOT NULL,
                amount TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                involved_members TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP,
                UNIQUE (room_id, id)
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Room operations
    # ========================================================================

    def save_room(self, room: Room):
        """Insert or update a room."""
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO rooms (id, title, members, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    members = excluded.members
                """,
                (
                    room.id,
                    room.title,
                    json.dumps(list(room.members)),
                    room.created_at.isoformat(),
                ),
            )
            self.conn.commit()

    def delete_room(self, room_id: str):
        """Delete a room and all of its payment records."""
        with self._lock:
            self.conn.execute("DELETE FROM rooms WHERE id = ?", (room_id,))
            self.conn.commit()

    def get_all_rooms(self) -> list[tuple[Room, list[PaymentRecord]]]:
        """Load every room with its records in insertion order."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT id, title, members, created_at FROM rooms ORDER BY created_at"
            )
            rooms = [
                Room(
                    id=row["id"],
                    title=row["title"],
                    members=tuple(json.loads(row["members"])),
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in cursor.fetchall()
            ]

            cursor.execute(
                """
                SELECT id, room_id, payer, amount, description, involved_members,
                       created_at, updated_at
                FROM payment_records
                ORDER BY seq
                """
            )
            records: dict[str, list[PaymentRecord]] = {room.id: [] for room in rooms}
            for row in cursor.fetchall():
                records.setdefault(row["room_id"], []).append(_row_to_record(row))

        return [(room, records[room.id]) for room in rooms]

    # ========================================================================
    # Payment record operations
    # ========================================================================

    def insert_payment(self, room_id: str, record: PaymentRecord):
        """Append a payment record to a room."""
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO payment_records (
                    id, room_id, payer, amount, description,
                    involved_members, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    room_id,
                    record.payer,
                    str(record.amount),
                    record.description,
                    json.dumps(list(record.involved_members)),
                    record.created_at.isoformat(),
                    record.updated_at.isoformat() if record.updated_at else None,
                ),
            )
            self.conn.commit()

    def update_payment(self, room_id: str, record: PaymentRecord):
        """Replace a payment record's fields in place."""
        with self._lock:
            self.conn.execute(
                """
                UPDATE payment_records SET
                    payer = ?,
                    amount = ?,
                    description = ?,
                    involved_members = ?,
                    updated_at = ?
                WHERE room_id = ? AND id = ?
                """,
                (
                    record.payer,
                    str(record.amount),
                    record.description,
                    json.dumps(list(record.involved_members)),
                    record.updated_at.isoformat() if record.updated_at else None,
                    room_id,
                    record.id,
                ),
            )
            self.conn.commit()

    def delete_payment(self, room_id: str, record_id: str):
        """Delete a payment record permanently."""
        with self._lock:
            self.conn.execute(
                "DELETE FROM payment_records WHERE room_id = ? AND id = ?",
                (room_id, record_id),
            )
            self.conn.commit()


def _row_to_record(row: sqlite3.Row) -> PaymentRecord:
    return PaymentRecord(
        id=row["id"],
        payer=row["payer"],
        amount=Decimal(row["amount"]),
        description=row["description"],
        involved_members=tuple(json.loads(row["involved_members"])),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=(
            datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None
        ),
    )
