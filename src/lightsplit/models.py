"""Pydantic domain models for LightSplit."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Ledger Models
# ============================================================================


class Room(BaseModel):
    """An isolated ledger with a fixed, ordered member list."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    members: tuple[str, ...]
    created_at: datetime


class PaymentRecord(BaseModel):
    """One contribution by a payer, split across the involved members."""

    model_config = ConfigDict(frozen=True)

    id: str
    payer: str
    amount: Decimal  # always positive, quantized to cents
    description: str = ""
    involved_members: tuple[str, ...]  # in room member order
    created_at: datetime
    updated_at: datetime | None = None


class PaymentUpdate(BaseModel):
    """Fields to replace on an existing payment record.

    Fields left as None keep their current value. Values are validated by the
    ledger store, not here, so that bad amounts and members surface as
    domain errors rather than pydantic errors.
    """

    model_config = ConfigDict(extra="forbid")

    payer: Any = None
    amount: Any = None
    description: str | None = None
    involved_members: Any = None


class RoomSnapshot(BaseModel):
    """Immutable view of a room and its records at one version.

    A new snapshot is swapped in after every mutation; readers never see a
    half-applied change.
    """

    model_config = ConfigDict(frozen=True)

    room: Room
    records: tuple[PaymentRecord, ...] = ()
    version: int = 0


# ============================================================================
# Settlement Models
# ============================================================================


class Transfer(BaseModel):
    """A recommended payment from a debtor to a creditor."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_member: str = Field(alias="from")
    to_member: str = Field(alias="to")
    amount: Decimal


class MemberSummary(BaseModel):
    """What a member paid, what their shares came to, and the difference."""

    name: str
    paid: Decimal
    share: Decimal
    balance: Decimal


class RoomResult(BaseModel):
    """Read model returned to callers; always rebuilt from a snapshot."""

    room_id: str
    title: str
    members: list[str]
    balances: dict[str, Decimal]
    transactions: list[Transfer]
    total_spent: Decimal
    average_per_person: Decimal
    member_summaries: list[MemberSummary] = Field(default_factory=list)
    payment_records: list[PaymentRecord] = Field(default_factory=list)
    version: int = 0
