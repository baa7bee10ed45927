"""Assemble the room read model from a ledger snapshot."""

from decimal import Decimal

from .balances import compute_balances, compute_member_summaries
from .models import RoomResult, RoomSnapshot
from .money import from_minor_units, quantize_amount, to_minor_units
from .settlement import plan_transfers


def assemble_result(snapshot: RoomSnapshot) -> RoomResult:
    """
    Build the full result for a room.

    This is a pure function of the snapshot: balances, transfers and totals
    are recomputed from the records every time.
    """
    room = snapshot.room
    members = list(room.members)
    records = list(snapshot.records)

    balances = compute_balances(members, records)
    transactions = plan_transfers(balances, members)

    total_cents = sum(to_minor_units(record.amount) for record in records)
    total_spent = from_minor_units(total_cents)
    average = (
        quantize_amount(total_spent / len(members)) if members else Decimal("0.00")
    )

    return RoomResult(
        room_id=room.id,
        title=room.title,
        members=members,
        balances={m: from_minor_units(cents) for m, cents in balances.items()},
        transactions=transactions,
        total_spent=total_spent,
        average_per_person=average,
        member_summaries=compute_member_summaries(members, records),
        payment_records=records,
        version=snapshot.version,
    )
