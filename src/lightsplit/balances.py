"""Balance calculation for a room's payment records.

All arithmetic happens in integer cents. A record's amount is split evenly
across its involved members by truncation, and the leftover cents go one each
to the first involved members in room member order, so that every record's
shares sum exactly to its amount and every balance map sums to zero.
"""

import logging
from collections.abc import Iterable, Sequence

from .exceptions import InvalidMembersError, RoundingError
from .models import MemberSummary, PaymentRecord
from .money import from_minor_units, to_minor_units

logger = logging.getLogger(__name__)


def split_shares(record: PaymentRecord, members: Sequence[str]) -> dict[str, int]:
    """
    Compute each involved member's share of one record, in cents.

    Args:
        record: The payment record to split
        members: Room members; their order decides who absorbs leftover cents

    Returns:
        Mapping of involved member -> share in cents, in room member order

    Raises:
        InvalidMembersError: If the record involves nobody or names a
                             member outside the room
    """
    involved = set(record.involved_members)
    unknown = involved.difference(members)
    if unknown:
        raise InvalidMembersError(
            f"Payment {record.id} involves non-members: {', '.join(sorted(unknown))}"
        )
    if not involved:
        raise InvalidMembersError(f"Payment {record.id} involves no members")

    ordered = [m for m in members if m in involved]
    amount = to_minor_units(record.amount)
    share, remainder = divmod(amount, len(ordered))

    if remainder:
        logger.debug(
            f"Payment {record.id}: {remainder} leftover cent(s) assigned to "
            f"{', '.join(ordered[:remainder])}"
        )

    return {
        member: share + (1 if idx < remainder else 0)
        for idx, member in enumerate(ordered)
    }


def compute_balances(
    members: Sequence[str], records: Iterable[PaymentRecord]
) -> dict[str, int]:
    """
    Compute each member's net balance in cents.

    Positive means the member is owed money, negative means they owe.

    Args:
        members: Room members in display order
        records: Payment records in insertion order

    Returns:
        Mapping covering every member (zero if never referenced), in member order

    Raises:
        InvalidMembersError: If a record references a non-member
        RoundingError: If the balances fail to sum to zero
    """
    balances = {member: 0 for member in members}

    for record in records:
        if record.payer not in balances:
            raise InvalidMembersError(
                f"Payment {record.id} paid by non-member '{record.payer}'"
            )

        balances[record.payer] += to_minor_units(record.amount)
        for member, share in split_shares(record, members).items():
            balances[member] -= share

    total = sum(balances.values())
    if total != 0:
        raise RoundingError(
            f"Balances sum to {total} cents instead of zero: {balances}"
        )

    return balances


def compute_member_summaries(
    members: Sequence[str], records: Iterable[PaymentRecord]
) -> list[MemberSummary]:
    """Summarize paid and owed totals per member, in member order."""
    paid = {member: 0 for member in members}
    owed = {member: 0 for member in members}

    for record in records:
        if record.payer not in paid:
            raise InvalidMembersError(
                f"Payment {record.id} paid by non-member '{record.payer}'"
            )
        paid[record.payer] += to_minor_units(record.amount)
        for member, share in split_shares(record, members).items():
            owed[member] += share

    return [
        MemberSummary(
            name=member,
            paid=from_minor_units(paid[member]),
            share=from_minor_units(owed[member]),
            balance=from_minor_units(paid[member] - owed[member]),
        )
        for member in members
    ]
