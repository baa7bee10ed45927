"""Settlement planning: turn net balances into a short list of transfers."""

import logging
from collections.abc import Iterable, Mapping, Sequence

from .exceptions import RoundingError
from .models import Transfer
from .money import from_minor_units, to_minor_units

logger = logging.getLogger(__name__)


def plan_transfers(
    balances: Mapping[str, int], members: Sequence[str] | None = None
) -> list[Transfer]:
    """
    Plan transfers that settle every balance.

    Greedy largest-first matching: the creditor owed the most is paired with
    the debtor owing the most, the smaller of the two amounts changes hands,
    and whoever reaches zero drops out. For k non-zero parties this emits at
    most k - 1 transfers.

    Ties on amount go to the member that comes first in ``members`` (or in
    the mapping's own order when ``members`` is omitted), so the output is
    fully deterministic.

    Args:
        balances: Member -> net balance in cents (positive = owed money)
        members: Optional member order used for tie-breaking

    Returns:
        Ordered list of transfers, each with a positive amount

    Raises:
        RoundingError: If the balances don't sum to zero
    """
    total = sum(balances.values())
    if total != 0:
        raise RoundingError(f"Cannot settle balances that sum to {total} cents")

    order = list(members) if members is not None else list(balances)
    rank = {member: idx for idx, member in enumerate(order)}
    # Members missing from the explicit order sort after it, in mapping order
    for member in balances:
        rank.setdefault(member, len(rank))

    creditors = {m: b for m, b in balances.items() if b > 0}
    debtors = {m: -b for m, b in balances.items() if b < 0}

    transfers = []
    while creditors and debtors:
        creditor = min(creditors, key=lambda m: (-creditors[m], rank[m]))
        debtor = min(debtors, key=lambda m: (-debtors[m], rank[m]))

        amount = min(creditors[creditor], debtors[debtor])
        transfers.append(
            Transfer(
                from_member=debtor,
                to_member=creditor,
                amount=from_minor_units(amount),
            )
        )

        creditors[creditor] -= amount
        debtors[debtor] -= amount
        if creditors[creditor] == 0:
            del creditors[creditor]
        if debtors[debtor] == 0:
            del debtors[debtor]

    logger.debug(f"Planned {len(transfers)} transfer(s) for {len(balances)} members")

    return transfers


def apply_transfers(
    balances: Mapping[str, int], transfers: Iterable[Transfer]
) -> dict[str, int]:
    """
    Apply transfers to a balance map and return the resulting balances.

    Paying a transfer raises the debtor's balance and lowers the creditor's,
    so applying a complete settlement plan yields all zeros.
    """
    result = dict(balances)
    for transfer in transfers:
        cents = to_minor_units(transfer.amount)
        result[transfer.from_member] = result.get(transfer.from_member, 0) + cents
        result[transfer.to_member] = result.get(transfer.to_member, 0) - cents
    return result
