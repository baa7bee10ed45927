"""LightSplit - Split shared group expenses and settle up with minimal transfers."""

__version__ = "0.1.0"

from .balances import compute_balances, split_shares
from .config import Settings, load_settings
from .db import Database
from .ledger import LedgerStore
from .models import (
    PaymentRecord,
    PaymentUpdate,
    Room,
    RoomResult,
    RoomSnapshot,
    Transfer,
)
from .result import assemble_result
from .service import LightSplitService
from .settlement import apply_transfers, plan_transfers

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "LedgerStore",
    "PaymentRecord",
    "PaymentUpdate",
    "Room",
    "RoomResult",
    "RoomSnapshot",
    "Transfer",
    "compute_balances",
    "split_shares",
    "plan_transfers",
    "apply_transfers",
    "assemble_result",
    "LightSplitService",
]
