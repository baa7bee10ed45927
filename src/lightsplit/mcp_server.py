"""MCP server for LightSplit — exposes rooms and settlements as tools."""

import logging
from dataclasses import dataclass
from decimal import Decimal

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .db import Database
from .exceptions import LightSplitError
from .models import PaymentRecord, RoomResult
from .service import LightSplitService

logger = logging.getLogger(__name__)

mcp_app = FastMCP("lightsplit")

WORKFLOW_INSTRUCTIONS = """\
You are helping a group split shared expenses. Follow this workflow:

1. ROOM: Call list_rooms to find an existing room, or create_room with a
   title and at least two member names. Tell the user the room ID.

2. PAYMENTS: For each expense the user mentions, call submit_payment with
   the payer and amount. Pass involved_members only when the cost is not
   shared by everyone. Use edit_payment or delete_payment to fix mistakes;
   payment IDs are shown by get_result.

3. SETTLE: Call get_result and show the user the balances and the list of
   transfers that settles everything.

Positive balance = owed money, negative balance = owes money.\
"""


@dataclass
class SessionState:
    """Holds the service between MCP tool calls."""

    service: LightSplitService | None = None
    db: Database | None = None


_state = SessionState()


def _ensure_service() -> LightSplitService:
    """Lazily initialize the LightSplitService (loads .env config)."""
    if _state.service is None:
        settings = load_settings()
        if settings.database_path is not None:
            _state.db = Database(settings.database_path)
        _state.service = LightSplitService(settings, _state.db)
    return _state.service


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _format_amount(amount: Decimal) -> str:
    """Format an amount in accounting style."""
    if amount < 0:
        return f"({abs(amount):,.2f})"
    return f"{amount:,.2f}"


def _format_record(record: PaymentRecord) -> str:
    desc = f" '{record.description}'" if record.description else ""
    return (
        f"[{record.id}] {record.payer} paid {_format_amount(record.amount)}{desc} "
        f"| shared by {', '.join(record.involved_members)}"
    )


def format_result(result: RoomResult) -> str:
    """Render a room result as plain text."""
    lines = [
        f"{result.title} (room {result.room_id})",
        f"  Members: {', '.join(result.members)}",
        f"  Total spent: {_format_amount(result.total_spent)}",
        f"  Average per person: {_format_amount(result.average_per_person)}",
        "",
        "Balances:",
    ]
    for member, balance in result.balances.items():
        lines.append(f"  {member}: {_format_amount(balance)}")

    lines.append("")
    if result.transactions:
        lines.append("Transfers:")
        for t in result.transactions:
            lines.append(
                f"  {t.from_member} -> {t.to_member}: {_format_amount(t.amount)}"
            )
    else:
        lines.append("No transfers needed.")

    if result.payment_records:
        lines.append("")
        lines.append(f"Payments ({len(result.payment_records)}):")
        for record in result.payment_records:
            lines.append(f"  {_format_record(record)}")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@mcp_app.tool()
def create_room(title: str, members: list[str]) -> str:
    """Create a room for splitting expenses.

    Args:
        title: Room title, e.g. "Weekend trip".
        members: Names of at least two distinct members.
    """
    try:
        room = _ensure_service().create_room(title, members)
        return (
            f"Created room '{room.title}' with ID {room.id}.\n"
            f"Members: {', '.join(room.members)}"
        )
    except LightSplitError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to create room: {e}"


@mcp_app.tool()
def list_rooms() -> str:
    """List all rooms with their members and payment counts."""
    try:
        snapshots = _ensure_service().list_rooms()
        if not snapshots:
            return "No rooms yet."

        lines = ["Rooms:"]
        for s in snapshots:
            lines.append(
                f"  [{s.room.id}] {s.room.title} | {', '.join(s.room.members)} "
                f"| {len(s.records)} payment(s)"
            )
        return "\n".join(lines)
    except LightSplitError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to list rooms: {e}"


@mcp_app.tool()
def get_result(room_id: str) -> str:
    """Show balances, settlement transfers and payments for a room.

    Args:
        room_id: The room ID.
    """
    try:
        return format_result(_ensure_service().get_result(room_id))
    except LightSplitError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to get result: {e}"


@mcp_app.tool()
def submit_payment(
    room_id: str,
    payer: str,
    amount: str,
    description: str = "",
    involved_members: list[str] | None = None,
) -> str:
    """Record a payment made by one member.

    Args:
        room_id: The room ID.
        payer: The member who paid.
        amount: Amount paid, e.g. "42.50".
        description: What the payment was for.
        involved_members: Members sharing the cost; omit to share with everyone.
    """
    try:
        record = _ensure_service().submit_payment(
            room_id, payer, amount, description, involved_members
        )
        return f"Recorded: {_format_record(record)}"
    except LightSplitError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to submit payment: {e}"


@mcp_app.tool()
def edit_payment(
    room_id: str,
    payment_id: str,
    payer: str | None = None,
    amount: str | None = None,
    description: str | None = None,
    involved_members: list[str] | None = None,
) -> str:
    """Change an existing payment. Omitted fields keep their current value.

    Args:
        room_id: The room ID.
        payment_id: The payment ID (shown by get_result).
        payer: New payer.
        amount: New amount.
        description: New description.
        involved_members: New list of members sharing the cost.
    """
    try:
        fields = {
            "payer": payer,
            "amount": amount,
            "description": description,
            "involved_members": involved_members,
        }
        record = _ensure_service().edit_payment(
            room_id, payment_id, {k: v for k, v in fields.items() if v is not None}
        )
        return f"Updated: {_format_record(record)}"
    except LightSplitError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to edit payment: {e}"


@mcp_app.tool()
def delete_payment(room_id: str, payment_id: str) -> str:
    """Delete a payment permanently.

    Args:
        room_id: The room ID.
        payment_id: The payment ID (shown by get_result).
    """
    try:
        _ensure_service().delete_payment(room_id, payment_id)
        return f"Deleted payment {payment_id}."
    except LightSplitError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to delete payment: {e}"


@mcp_app.tool()
def add_member(room_id: str, name: str) -> str:
    """Add a new member to a room.

    Args:
        room_id: The room ID.
        name: The new member's name.
    """
    try:
        room = _ensure_service().add_member(room_id, name)
        return f"Added {name}. Members: {', '.join(room.members)}"
    except LightSplitError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to add member: {e}"


# ---------------------------------------------------------------------------
# MCP Prompt
# ---------------------------------------------------------------------------


@mcp_app.prompt()
def split_workflow() -> str:
    """Orchestration instructions for splitting group expenses."""
    return WORKFLOW_INSTRUCTIONS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_server():
    """Start the MCP server (stdio transport)."""
    mcp_app.run(transport="stdio")
