"""CLI for LightSplit using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .exceptions import LightSplitError
from .models import RoomResult
from .money import to_minor_units
from .service import LightSplitService
from .settlement import apply_transfers
from .ui import confirm_action, select_member_interactive

app = typer.Typer(
    name="lightsplit",
    help="Split shared group expenses and settle up with the fewest transfers",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_service(verbose: bool = False) -> Iterator[LightSplitService]:
    """Load settings, open the database and yield a service.

    Domain errors are printed and turned into exit code 1; with --verbose
    they are re-raised for the traceback.
    """
    setup_logging(verbose)
    db = None

    try:
        settings = load_settings()
        if settings.database_path is not None:
            db = Database(settings.database_path)
        else:
            console.print(
                "[yellow]No database configured; changes won't persist.[/yellow]"
            )

        yield LightSplitService(settings, db)

    except LightSplitError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[bold red]Unexpected error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def format_money(amount: Decimal, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (85.02)
    Positive amounts have spaces:      85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"([red]{abs_amount:,.2f}[/red])"
        return f"({abs_amount:,.2f})"
    if use_color:
        return f" [green]{abs_amount:,.2f}[/green] "
    return f" {abs_amount:,.2f} "


def display_result(result: RoomResult):
    """Display a room's balances, transfers and payments as tables."""
    console.print(f"\n[bold]{result.title}[/bold] [dim]({result.room_id})[/dim]")
    console.print(f"  Members: {', '.join(result.members)}")
    console.print(f"  Total spent: {format_money(result.total_spent)}")
    console.print(f"  Average per person: {format_money(result.average_per_person)}")
    console.print()

    balances = Table(title="Balances", show_header=True, header_style="bold magenta")
    balances.add_column("Member", style="cyan")
    balances.add_column("Paid", justify="right")
    balances.add_column("Share", justify="right")
    balances.add_column("Balance", justify="right")
    for summary in result.member_summaries:
        balances.add_row(
            summary.name,
            format_money(summary.paid, use_color=False),
            format_money(summary.share, use_color=False),
            format_money(summary.balance),
        )
    console.print(balances)

    if result.transactions:
        transfers = Table(
            title="Transfers", show_header=True, header_style="bold magenta"
        )
        transfers.add_column("From", style="cyan")
        transfers.add_column("To", style="cyan")
        transfers.add_column("Amount", justify="right")
        for transfer in result.transactions:
            transfers.add_row(
                transfer.from_member,
                transfer.to_member,
                format_money(transfer.amount, use_color=False),
            )
        console.print(transfers)
    else:
        console.print("[green]Nobody owes anything.[/green]")

    if result.payment_records:
        payments = Table(
            title="Payments", show_header=True, header_style="bold magenta"
        )
        payments.add_column("ID", style="dim", width=12)
        payments.add_column("Payer", style="cyan")
        payments.add_column("Description", width=30)
        payments.add_column("Amount", justify="right")
        payments.add_column("Shared by", style="yellow", no_wrap=False)
        for record in result.payment_records:
            desc = record.description
            payments.add_row(
                record.id,
                record.payer,
                desc[:30] + "..." if len(desc) > 30 else desc,
                format_money(record.amount, use_color=False),
                ", ".join(record.involved_members),
            )
        console.print(payments)

    # Verification
    cents = {m: to_minor_units(b) for m, b in result.balances.items()}
    leftover = apply_transfers(cents, result.transactions)
    if all(value == 0 for value in leftover.values()):
        console.print("  [green]✓ Transfers settle every balance[/green]")
    else:
        console.print(f"  [red]✗ Unsettled after transfers: {leftover}[/red]")


@app.command()
def create(
    title: str = typer.Argument(..., help="Room title"),
    members: list[str] = typer.Argument(..., help="At least two member names"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a new room."""
    with open_service(verbose) as service:
        room = service.create_room(title, members)
        console.print("\n[bold green]✓ Room created![/bold green]")
        console.print(f"  Room ID: [cyan]{room.id}[/cyan]")
        console.print(f"  Members: {', '.join(room.members)}\n")


@app.command()
def rooms(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List all rooms."""
    with open_service(verbose) as service:
        snapshots = service.list_rooms()
        if not snapshots:
            console.print("[yellow]No rooms yet.[/yellow]")
            return

        table = Table(title="Rooms", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan")
        table.add_column("Title")
        table.add_column("Members")
        table.add_column("Payments", justify="right")
        table.add_column("Created", style="dim")
        for snapshot in snapshots:
            table.add_row(
                snapshot.room.id,
                snapshot.room.title,
                ", ".join(snapshot.room.members),
                str(len(snapshot.records)),
                snapshot.room.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)


@app.command()
def show(
    room_id: str = typer.Argument(..., help="Room ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show balances and settlement transfers for a room."""
    with open_service(verbose) as service:
        result = service.get_result(room_id)
        if as_json:
            print(result.model_dump_json(by_alias=True, indent=2))
        else:
            display_result(result)


@app.command()
def pay(
    room_id: str = typer.Argument(..., help="Room ID"),
    amount: str = typer.Argument(..., help="Amount paid, e.g. 12.50"),
    payer: str | None = typer.Option(
        None, "--payer", "-p", help="Who paid (prompts if omitted)"
    ),
    description: str = typer.Option("", "--description", "-d", help="What for"),
    involved: list[str] | None = typer.Option(
        None,
        "--involved",
        "-i",
        help="Member sharing the cost (repeatable; defaults to everyone)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record a payment."""
    with open_service(verbose) as service:
        if payer is None:
            members = list(service.get_room(room_id).room.members)
            payer = select_member_interactive(members)
            if payer is None:
                console.print("[yellow]No payer selected.[/yellow]")
                return

        record = service.submit_payment(
            room_id,
            payer=payer,
            amount=amount,
            description=description,
            involved_members=involved or None,
        )
        console.print(
            f"\n[bold green]✓ Recorded {record.amount:,.2f} paid by "
            f"{record.payer}[/bold green] [dim](payment {record.id})[/dim]"
        )
        console.print(f"  Shared by: {', '.join(record.involved_members)}\n")


@app.command()
def edit(
    room_id: str = typer.Argument(..., help="Room ID"),
    record_id: str = typer.Argument(..., help="Payment ID"),
    payer: str | None = typer.Option(None, "--payer", "-p", help="New payer"),
    amount: str | None = typer.Option(None, "--amount", "-a", help="New amount"),
    description: str | None = typer.Option(
        None, "--description", "-d", help="New description"
    ),
    involved: list[str] | None = typer.Option(
        None, "--involved", "-i", help="New member sharing the cost (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Edit an existing payment."""
    with open_service(verbose) as service:
        fields = {
            "payer": payer,
            "amount": amount,
            "description": description,
            "involved_members": involved or None,
        }
        record = service.edit_payment(
            room_id, record_id, {k: v for k, v in fields.items() if v is not None}
        )
        console.print(
            f"\n[bold green]✓ Updated payment {record.id}:[/bold green] "
            f"{record.payer} paid {record.amount:,.2f} for "
            f"{', '.join(record.involved_members)}\n"
        )


@app.command()
def delete(
    room_id: str = typer.Argument(..., help="Room ID"),
    record_id: str = typer.Argument(..., help="Payment ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a payment."""
    with open_service(verbose) as service:
        if not yes and not confirm_action(f"Delete payment {record_id}?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_payment(room_id, record_id)
        console.print(f"\n[bold green]✓ Deleted payment {record_id}[/bold green]\n")


@app.command("add-member")
def add_member(
    room_id: str = typer.Argument(..., help="Room ID"),
    name: str = typer.Argument(..., help="New member name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a member to a room."""
    with open_service(verbose) as service:
        room = service.add_member(room_id, name)
        console.print(f"\n[bold green]✓ Added {name}[/bold green]")
        console.print(f"  Members: {', '.join(room.members)}\n")


@app.command()
def close(
    room_id: str = typer.Argument(..., help="Room ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a room and all of its payments."""
    with open_service(verbose) as service:
        if not yes and not confirm_action(f"Delete room {room_id} permanently?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_room(room_id)
        console.print(f"\n[bold green]✓ Deleted room {room_id}[/bold green]\n")


@app.command()
def mcp():
    """Start the MCP server (stdio transport)."""
    from .mcp_server import run_server

    run_server()


if __name__ == "__main__":
    app()
