"""Tests for the Typer CLI."""

from decimal import Decimal

import pytest
from typer.testing import CliRunner

from lightsplit.cli import app
from lightsplit.config import Settings
from lightsplit.db import Database
from lightsplit.service import LightSplitService

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the CLI at a temporary database."""
    path = tmp_path / "cli.db"
    monkeypatch.setenv("LIGHTSPLIT_DATABASE_PATH", str(path))
    return path


def open_service(db_path) -> tuple[LightSplitService, Database]:
    db = Database(db_path)
    return LightSplitService(Settings(database_path=db_path), db), db


@pytest.fixture
def room_id(db_path):
    """Create a room directly in the CLI's database."""
    service, db = open_service(db_path)
    room = service.create_room("Trip", ["Alice", "Bob", "Carol"])
    db.close()
    return room.id


class TestCommands:
    """CLI commands persist through the configured database."""

    def test_create(self, db_path):
        result = runner.invoke(app, ["create", "Dinner", "Alice", "Bob"])

        assert result.exit_code == 0
        service, db = open_service(db_path)
        try:
            rooms = service.list_rooms()
        finally:
            db.close()
        assert [r.room.title for r in rooms] == ["Dinner"]
        assert rooms[0].room.id in result.output

    def test_pay_and_show(self, db_path, room_id):
        result = runner.invoke(
            app, ["pay", room_id, "30", "--payer", "Alice", "-d", "Hotel"]
        )
        assert result.exit_code == 0

        result = runner.invoke(
            app, ["pay", room_id, "10", "--payer", "Bob", "-i", "Carol"]
        )
        assert result.exit_code == 0

        result = runner.invoke(app, ["show", room_id])
        assert result.exit_code == 0
        assert "Transfers" in result.output

        service, db = open_service(db_path)
        try:
            balances = service.get_result(room_id).balances
        finally:
            db.close()
        assert balances == {
            "Alice": Decimal("20.00"),
            "Bob": Decimal("0.00"),
            "Carol": Decimal("-20.00"),
        }

    def test_edit_and_delete(self, db_path, room_id):
        service, db = open_service(db_path)
        record = service.submit_payment(room_id, "Alice", "30")
        db.close()

        result = runner.invoke(app, ["edit", room_id, record.id, "--amount", "12"])
        assert result.exit_code == 0

        service, db = open_service(db_path)
        assert service.get_room(room_id).records[0].amount == Decimal("12.00")
        db.close()

        result = runner.invoke(app, ["delete", room_id, record.id, "--yes"])
        assert result.exit_code == 0

        service, db = open_service(db_path)
        assert service.get_room(room_id).records == ()
        db.close()

    def test_add_member_and_close(self, db_path, room_id):
        result = runner.invoke(app, ["add-member", room_id, "Dave"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["close", room_id, "--yes"])
        assert result.exit_code == 0

        service, db = open_service(db_path)
        assert service.list_rooms() == []
        db.close()

    def test_domain_error_exits_with_code_1(self, db_path, room_id):
        result = runner.invoke(app, ["pay", room_id, "0", "--payer", "Alice"])

        assert result.exit_code == 1
        assert "positive" in result.output

    def test_unknown_room(self, db_path):
        result = runner.invoke(app, ["show", "missing"])

        assert result.exit_code == 1
        assert "does not exist" in result.output
