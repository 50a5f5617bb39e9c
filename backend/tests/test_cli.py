"""
Flask CLI command tests (run through app.test_cli_runner()).
"""

import json

import pytest

from voucherpos.extensions import db
from voucherpos.models import CommissionGroup, Retailer, Terminal, User, VoucherInventory, VoucherType
from voucherpos.services import commission_service


@pytest.fixture
def runner(app, db_session):
    return app.test_cli_runner()


class TestSystemInit:

    def test_init_creates_admin_and_group(self, runner):
        result = runner.invoke(args=["system", "init"])
        assert "DONE System initialized" in result.output

        admin = db.session.query(User).filter_by(username="admin").one()
        assert admin.role == "admin"
        assert db.session.query(CommissionGroup).filter_by(name="Default").count() == 1

    def test_init_is_idempotent(self, runner):
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])
        assert "PASS Admin user exists: admin" in result.output
        assert "PASS Using existing commission group: Default" in result.output
        assert db.session.query(User).count() == 1

    def test_init_weak_password(self, runner):
        result = runner.invoke(args=["system", "init", "--admin-password", "weak"])
        assert "FAIL Password validation failed" in result.output
        assert db.session.query(User).count() == 0


class TestRetailerCommands:

    def test_create_list_and_deposit(self, runner):
        commission_service.create_group("Default")
        result = runner.invoke(args=[
            "retailers", "create", "--name", "Corner Spaza", "--credit-limit-cents", "5000",
            "--username", "owner1", "--password", "Password123!",
        ])
        assert "PASS Created retailer: Corner Spaza" in result.output
        assert "PASS Created retailer login: owner1" in result.output

        retailer = db.session.query(Retailer).filter_by(name="Corner Spaza").one()
        assert retailer.commission_group.name == "Default"

        result = runner.invoke(args=["retailers", "deposit", str(retailer.id), "25000", "--note", "EFT"])
        assert "balance=25000" in result.output

        result = runner.invoke(args=["retailers", "list"])
        assert "Corner Spaza" in result.output
        assert "credit=0/5000" in result.output

    def test_unknown_group(self, runner):
        result = runner.invoke(args=["retailers", "create", "--name", "Nowhere", "--group", "Gold"])
        assert "FAIL Commission group 'Gold' not found" in result.output
        assert db.session.query(Retailer).count() == 0

    def test_deposit_unknown_retailer(self, runner):
        result = runner.invoke(args=["retailers", "deposit", "999", "100"])
        assert result.output.startswith("FAIL")

    def test_list_empty(self, runner):
        assert "No retailers found" in runner.invoke(args=["retailers", "list"]).output


class TestStockCommands:

    def test_terminal_with_cashier(self, runner, retailer):
        result = runner.invoke(args=["terminals", "create", str(retailer.id), "Till 9", "--cashier-username", "till9"])
        assert "PASS Created terminal: Till 9" in result.output
        assert "PASS Created cashier: till9" in result.output
        cashier = db.session.query(User).filter_by(username="till9").one()
        terminal = db.session.query(Terminal).filter_by(name="Till 9").one()
        assert terminal.cashier_user_id == cashier.id

    def test_voucher_type_stock_and_rate(self, runner, tmp_path):
        result = runner.invoke(args=[
            "vouchers", "create-type", "--name", "Vodacom Airtime", "--category", "Airtime", "--network", "Vodacom",
        ])
        assert "PASS Created voucher type: Vodacom Airtime" in result.output
        voucher_type = db.session.query(VoucherType).filter_by(name="Vodacom Airtime").one()

        units_file = tmp_path / "units.json"
        units_file.write_text(json.dumps([
            {"amount_cents": 1200, "pin": "V-0001"},
            {"amount_cents": 1200, "pin": "V-0002", "serial_number": "S2"},
        ]))
        result = runner.invoke(args=["vouchers", "stock", str(voucher_type.id), str(units_file)])
        assert "PASS Loaded 2 units" in result.output
        assert db.session.query(VoucherInventory).count() == 2

        result = runner.invoke(args=["commissions", "set-rate", "Gold", str(voucher_type.id), "4.5", "--agent-pct", "0.5"])
        assert "PASS Gold" in result.output
        assert "retailer=4.5" in result.output

    def test_stock_bad_json(self, runner, tmp_path):
        units_file = tmp_path / "units.json"
        units_file.write_text("{not json")
        result = runner.invoke(args=["vouchers", "stock", "1", str(units_file)])
        assert "FAIL Invalid JSON" in result.output

    def test_stock_needs_list(self, runner, tmp_path):
        units_file = tmp_path / "units.json"
        units_file.write_text(json.dumps({"amount_cents": 100}))
        result = runner.invoke(args=["vouchers", "stock", "1", str(units_file)])
        assert "FAIL Expected a JSON list of units" in result.output
