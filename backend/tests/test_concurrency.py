"""
Concurrency tests for the sale executor.

Uses a file-backed SQLite database so each thread gets its own connection,
the way separate terminals would.
"""

import threading

import pytest

from voucherpos import create_app
from voucherpos.errors import SaleError, KIND_INSUFFICIENT_FUNDS, KIND_INVENTORY_UNIT_UNAVAILABLE
from voucherpos.extensions import db
from voucherpos.models import Retailer, Sale, VoucherInventory
from voucherpos.models.vouchers import UNIT_SOLD
from voucherpos.services import account_service, commission_service, inventory_service, ledger_service, sales_service


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        db.create_all()

        group = commission_service.create_group("Standard")
        voucher_type = inventory_service.create_voucher_type(name="MTN Airtime", category="airtime", network_provider="MTN")
        commission_service.upsert_rate(group.id, voucher_type.id, "5", "0")
        retailer = account_service.create_retailer("Race Shop", commission_group_id=group.id)
        ledger_service.deposit(retailer.id, 100000)
        terminals = [account_service.create_terminal(retailer.id, f"Till {i}").id for i in range(4)]

        app.config["SEED"] = {
            "voucher_type_id": voucher_type.id,
            "retailer_id": retailer.id,
            "terminal_ids": terminals,
        }
        db.session.remove()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _race(app, calls):
    """Run each (terminal_id, unit_id) call on its own thread, released together."""
    seed = app.config["SEED"]
    barrier = threading.Barrier(len(calls))
    results = []
    lock = threading.Lock()

    def worker(terminal_id, unit_id, amount_cents):
        with app.app_context():
            barrier.wait()
            try:
                receipt = sales_service.execute_sale(
                    inventory_unit_id=unit_id,
                    retailer_id=seed["retailer_id"],
                    terminal_id=terminal_id,
                    voucher_type_id=seed["voucher_type_id"],
                    sale_amount_cents=amount_cents,
                    retailer_commission_pct="5",
                    agent_commission_pct="0",
                )
                outcome = ("ok", receipt.sale_id)
            except SaleError as exc:
                outcome = ("error", exc.kind)
            finally:
                db.session.remove()
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=worker, args=call) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


def _load(app, amount_cents, count):
    seed = app.config["SEED"]
    with app.app_context():
        before = {u.id for u in db.session.query(VoucherInventory.id).all()}
        inventory_service.add_inventory_units(seed["voucher_type_id"], [
            {"amount_cents": amount_cents, "pin": f"RACE-{amount_cents}-{len(before) + i}"}
            for i in range(count)
        ])
        ids = sorted(u.id for u in db.session.query(VoucherInventory.id).all() if u.id not in before)
        db.session.remove()
    return ids


def test_two_terminals_same_unit_exactly_one_wins(file_app):
    unit_id = _load(file_app, 1000, 1)[0]
    terminal_ids = file_app.config["SEED"]["terminal_ids"]

    results = _race(file_app, [(terminal_ids[0], unit_id, 1000), (terminal_ids[1], unit_id, 1000)])

    assert sorted(kind for kind, _ in results) == ["error", "ok"]
    assert ("error", KIND_INVENTORY_UNIT_UNAVAILABLE) in results

    with file_app.app_context():
        assert db.session.query(Sale).filter_by(voucher_inventory_id=unit_id).count() == 1
        assert db.session.get(VoucherInventory, unit_id).status == UNIT_SOLD
        assert db.session.get(Retailer, file_app.config["SEED"]["retailer_id"]).balance_cents == 99000


def test_many_terminals_one_unit(file_app):
    unit_id = _load(file_app, 1000, 1)[0]
    terminal_ids = file_app.config["SEED"]["terminal_ids"]

    results = _race(file_app, [(tid, unit_id, 1000) for tid in terminal_ids])

    assert len([r for r in results if r[0] == "ok"]) == 1
    assert len([r for r in results if r == ("error", KIND_INVENTORY_UNIT_UNAVAILABLE)]) == len(terminal_ids) - 1


def test_concurrent_sales_never_overspend(file_app):
    # R1000 float, four R400 vouchers: at most two can be funded
    seed = file_app.config["SEED"]
    unit_ids = _load(file_app, 40000, 4)

    results = _race(file_app, list(zip(seed["terminal_ids"], unit_ids, [40000] * 4)))

    assert len([r for r in results if r[0] == "ok"]) == 2
    assert len([r for r in results if r == ("error", KIND_INSUFFICIENT_FUNDS)]) == 2

    with file_app.app_context():
        retailer = db.session.get(Retailer, seed["retailer_id"])
        assert retailer.balance_cents == 20000
        assert retailer.credit_used_cents == 0
        assert db.session.query(VoucherInventory).filter_by(status=UNIT_SOLD).count() == 2
