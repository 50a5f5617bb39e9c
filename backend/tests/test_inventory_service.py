"""
Inventory lookup tests: only unsold units, grouped by denomination, ascending.
"""

import pytest

from voucherpos.errors import NotFoundError, ValidationError
from voucherpos.extensions import db
from voucherpos.models import VoucherInventory
from voucherpos.models.vouchers import UNIT_AVAILABLE, UNIT_SOLD
from voucherpos.services import inventory_service


@pytest.fixture
def catalogue(db_session, add_units):
    mtn = inventory_service.create_voucher_type(name="MTN Airtime", category="airtime", network_provider="MTN")
    voda = inventory_service.create_voucher_type(name="Vodacom Airtime", category="Airtime", network_provider="Vodacom")
    daily = inventory_service.create_voucher_type(
        name="MTN Data 100MB", category="data", network_provider="MTN", sub_category="Daily"
    )
    monthly = inventory_service.create_voucher_type(
        name="MTN Data 1GB", category="data", network_provider="MTN", sub_category="monthly"
    )
    add_units(mtn, 5000, 2)
    add_units(mtn, 1000, 3)
    add_units(voda, 1000, 1)
    add_units(daily, 500, 4)
    add_units(monthly, 9900, 1)
    return {"mtn": mtn, "voda": voda, "daily": daily, "monthly": monthly}


def _units(voucher_type_id):
    return (
        db.session.query(VoucherInventory)
        .filter_by(voucher_type_id=voucher_type_id)
        .order_by(VoucherInventory.id)
        .all()
    )


class TestListAvailable:

    def test_grouped_and_ascending(self, catalogue):
        stock = inventory_service.list_available("airtime")

        amounts = [row.amount_cents for row in stock]
        assert amounts == sorted(amounts)
        assert [(row.voucher_type_name, row.amount_cents, row.available_count) for row in stock] == [
            ("MTN Airtime", 1000, 3),
            ("Vodacom Airtime", 1000, 1),
            ("MTN Airtime", 5000, 2),
        ]

    def test_every_row_matches_filter(self, catalogue):
        for row in inventory_service.list_available("airtime", network_provider="mtn"):
            assert row.category == "airtime"
            assert row.network_provider == "MTN"

    def test_sub_category_filter(self, catalogue):
        stock = inventory_service.list_available("data", sub_category="daily")
        assert [row.voucher_type_id for row in stock] == [catalogue["daily"].id]

    def test_sold_units_are_never_returned(self, catalogue):
        units = _units(catalogue["mtn"].id)
        for unit in units:
            if unit.amount_cents == 5000:
                unit.status = UNIT_SOLD
        db.session.commit()

        stock = inventory_service.list_available("airtime", network_provider="MTN")
        assert [row.amount_cents for row in stock] == [1000]

        next_ids = {row.next_unit_id for row in stock}
        for unit_id in next_ids:
            assert db.session.get(VoucherInventory, unit_id).status == UNIT_AVAILABLE

    def test_next_unit_is_lowest_available_id(self, catalogue):
        units = [u for u in _units(catalogue["mtn"].id) if u.amount_cents == 1000]
        units[0].status = UNIT_SOLD
        db.session.commit()

        row = inventory_service.list_available("airtime", network_provider="MTN")[0]
        assert row.available_count == 2
        assert row.next_unit_id == units[1].id

    def test_empty_result_is_not_an_error(self, catalogue):
        assert inventory_service.list_available("ott") == []

    def test_inactive_type_hidden(self, catalogue):
        catalogue["voda"].is_active = False
        db.session.commit()
        names = {row.voucher_type_name for row in inventory_service.list_available("airtime")}
        assert names == {"MTN Airtime"}

    def test_category_required(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.list_available("  ")


class TestCategories:

    def test_lists_categories_with_stock(self, catalogue):
        assert inventory_service.list_categories() == ["airtime", "data"]

    def test_networks_for_category(self, catalogue):
        assert inventory_service.list_networks("airtime") == ["MTN", "Vodacom"]


class TestStockLoading:

    def test_duplicate_pin_in_batch_rejects_whole_batch(self, catalogue):
        before = len(_units(catalogue["voda"].id))
        with pytest.raises(ValidationError):
            inventory_service.add_inventory_units(catalogue["voda"].id, [
                {"amount_cents": 1000, "pin": "X1"},
                {"amount_cents": 1000, "pin": "X1"},
            ])
        assert len(_units(catalogue["voda"].id)) == before

    def test_pin_already_loaded_rejected(self, catalogue):
        existing_pin = _units(catalogue["voda"].id)[0].pin
        with pytest.raises(ValidationError):
            inventory_service.add_inventory_units(catalogue["voda"].id, [
                {"amount_cents": 1000, "pin": existing_pin},
            ])

    def test_bad_amount_rejected(self, catalogue):
        with pytest.raises(ValidationError):
            inventory_service.add_inventory_units(catalogue["voda"].id, [{"amount_cents": "10", "pin": "Y"}])

    @pytest.mark.parametrize("expiry", ["31/12/2027", "2027-13-01", "soon", 20271231])
    def test_bad_expiry_rejected(self, catalogue, expiry):
        before = len(_units(catalogue["voda"].id))
        with pytest.raises(ValidationError) as excinfo:
            inventory_service.add_inventory_units(catalogue["voda"].id, [
                {"amount_cents": 1000, "pin": "E1", "expiry_date": "2027-12-31"},
                {"amount_cents": 1000, "pin": "E2", "expiry_date": expiry},
            ])
        assert excinfo.value.message == "Unit 2: expiry_date must be YYYY-MM-DD"
        assert len(_units(catalogue["voda"].id)) == before

    def test_unknown_type(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.add_inventory_units(999999, [{"amount_cents": 1000, "pin": "Z"}])

    def test_summary_counts(self, catalogue):
        units = _units(catalogue["mtn"].id)
        units[0].status = UNIT_SOLD
        db.session.commit()

        summary = inventory_service.inventory_summary(catalogue["mtn"].id)
        by_amount = {d["amount_cents"]: d for d in summary["denominations"]}
        assert sum(d["sold"] for d in by_amount.values()) == 1
        assert sum(d["available"] + d["sold"] for d in by_amount.values()) == 5
