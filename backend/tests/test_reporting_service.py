"""
Reporting tests.

Verifies:
- Sales report rows carry terminal, retailer and voucher type names
- Earnings roll up per voucher type over a date range
- Inventory report lists every type, stocked or not
- Agent summary month-to-date and year-to-date windows
- Agent statements only show ledger rows that earned the agent commission
"""

from datetime import datetime

import pytest

from voucherpos.errors import NotFoundError, ValidationError
from voucherpos.extensions import db
from voucherpos.models import RetailerTransaction, Sale
from voucherpos.services import inventory_service, ledger_service, reporting_service, sales_service


def _backdate(receipt, when):
    """Move a sale and its ledger row to `when`."""
    sale = db.session.get(Sale, receipt.sale_id)
    sale.created_at = when
    db.session.query(RetailerTransaction).filter_by(sale_id=sale.id).update({"occurred_at": when})
    db.session.commit()


@pytest.fixture
def three_sales(terminal, stocked):
    """R10, R10 and R50 sold through Till 1 (5% retailer / 1% agent)."""
    return [
        sales_service.sell_from_terminal(terminal, stocked.id, 1000),
        sales_service.sell_from_terminal(terminal, stocked.id, 1000),
        sales_service.sell_from_terminal(terminal, stocked.id, 5000),
    ]


class TestSalesReport:

    def test_rows_carry_names(self, three_sales):
        report = reporting_service.sales_report(start=None, end=None)
        assert len(report["rows"]) == 3

        newest = report["rows"][0]
        assert newest["sale_id"] == three_sales[2].sale_id
        assert newest["terminal_name"] == "Till 1"
        assert newest["retailer_name"] == "Corner Spaza"
        assert newest["voucher_type_name"] == "MTN Airtime"
        assert newest["sale_amount_cents"] == 5000
        assert newest["retailer_commission_cents"] == 250
        assert newest["agent_commission_cents"] == 50

    def test_date_range(self, three_sales):
        _backdate(three_sales[0], datetime(2025, 3, 10, 9, 0))

        report = reporting_service.sales_report(start="2025-03-01T00:00:00Z", end="2025-03-31T23:59:59Z")
        assert [r["sale_id"] for r in report["rows"]] == [three_sales[0].sale_id]
        assert report["start"] == "2025-03-01T00:00:00Z"

    def test_retailer_filter(self, three_sales, retailer):
        assert reporting_service.sales_report(start=None, end=None, retailer_id=retailer.id + 1)["rows"] == []

    @pytest.mark.parametrize("start,end", [("yesterday", None), (None, "2025-02-30"), ("2025-05-02", "2025-05-01")])
    def test_bad_range(self, db_session, start, end):
        with pytest.raises(ValidationError):
            reporting_service.sales_report(start=start, end=end)


class TestEarningsSummary:

    def test_rolls_up_per_voucher_type(self, three_sales):
        report = reporting_service.earnings_summary(start=None, end=None)
        assert report["rows"] == [{
            "voucher_type_id": report["rows"][0]["voucher_type_id"],
            "voucher_type_name": "MTN Airtime",
            "sale_count": 3,
            "sales_cents": 7000,
            "retailer_commission_cents": 350,
            "agent_commission_cents": 70,
        }]
        assert report["totals"]["sales_cents"] == 7000

    def test_range_excludes_older_sales(self, three_sales):
        _backdate(three_sales[2], datetime(2020, 1, 1))

        report = reporting_service.earnings_summary(start="2021-01-01T00:00:00Z", end=None)
        assert report["rows"][0]["sale_count"] == 2
        assert report["rows"][0]["sales_cents"] == 2000
        assert report["totals"]["agent_commission_cents"] == 20

    def test_no_sales_is_empty(self, stocked):
        report = reporting_service.earnings_summary(start=None, end=None)
        assert report["rows"] == []
        assert report["totals"]["sale_count"] == 0


class TestInventoryReport:

    def test_counts_every_type(self, terminal, stocked):
        inventory_service.create_voucher_type(name="Vodacom Airtime", category="airtime", network_provider="Vodacom")
        sales_service.sell_from_terminal(terminal, stocked.id, 1000)

        rows = {r["voucher_type_name"]: r for r in reporting_service.inventory_report()["rows"]}
        assert (rows["MTN Airtime"]["available"], rows["MTN Airtime"]["sold"]) == (4, 1)
        assert (rows["Vodacom Airtime"]["available"], rows["Vodacom Airtime"]["sold"]) == (0, 0)


class TestAgentSummary:

    def test_month_and_year_windows(self, agent, three_sales):
        now = datetime(2026, 6, 15, 12, 0)
        _backdate(three_sales[0], datetime(2026, 6, 2, 8, 0))     # this month
        _backdate(three_sales[1], datetime(2026, 2, 1, 8, 0))     # this year
        _backdate(three_sales[2], datetime(2025, 12, 31, 23, 0))  # last year

        summary = reporting_service.agent_summary(agent.id, now=now)
        assert summary["retailer_count"] == 1
        assert summary["mtd_sale_count"] == 1
        assert summary["mtd_sales_cents"] == 1000
        assert summary["mtd_commission_cents"] == 10
        assert summary["ytd_commission_cents"] == 20
        assert summary["as_of"] == "2026-06-15T12:00:00Z"

    def test_unknown_agent(self, db_session):
        with pytest.raises(NotFoundError):
            reporting_service.agent_summary(99999)


class TestAgentStatements:

    def test_only_commission_rows(self, agent, retailer, three_sales):
        ledger_service.deposit(retailer.id, 2000, note="EFT")

        body = reporting_service.agent_statements(agent.id, start=None, end=None)
        assert body["count"] == 3
        assert {s["transaction_type"] for s in body["statements"]} == {"sale"}
        assert body["statements"][0]["retailer_name"] == "Corner Spaza"
        assert body["statements"][0]["agent_commission_cents"] == 50

    def test_date_range(self, agent, three_sales):
        _backdate(three_sales[1], datetime(2025, 8, 20, 10, 0))

        body = reporting_service.agent_statements(agent.id, start="2025-08-01", end="2025-08-31T23:59:59")
        assert [s["sale_id"] for s in body["statements"]] == [three_sales[1].sale_id]
