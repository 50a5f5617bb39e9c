"""
Admin, retailer and agent portal tests.
"""

from voucherpos.extensions import db
from voucherpos.models import RetailerTransaction
from voucherpos.services import sales_service


# =============================================================================
# ADMIN
# =============================================================================


class TestAdminOnboarding:

    def test_full_onboarding_flow(self, client, admin_headers, db_session):
        group = client.post("/api/admin/commission-groups", json={"name": "Bronze"}, headers=admin_headers)
        assert group.status_code == 201
        group_id = group.get_json()["group"]["id"]

        agent = client.post("/api/admin/agents", json={"name": "East Agent"}, headers=admin_headers)
        agent_id = agent.get_json()["agent"]["id"]

        retailer = client.post("/api/admin/retailers", json={
            "name": "New Shop",
            "credit_limit_cents": 2000,
            "commission_group_id": group_id,
            "agent_id": agent_id,
        }, headers=admin_headers)
        assert retailer.status_code == 201
        retailer_id = retailer.get_json()["retailer"]["id"]

        vt = client.post("/api/admin/voucher-types", json={
            "name": "Cell C Airtime", "category": "airtime", "network_provider": "Cell C",
        }, headers=admin_headers)
        assert vt.status_code == 201
        vt_id = vt.get_json()["voucher_type"]["id"]

        rate = client.put(f"/api/admin/commission-groups/{group_id}/rates", json={
            "voucher_type_id": vt_id, "retailer_pct": "4.5", "agent_pct": 1,
        }, headers=admin_headers)
        assert rate.status_code == 200

        stock = client.post(f"/api/admin/voucher-types/{vt_id}/inventory", json={"units": [
            {"amount_cents": 1200, "pin": "C-1"},
            {"amount_cents": 1200, "pin": "C-2"},
        ]}, headers=admin_headers)
        assert stock.status_code == 201
        assert stock.get_json()["loaded"] == 2

        deposit = client.post(f"/api/admin/retailers/{retailer_id}/deposit", json={"amount_cents": 5000},
                              headers=admin_headers)
        assert deposit.get_json()["retailer"]["balance_cents"] == 5000

        terminal = client.post(f"/api/admin/retailers/{retailer_id}/terminals", json={"name": "Front"},
                               headers=admin_headers)
        assert terminal.status_code == 201
        terminal_id = terminal.get_json()["terminal"]["id"]

        cashier = client.post(f"/api/admin/terminals/{terminal_id}/cashier", json={
            "username": "front1", "email": "front1@shop.local", "password": "Password123!",
        }, headers=admin_headers)
        assert cashier.status_code == 201

        login = client.post("/api/auth/login", json={"username": "front1", "password": "Password123!"})
        token = login.get_json()["token"]
        sale = client.post("/api/terminal/sales", json={"voucher_type_id": vt_id, "amount_cents": 1200},
                           headers={"Authorization": f"Bearer {token}"})
        assert sale.status_code == 201
        assert sale.get_json()["receipt"]["retailer_commission_cents"] == 54
        assert sale.get_json()["receipt"]["agent_commission_cents"] == 12

        summary = client.get(f"/api/admin/voucher-types/{vt_id}/inventory", headers=admin_headers).get_json()
        assert summary["denominations"] == [{"amount_cents": 1200, "available": 1, "sold": 1}]

    def test_validation_errors_are_400(self, client, admin_headers):
        resp = client.post("/api/admin/retailers", json={"name": ""}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "ValidationError"

    def test_bad_expiry_date_is_400(self, client, admin_headers, airtime):
        resp = client.post(f"/api/admin/voucher-types/{airtime.id}/inventory", json={"units": [
            {"amount_cents": 1000, "pin": "X-1", "expiry_date": "31-12-2027"},
        ]}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Unit 1: expiry_date must be YYYY-MM-DD"

    def test_unknown_retailer_is_404(self, client, admin_headers):
        resp = client.post("/api/admin/retailers/99999/deposit", json={"amount_cents": 100}, headers=admin_headers)
        assert resp.status_code == 404

    def test_adjust_and_credit_limit(self, client, admin_headers, retailer):
        adjust = client.post(f"/api/admin/retailers/{retailer.id}/adjust",
                             json={"delta_cents": -2500, "reason": "Correction"}, headers=admin_headers)
        assert adjust.get_json()["retailer"]["balance_cents"] == 7500

        limit = client.post(f"/api/admin/retailers/{retailer.id}/credit-limit",
                            json={"credit_limit_cents": 0}, headers=admin_headers)
        assert limit.get_json()["retailer"]["credit_limit_cents"] == 0

        txns = client.get(f"/api/admin/retailers/{retailer.id}/transactions", headers=admin_headers).get_json()
        assert [t["transaction_type"] for t in txns["transactions"]][:2] == ["credit_limit", "adjustment"]

        actors = {row.actor_user_id for row in db.session.query(RetailerTransaction).filter(
            RetailerTransaction.transaction_type.in_(["credit_limit", "adjustment"])
        )}
        assert None not in actors

    def test_suspend_blocks_sales(self, client, admin_headers, cashier_headers, retailer, stocked):
        resp = client.post(f"/api/admin/retailers/{retailer.id}/status", json={"status": "suspended"},
                           headers=admin_headers)
        assert resp.get_json()["retailer"]["status"] == "suspended"

        sale = client.post("/api/terminal/sales", json={"voucher_type_id": stocked.id, "amount_cents": 1000},
                           headers=cashier_headers)
        assert sale.status_code == 400

    def test_deactivate_terminal(self, client, admin_headers, terminal):
        bad = client.post(f"/api/admin/terminals/{terminal.id}/active", json={"is_active": "no"},
                          headers=admin_headers)
        assert bad.status_code == 400

        resp = client.post(f"/api/admin/terminals/{terminal.id}/active", json={"is_active": False},
                           headers=admin_headers)
        assert resp.get_json()["terminal"]["is_active"] is False

    def test_weak_cashier_password(self, client, admin_headers, terminal):
        resp = client.post(f"/api/admin/terminals/{terminal.id}/cashier", json={
            "username": "weak", "email": "weak@shop.local", "password": "password",
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_groups_list_includes_rates(self, client, admin_headers, airtime):
        groups = client.get("/api/admin/commission-groups", headers=admin_headers).get_json()["groups"]
        assert groups[0]["rates"][0]["voucher_type_name"] == "MTN Airtime"


class TestAdminReports:

    def test_sales_earnings_and_inventory(self, client, admin_headers, terminal, stocked):
        sales_service.sell_from_terminal(terminal, stocked.id, 1000)
        sales_service.sell_from_terminal(terminal, stocked.id, 5000)

        sales = client.get("/api/admin/reports/sales", headers=admin_headers).get_json()
        assert [r["sale_amount_cents"] for r in sales["rows"]] == [5000, 1000]
        assert sales["rows"][0]["retailer_name"] == "Corner Spaza"

        earnings = client.get("/api/admin/reports/earnings", headers=admin_headers).get_json()
        assert earnings["rows"][0]["sale_count"] == 2
        assert earnings["rows"][0]["retailer_commission_cents"] == 300
        assert earnings["rows"][0]["agent_commission_cents"] == 60

        inventory = client.get("/api/admin/reports/inventory", headers=admin_headers).get_json()
        assert inventory["rows"][0]["available"] == 3
        assert inventory["rows"][0]["sold"] == 2

    def test_future_range_is_empty(self, client, admin_headers, terminal, stocked):
        sales_service.sell_from_terminal(terminal, stocked.id, 1000)
        resp = client.get("/api/admin/reports/sales?start=2999-01-01T00:00:00Z", headers=admin_headers)
        assert resp.get_json()["rows"] == []

    def test_bad_range_is_400(self, client, admin_headers):
        resp = client.get("/api/admin/reports/earnings?start=2025-06-01&end=2025-05-01", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "ValidationError"

    def test_reports_are_admin_only(self, client, agent_headers):
        assert client.get("/api/admin/reports/inventory", headers=agent_headers).status_code == 403


# =============================================================================
# RETAILER PORTAL
# =============================================================================


class TestRetailerPortal:

    def test_account(self, client, owner_headers, retailer):
        body = client.get("/api/retailer/account", headers=owner_headers).get_json()
        assert body["retailer"]["id"] == retailer.id
        assert body["retailer"]["commission_group_name"] == "Standard"
        assert body["retailer"]["available_credit_cents"] == 5000

    def test_sales_and_transactions(self, client, owner_headers, terminal, stocked):
        sales_service.sell_from_terminal(terminal, stocked.id, 1000)

        sales = client.get("/api/retailer/sales", headers=owner_headers).get_json()
        assert sales["count"] == 1

        txns = client.get("/api/retailer/transactions", headers=owner_headers).get_json()
        assert txns["transactions"][0]["transaction_type"] == "sale"

    def test_terminals(self, client, owner_headers, terminal):
        body = client.get("/api/retailer/terminals", headers=owner_headers).get_json()
        assert [t["name"] for t in body["terminals"]] == ["Till 1"]

    def test_cashier_cannot_see_portal(self, client, cashier_headers):
        assert client.get("/api/retailer/account", headers=cashier_headers).status_code == 403


# =============================================================================
# AGENT PORTAL
# =============================================================================


class TestAgentPortal:

    def test_retailers(self, client, agent_headers, retailer):
        body = client.get("/api/agent/retailers", headers=agent_headers).get_json()
        assert [r["id"] for r in body["retailers"]] == [retailer.id]

    def test_commissions(self, client, agent_headers, terminal, stocked):
        sales_service.sell_from_terminal(terminal, stocked.id, 5000)
        sales_service.sell_from_terminal(terminal, stocked.id, 1000)

        body = client.get("/api/agent/commissions", headers=agent_headers).get_json()
        assert body["agent"]["commission_balance_cents"] == 60
        assert body["retailers"][0]["sale_count"] == 2
        assert body["retailers"][0]["sales_cents"] == 6000
        assert body["retailers"][0]["agent_commission_cents"] == 60

    def test_summary(self, client, agent_headers, terminal, stocked):
        sales_service.sell_from_terminal(terminal, stocked.id, 5000)

        body = client.get("/api/agent/summary", headers=agent_headers).get_json()
        assert body["retailer_count"] == 1
        assert body["mtd_sale_count"] == 1
        assert body["mtd_sales_cents"] == 5000
        assert body["mtd_commission_cents"] == 50
        assert body["ytd_commission_cents"] == 50

    def test_statements(self, client, agent_headers, terminal, stocked):
        sales_service.sell_from_terminal(terminal, stocked.id, 1000)

        body = client.get("/api/agent/statements", headers=agent_headers).get_json()
        assert body["count"] == 1
        assert body["statements"][0]["transaction_type"] == "sale"
        assert body["statements"][0]["agent_commission_cents"] == 10

        bad = client.get("/api/agent/statements?start=not-a-date", headers=agent_headers)
        assert bad.status_code == 400

    def test_owner_cannot_see_statements(self, client, owner_headers):
        assert client.get("/api/agent/statements", headers=owner_headers).status_code == 403
