import unittest

from voucherpos import create_app
from voucherpos.errors import NotFoundError, ValidationError
from voucherpos.extensions import db
from voucherpos.models import Retailer, RetailerTransaction
from voucherpos.services import account_service, ledger_service
from voucherpos.services.ledger_service import TX_ADJUSTMENT, TX_CREDIT_LIMIT, TX_DEPOSIT


class LedgerServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "LOG_LEVEL": "WARNING",
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(RetailerTransaction).delete()
        db.session.query(Retailer).delete()
        db.session.commit()

        self.retailer = account_service.create_retailer("Ledger Shop", credit_limit_cents=5000)

    def _rows(self):
        return (
            db.session.query(RetailerTransaction)
            .filter_by(retailer_id=self.retailer.id)
            .order_by(RetailerTransaction.id)
            .all()
        )

    def test_deposit_lands_on_balance(self):
        retailer = ledger_service.deposit(self.retailer.id, 2500, note="EFT")
        self.assertEqual(retailer.balance_cents, 2500)

        rows = self._rows()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].transaction_type, TX_DEPOSIT)
        self.assertEqual(rows[0].amount_cents, 2500)
        self.assertEqual(rows[0].balance_after_cents, 2500)
        self.assertEqual(rows[0].note, "EFT")

    def test_deposit_repays_credit_first(self):
        self.retailer.credit_used_cents = 3000
        db.session.commit()

        retailer = ledger_service.deposit(self.retailer.id, 4000)
        self.assertEqual(retailer.credit_used_cents, 0)
        self.assertEqual(retailer.balance_cents, 1000)
        self.assertEqual(self._rows()[-1].credit_used_after_cents, 0)

    def test_partial_repayment(self):
        self.retailer.credit_used_cents = 3000
        db.session.commit()

        retailer = ledger_service.deposit(self.retailer.id, 1000)
        self.assertEqual(retailer.credit_used_cents, 2000)
        self.assertEqual(retailer.balance_cents, 0)

    def test_deposit_must_be_positive(self):
        with self.assertRaises(ValidationError):
            ledger_service.deposit(self.retailer.id, 0)
        self.assertEqual(self._rows(), [])

    def test_deposit_unknown_retailer(self):
        with self.assertRaises(NotFoundError):
            ledger_service.deposit(987654, 100)

    def test_adjustment(self):
        ledger_service.deposit(self.retailer.id, 1000)
        retailer = ledger_service.adjust_balance(self.retailer.id, -400, actor_user_id=None, reason="Fee")
        self.assertEqual(retailer.balance_cents, 600)
        self.assertEqual(self._rows()[-1].transaction_type, TX_ADJUSTMENT)
        self.assertEqual(self._rows()[-1].amount_cents, -400)

    def test_adjustment_cannot_go_negative(self):
        ledger_service.deposit(self.retailer.id, 1000)
        with self.assertRaises(ValidationError):
            ledger_service.adjust_balance(self.retailer.id, -1001, actor_user_id=None, reason="Too much")
        self.assertEqual(db.session.get(Retailer, self.retailer.id).balance_cents, 1000)
        self.assertEqual(len(self._rows()), 1)

    def test_adjustment_needs_reason(self):
        with self.assertRaises(ValidationError):
            ledger_service.adjust_balance(self.retailer.id, 100, actor_user_id=None, reason="")

    def test_credit_limit_change_is_ledgered(self):
        retailer = ledger_service.set_credit_limit(self.retailer.id, 8000)
        self.assertEqual(retailer.credit_limit_cents, 8000)
        row = self._rows()[-1]
        self.assertEqual(row.transaction_type, TX_CREDIT_LIMIT)
        self.assertEqual(row.amount_cents, 3000)

    def test_credit_limit_below_used_rejected(self):
        self.retailer.credit_used_cents = 3000
        db.session.commit()
        with self.assertRaises(ValidationError):
            ledger_service.set_credit_limit(self.retailer.id, 2000)

    def test_list_transactions_newest_first(self):
        ledger_service.deposit(self.retailer.id, 100)
        ledger_service.deposit(self.retailer.id, 200)
        amounts = [tx.amount_cents for tx in ledger_service.list_transactions(self.retailer.id)]
        self.assertEqual(amounts, [200, 100])


if __name__ == "__main__":
    unittest.main()
