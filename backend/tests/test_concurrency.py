"""
Concurrent writers against a file-backed SQLite database.

In-memory databases cannot be shared between threads, so each test builds
its own app on a temporary file and races two sales for the last unit.
"""

import os
import tempfile
import threading
import unittest

from shopledger import create_app
from shopledger.errors import ConsistencyViolation
from shopledger.extensions import db
from shopledger.models import Customer, Product, Sale, User
from shopledger.services import credit_service
from shopledger.services.sales_service import CartLine, complete_sale


class ConcurrencyTestCase(unittest.TestCase):
    """Shared setup: one user, one customer, one product with a single unit."""
    stock_policy = "strict"

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "STOCK_POLICY": self.stock_policy,
            "SQLITE_BUSY_TIMEOUT": 30,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            user = User(username="concurrent_user", full_name="Concurrent User")
            customer = Customer(name="Concurrent Customer")
            product = Product(name="Last Unit", sell_price_cents=1000, cost_price_cents=600, stock=1)
            db.session.add_all([user, customer, product])
            db.session.commit()

            self.user_id = user.id
            self.customer_id = customer.id
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _race(self, workers, target):
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def run():
            with self.app.app_context():
                barrier.wait()
                try:
                    outcome = ("ok", target())
                except Exception as exc:
                    outcome = ("error", exc)
                finally:
                    db.session.remove()
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=run) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def _sell_last_unit(self):
        sale = complete_sale(
            cart=[CartLine(self.product_id, 1)],
            user_id=self.user_id,
            payment_type="cash",
        )
        return sale.id


class StrictConcurrencyTests(ConcurrencyTestCase):
    stock_policy = "strict"

    def test_last_unit_strict(self):
        results = self._race(2, self._sell_last_unit)

        successes = [r for r in results if r[0] == "ok"]
        failures = [r for r in results if r[0] == "error"]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0][1], ConsistencyViolation)

        with self.app.app_context():
            self.assertEqual(db.session.get(Product, self.product_id).stock, 0)
            self.assertEqual(db.session.query(Sale).count(), 1)

    def test_concurrent_payments_sum_exactly(self):
        with self.app.app_context():
            db.session.get(Product, self.product_id).stock = 10
            db.session.commit()
            sale = complete_sale(
                cart=[CartLine(self.product_id, 5)],
                user_id=self.user_id,
                payment_type="credit",
                customer_id=self.customer_id,
            )
            sale_id = sale.id

        def pay():
            return credit_service.record_payment(
                sale_id=sale_id,
                customer_id=self.customer_id,
                amount_cents=500,
                user_id=self.user_id,
            ).id

        results = self._race(4, pay)

        self.assertTrue(all(r[0] == "ok" for r in results), results)
        with self.app.app_context():
            sale = db.session.get(Sale, sale_id)
            self.assertEqual(sale.paid_amount_cents, 2000)
            self.assertEqual(sale.remaining_amount_cents, 3000)
            self.assertEqual(db.session.get(Customer, self.customer_id).total_debt_cents, 3000)


class PermissiveConcurrencyTests(ConcurrencyTestCase):
    stock_policy = "permissive"

    def test_last_unit_permissive(self):
        results = self._race(2, self._sell_last_unit)

        self.assertTrue(all(r[0] == "ok" for r in results), results)
        with self.app.app_context():
            self.assertEqual(db.session.get(Product, self.product_id).stock, -1)
            self.assertEqual(db.session.query(Sale).count(), 2)


if __name__ == "__main__":
    unittest.main()
