"""
Sale transaction tests.

Covers the totals identities, stock and debt effects, validation before any
write, and all-or-nothing behaviour when a line fails.
"""

import re
from decimal import Decimal

import pytest

from shopledger.errors import ConsistencyViolation, InvalidRequest
from shopledger.models import Customer, Product, Sale, SaleItem
from shopledger.models.sales import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
)
from shopledger.policy import LedgerPolicy
from shopledger.services import sales_service
from shopledger.services.sales_service import CartLine, PricedLine, calculate_totals, complete_sale

from helpers import reload


def _sale_count(db_session):
    return db_session.query(Sale).count()


# =============================================================================
# Pure totals arithmetic
# =============================================================================

@pytest.mark.parametrize("payment_type, initial, paid, remaining", [
    ("cash", 0, 1800, 0),
    ("credit", 0, 0, 1800),
    ("installment", 500, 500, 1300),
    ("installment", 0, 0, 1800),
])
def test_totals_identities_per_payment_type(payment_type, initial, paid, remaining):
    lines = [PricedLine(product_id=1, quantity=2, unit_price_cents=1000)]
    totals = calculate_totals(
        lines,
        payment_type=payment_type,
        discount_cents=200,
        initial_payment_cents=initial,
    )

    assert totals.subtotal_cents == 2000
    assert totals.discount_cents == 200
    assert totals.total_cents == totals.subtotal_cents - totals.discount_cents
    assert totals.paid_amount_cents == paid
    assert totals.remaining_amount_cents == remaining
    assert totals.paid_amount_cents + totals.remaining_amount_cents == totals.total_cents


def test_percent_discount_rounds_half_up_to_the_cent():
    lines = [PricedLine(product_id=1, quantity=3, unit_price_cents=333)]
    totals = calculate_totals(lines, payment_type="cash", discount_percent=Decimal("10"))

    # 10% of 9.99 is 0.999 -> 1.00
    assert totals.subtotal_cents == 999
    assert totals.discount_cents == 100
    assert totals.total_cents == 899


def test_discount_is_clamped_to_subtotal():
    lines = [PricedLine(product_id=1, quantity=1, unit_price_cents=1000)]
    totals = calculate_totals(lines, payment_type="cash", discount_cents=5000)

    assert totals.discount_cents == 1000
    assert totals.total_cents == 0
    assert totals.payment_status == PAYMENT_STATUS_PAID


def test_installment_initial_payment_above_total_rejected():
    lines = [PricedLine(product_id=1, quantity=1, unit_price_cents=1000)]
    with pytest.raises(InvalidRequest):
        calculate_totals(lines, payment_type="installment", initial_payment_cents=1001)


def test_totals_reject_amounts_beyond_money_range():
    huge_line = [PricedLine(product_id=7, quantity=1_000_000, unit_price_cents=10**6)]
    with pytest.raises(InvalidRequest) as excinfo:
        calculate_totals(huge_line, payment_type="cash")
    assert excinfo.value.details["line"] == 0
    assert excinfo.value.details["product_id"] == 7

    # each line fits, the sum does not
    two_lines = [PricedLine(product_id=1, quantity=1, unit_price_cents=6_000_000_000)] * 2
    with pytest.raises(InvalidRequest):
        calculate_totals(two_lines, payment_type="cash")


# =============================================================================
# Persisted sales
# =============================================================================

def test_cash_sale_decrements_stock_and_leaves_debt_alone(db_session, seller, make_product, make_customer):
    phone = make_product(sell=1500, stock=10)
    case = make_product(sell=250, stock=4)
    customer = make_customer()

    sale = complete_sale(
        cart=[CartLine(phone.id, 2), CartLine(case.id, 3)],
        user_id=seller.id,
        payment_type="cash",
        customer_id=customer.id,
    )

    assert sale.subtotal_cents == 2 * 1500 + 3 * 250
    assert sale.total_cents == sale.subtotal_cents
    assert sale.paid_amount_cents == sale.total_cents
    assert sale.remaining_amount_cents == 0
    assert sale.payment_status == PAYMENT_STATUS_PAID
    assert sale.status == "completed"

    items = db_session.query(SaleItem).filter_by(sale_id=sale.id).all()
    assert len(items) == 2
    assert sum(i.total_cents for i in items) == sale.subtotal_cents
    assert all(i.total_cents == i.quantity * i.unit_price_cents for i in items)

    assert reload(Product, phone.id).stock == 8
    assert reload(Product, case.id).stock == 1
    assert reload(Customer, customer.id).total_debt_cents == 0


def test_anonymous_cash_sale(db_session, seller, make_product):
    product = make_product(sell=999, stock=1)

    sale = complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="cash")

    assert sale.customer_id is None
    assert reload(Product, product.id).stock == 0


def test_credit_sale_adds_total_to_customer_debt(db_session, seller, make_product, make_customer):
    product = make_product(sell=5000, stock=3)
    customer = make_customer(debt=1000)

    sale = complete_sale(
        cart=[CartLine(product.id, 1)],
        user_id=seller.id,
        payment_type="credit",
        customer_id=customer.id,
    )

    assert sale.paid_amount_cents == 0
    assert sale.remaining_amount_cents == 5000
    assert sale.payment_status == PAYMENT_STATUS_UNPAID
    assert reload(Customer, customer.id).total_debt_cents == 6000


def test_installment_sale_with_down_payment(db_session, seller, make_product, make_customer):
    product = make_product(sell=12000, stock=2)
    customer = make_customer()

    sale = complete_sale(
        cart=[CartLine(product.id, 1)],
        user_id=seller.id,
        payment_type="installment",
        customer_id=customer.id,
        discount_percent=Decimal("5"),
        initial_payment_cents=4000,
    )

    assert sale.discount_cents == 600
    assert sale.total_cents == 11400
    assert sale.paid_amount_cents == 4000
    assert sale.remaining_amount_cents == 7400
    assert sale.payment_status == PAYMENT_STATUS_PARTIAL
    assert reload(Customer, customer.id).total_debt_cents == 7400


def test_sale_number_format(db_session, seller, make_product):
    product = make_product()
    sale = complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="cash")

    assert re.fullmatch(r"SAL-\d{8}-\d{6}-[0-9A-F]{6}", sale.sale_number)


def test_sale_number_collision_retries_with_fresh_number(db_session, seller, make_product, monkeypatch):
    product = make_product(stock=5)
    numbers = iter(["SAL-DUPLICATE", "SAL-DUPLICATE", "SAL-FRESH"])
    monkeypatch.setattr(sales_service, "generate_document_number", lambda prefix: next(numbers))

    first = complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="cash")
    second = complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="cash")

    assert first.sale_number == "SAL-DUPLICATE"
    assert second.sale_number == "SAL-FRESH"
    assert reload(Product, product.id).stock == 3


def test_line_without_price_uses_current_sell_price(db_session, seller, make_product):
    product = make_product(sell=730)
    sale = complete_sale(cart=[CartLine(product.id, 2, None)], user_id=seller.id, payment_type="cash")

    assert sale.items[0].unit_price_cents == 730


def test_matching_unit_price_is_accepted(db_session, seller, make_product):
    product = make_product(sell=730)
    sale = complete_sale(cart=[CartLine(product.id, 1, 730)], user_id=seller.id, payment_type="cash")

    assert sale.total_cents == 730


def test_price_override_rejected_unless_allowed(db_session, seller, make_product):
    product = make_product(sell=1000, stock=5)

    with pytest.raises(InvalidRequest):
        complete_sale(cart=[CartLine(product.id, 1, 800)], user_id=seller.id, payment_type="cash")
    assert _sale_count(db_session) == 0

    sale = complete_sale(
        cart=[CartLine(product.id, 1, 800)],
        user_id=seller.id,
        payment_type="cash",
        policy=LedgerPolicy(allow_price_override=True),
    )
    assert sale.total_cents == 800


# =============================================================================
# Validation and atomicity
# =============================================================================

def test_empty_cart_rejected_without_effects(db_session, seller):
    with pytest.raises(InvalidRequest):
        complete_sale(cart=[], user_id=seller.id, payment_type="cash")

    assert _sale_count(db_session) == 0


@pytest.mark.parametrize("quantity", [0, -1, True])
def test_non_positive_quantity_rejected(db_session, seller, make_product, quantity):
    product = make_product(stock=5)

    with pytest.raises(InvalidRequest):
        complete_sale(cart=[CartLine(product.id, quantity)], user_id=seller.id, payment_type="cash")

    assert reload(Product, product.id).stock == 5


def test_oversized_quantity_rejected_before_any_write(db_session, seller, make_product):
    product = make_product(sell=1000, stock=5)

    with pytest.raises(InvalidRequest) as excinfo:
        complete_sale(cart=[CartLine(product.id, 10**17)], user_id=seller.id, payment_type="cash")

    assert excinfo.value.details["line"] == 0
    assert reload(Product, product.id).stock == 5
    assert _sale_count(db_session) == 0


def test_line_total_above_money_range_rejected(db_session, seller, make_product):
    product = make_product(sell=10**7, stock=5_000_000)

    with pytest.raises(InvalidRequest) as excinfo:
        complete_sale(cart=[CartLine(product.id, 1_000_000)], user_id=seller.id, payment_type="cash")

    assert excinfo.value.details["line"] == 0
    assert reload(Product, product.id).stock == 5_000_000
    assert _sale_count(db_session) == 0


def test_unknown_payment_type_rejected(db_session, seller, make_product):
    product = make_product()
    with pytest.raises(InvalidRequest):
        complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="barter")


def test_credit_sale_requires_customer(db_session, seller, make_product):
    product = make_product(stock=5)
    with pytest.raises(InvalidRequest):
        complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="credit")

    assert reload(Product, product.id).stock == 5


def test_unknown_customer_rejected(db_session, seller, make_product):
    product = make_product(stock=5)
    with pytest.raises(InvalidRequest):
        complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="credit", customer_id=999)

    assert _sale_count(db_session) == 0


def test_initial_payment_only_for_installments(db_session, seller, make_product, make_customer):
    product = make_product()
    customer = make_customer()
    with pytest.raises(InvalidRequest):
        complete_sale(
            cart=[CartLine(product.id, 1)],
            user_id=seller.id,
            payment_type="credit",
            customer_id=customer.id,
            initial_payment_cents=100,
        )


def test_both_discount_forms_rejected(db_session, seller, make_product):
    product = make_product()
    with pytest.raises(InvalidRequest):
        complete_sale(
            cart=[CartLine(product.id, 1)],
            user_id=seller.id,
            payment_type="cash",
            discount_percent=Decimal("10"),
            discount_cents=100,
        )


def test_inactive_product_rejected(db_session, seller, make_product):
    product = make_product(is_active=False, stock=5)
    with pytest.raises(InvalidRequest):
        complete_sale(cart=[CartLine(product.id, 1)], user_id=seller.id, payment_type="cash")

    assert reload(Product, product.id).stock == 5


def test_unknown_product_rolls_back_whole_sale(db_session, seller, make_product, make_customer):
    good = make_product(stock=10)
    customer = make_customer()

    with pytest.raises(InvalidRequest):
        complete_sale(
            cart=[CartLine(good.id, 2), CartLine(99999, 1)],
            user_id=seller.id,
            payment_type="credit",
            customer_id=customer.id,
        )

    assert _sale_count(db_session) == 0
    assert db_session.query(SaleItem).count() == 0
    assert reload(Product, good.id).stock == 10
    assert reload(Customer, customer.id).total_debt_cents == 0


def test_insufficient_stock_strict_rolls_back_earlier_lines(db_session, seller, make_product, make_customer):
    plenty = make_product(stock=10)
    scarce = make_product(stock=1)
    customer = make_customer()

    with pytest.raises(ConsistencyViolation) as excinfo:
        complete_sale(
            cart=[CartLine(plenty.id, 3), CartLine(scarce.id, 2)],
            user_id=seller.id,
            payment_type="credit",
            customer_id=customer.id,
        )

    assert excinfo.value.details["product_id"] == scarce.id
    assert excinfo.value.details["on_hand"] == 1
    assert _sale_count(db_session) == 0
    assert reload(Product, plenty.id).stock == 10
    assert reload(Product, scarce.id).stock == 1
    assert reload(Customer, customer.id).total_debt_cents == 0


def test_permissive_stock_policy_allows_negative_stock(db_session, seller, make_product):
    product = make_product(stock=1)

    complete_sale(
        cart=[CartLine(product.id, 3)],
        user_id=seller.id,
        payment_type="cash",
        policy=LedgerPolicy(strict_stock=False),
    )

    assert reload(Product, product.id).stock == -2


def test_get_sale_not_found(db_session):
    from shopledger.errors import NotFound

    with pytest.raises(NotFound):
        sales_service.get_sale(12345)
