"""
Tests for receipt creation: atomicity, price capture, the discount
snapshot and the trigger-maintained totals.
"""

from dataclasses import replace
from itertools import permutations

import pytest
from sqlalchemy.exc import IntegrityError

from backoffice.entities import ProductInput, PromotionalInsert, ReceiptInput, SaleInput, StoreProductInput
from backoffice.repositories import (
    ClientRepository,
    EmployeeRepository,
    FilterParam,
    OrderParam,
    ProductRepository,
    QueryStrategyError,
    ReceiptFilter,
    ReceiptOrder,
    ReceiptRepository,
)
from backoffice.repositories.receipt import ReceiptHeader


@pytest.fixture
def receipts(db_session, store_products):
    return ReceiptRepository(db_session, store_products=store_products)


def sell(receipts, *lines, card_number=None, employee_id="C001"):
    sales = [SaleInput(store_product_id, quantity) for store_product_id, quantity in lines]
    return receipts.create_and_return(ReceiptInput(sales=sales, card_number=card_number), employee_id)


class TestCreate:
    def test_totals_without_card(self, db_session, seed, receipts):
        receipt = sell(receipts, (seed["store_product_id"], 3))

        assert receipt.discount == 0
        assert receipt.sum_total == 3000
        assert receipt.vat == 600
        assert receipt.card_number is None
        assert receipt.client_name is None
        assert receipt.employee_name.last_name == "Franko"

    def test_totals_with_card_discount(self, db_session, seed, receipts):
        receipt = sell(receipts, (seed["store_product_id"], 2), card_number=seed["card_number"])

        assert receipt.discount == 15
        assert receipt.sum_total == 1700
        assert receipt.vat == 340
        assert receipt.client_name.last_name == "Kovalenko"

    def test_sales_and_stock(self, db_session, seed, receipts, store_products):
        receipt = sell(receipts, (seed["store_product_id"], 5))

        assert [(s.store_product_id, s.quantity, s.price, s.upc) for s in receipt.sales] == [
            (seed["store_product_id"], 5, 1000, "111"),
        ]
        assert store_products.select_by_pk(seed["store_product_id"]).quantity == 45

    def test_print_date_is_utc_z(self, db_session, seed, receipts):
        receipt = sell(receipts, (seed["store_product_id"], 1))
        assert receipt.print_date.endswith("Z")
        assert len(receipt.print_date) == 20

    def test_promotional_line(self, db_session, seed, receipts, store_products):
        base_id = seed["store_product_id"]
        promo_id = store_products.insert_promotional(base_id, PromotionalInsert(10))

        receipt = sell(receipts, (promo_id, 4), (base_id, 1))

        assert receipt.sum_total == 4 * 500 + 1000
        assert store_products.select_by_pk(promo_id).quantity == 6
        # Selling promotional units never touches the base row
        assert store_products.select_by_pk(base_id).quantity == 39
        assert sorted(s.is_promotional for s in receipt.sales) == [False, True]


class TestCaptureAtSaleTime:
    def test_price_captured(self, db_session, seed, receipts, store_products):
        receipt = sell(receipts, (seed["store_product_id"], 1))
        db_session.commit()

        current = store_products.select_by_pk(seed["store_product_id"])
        store_products.update(seed["store_product_id"], replace(current, price=5000))
        db_session.commit()

        again = receipts.select_by_pk(receipt.receipt_id)
        assert again.sales[0].price == 1000
        assert again.sum_total == 1000

    def test_discount_snapshot(self, db_session, seed, receipts):
        receipt = sell(receipts, (seed["store_product_id"], 2), card_number=seed["card_number"])
        db_session.commit()

        clients = ClientRepository(db_session)
        card = clients.select_by_pk(seed["card_number"])
        clients.update(card.card_number, replace(card, discount=20))
        db_session.commit()

        again = receipts.select_by_pk(receipt.receipt_id)
        assert again.discount == 15
        assert again.sum_total == 1700


class TestAtomicity:
    def test_unknown_store_product_rolls_back_everything(self, db_session, seed, receipts, store_products):
        with pytest.raises(IntegrityError):
            sell(receipts, (seed["store_product_id"], 2), (987654, 1))
        db_session.rollback()

        assert receipts.select().total_count == 0
        assert store_products.select_by_pk(seed["store_product_id"]).quantity == 50

    def test_overselling_rejected(self, db_session, seed, receipts, store_products):
        with pytest.raises(IntegrityError):
            sell(receipts, (seed["store_product_id"], 51))
        db_session.rollback()

        assert receipts.select().total_count == 0
        assert store_products.select_by_pk(seed["store_product_id"]).quantity == 50

    @pytest.mark.parametrize("order", list(permutations(range(3))))
    def test_underflow_rolls_back_for_any_line_order(
        self, db_session, seed, category, receipts, store_products, order
    ):
        base_id = seed["store_product_id"]
        promo_id = store_products.insert_promotional(base_id, PromotionalInsert(5))
        ProductRepository(db_session).insert(ProductInput("222", category, "Bread", "Kulinichi", "500 g"))
        scarce_id = store_products.insert(StoreProductInput(upc="222", price=300, quantity=3))
        db_session.commit()

        lines = [(base_id, 2), (promo_id, 1), (scarce_id, 4)]
        with pytest.raises(IntegrityError):
            sell(receipts, *[lines[i] for i in order])
        db_session.rollback()

        assert receipts.select().total_count == 0
        stock = {sp: store_products.select_by_pk(sp).quantity for sp in (base_id, promo_id, scarce_id)}
        assert stock == {base_id: 45, promo_id: 5, scarce_id: 3}

    def test_selling_exact_stock_is_allowed(self, db_session, seed, receipts, store_products):
        sell(receipts, (seed["store_product_id"], 50))
        assert store_products.select_by_pk(seed["store_product_id"]).quantity == 0

    def test_unknown_card_rejected(self, db_session, seed, receipts):
        with pytest.raises(IntegrityError):
            sell(receipts, (seed["store_product_id"], 1), card_number="NO-SUCH-CARD")
        db_session.rollback()


class TestWriteOnce:
    def test_no_update(self, db_session, seed, receipts):
        receipt = sell(receipts, (seed["store_product_id"], 1))
        with pytest.raises(QueryStrategyError):
            receipts.update(receipt.receipt_id, ReceiptHeader("2020-01-01T00:00:00Z", 0, "C001"))

    def test_delete_cascades_to_sales_but_keeps_stock(self, db_session, seed, receipts, store_products):
        receipt = sell(receipts, (seed["store_product_id"], 5))
        receipts.delete(receipt.receipt_id)

        assert receipts.select_by_pk(receipt.receipt_id) is None
        assert store_products.select_by_pk(seed["store_product_id"]).quantity == 45

    def test_employee_with_receipts_cannot_be_deleted(self, db_session, seed, receipts):
        sell(receipts, (seed["store_product_id"], 1))
        with pytest.raises(IntegrityError):
            EmployeeRepository(db_session).delete(seed["cashier_id"])
        db_session.rollback()


class TestQueries:
    @pytest.fixture
    def two_receipts(self, db_session, seed, receipts):
        first = sell(receipts, (seed["store_product_id"], 1))
        second = sell(receipts, (seed["store_product_id"], 2), employee_id="M001", card_number=seed["card_number"])
        db_session.commit()
        return first, second

    def test_employee_filter(self, receipts, two_receipts):
        first, _ = two_receipts
        result = receipts.select([FilterParam(ReceiptFilter.EMPLOYEE_ID, "C001")])
        assert [r.receipt_id for r in result.rows] == [first.receipt_id]

    def test_date_range(self, receipts, two_receipts):
        assert receipts.select([FilterParam(ReceiptFilter.DATE_MIN, "2000-01-01T00:00:00Z")]).total_count == 2
        assert receipts.select([FilterParam(ReceiptFilter.DATE_MAX, "2000-01-01T00:00:00Z")]).total_count == 0

    def test_order_by_date_descending(self, receipts, two_receipts):
        first, second = two_receipts
        result = receipts.select(order=OrderParam(ReceiptOrder.DATE, asc=False))
        assert [r.receipt_id for r in result.rows] == [second.receipt_id, first.receipt_id]

    def test_total_sum(self, receipts, two_receipts):
        assert receipts.total_sum() == 1000 + 1700
        assert receipts.total_sum([FilterParam(ReceiptFilter.EMPLOYEE_ID, "M001")]) == 1700
        assert receipts.total_sum([FilterParam(ReceiptFilter.DATE_MAX, "2000-01-01T00:00:00Z")]) == 0
