"""
Tests for the aggregate and relational-division reports.

Scenario (sum before discount -> after):
    R1  cashier C001, card Kovalenko (15%)  Milk x2, Bread x1   2300 -> 1955
    R2  cashier C002, card Kovalchuk (0%)   Milk x1             1000 -> 1000
    R3  cashier C001, no card               Bread x3             900 ->  900
"""

import pytest

from backoffice.entities import ROLE_CASHIER, CategoryInput, ProductInput, ReceiptInput, SaleInput, StoreProductInput
from backoffice.repositories import (
    CategoryRepository,
    ClientRepository,
    EmployeeRepository,
    FilterParam,
    ProductRepository,
    ReceiptRepository,
    SoldQuantityFilter,
)
from conftest import make_client, make_employee


@pytest.fixture
def scenario(db_session, seed, store_products):
    bakery = CategoryRepository(db_session).insert(CategoryInput("Bakery"))
    products = ProductRepository(db_session)
    products.insert(ProductInput("222", bakery, "Bread", "Kyivkhlib", "Rye, 700 g"))
    products.insert(ProductInput("333", bakery, "Baguette", "Kyivkhlib", "250 g"))
    bread = store_products.insert(StoreProductInput(upc="222", price=300, quantity=100))

    EmployeeRepository(db_session).insert(
        make_employee("C002", ROLE_CASHIER, login="cashier2", last_name="Ukrainka", password=None)
    )
    second_card = ClientRepository(db_session).insert(make_client("CARD000000002", discount=0, last_name="Kovalchuk"))

    milk = seed["store_product_id"]
    receipts = ReceiptRepository(db_session, store_products=store_products)
    r1 = receipts.create(
        ReceiptInput([SaleInput(milk, 2), SaleInput(bread, 1)], card_number=seed["card_number"]), "C001"
    )
    r2 = receipts.create(ReceiptInput([SaleInput(milk, 1)], card_number=second_card), "C002")
    r3 = receipts.create(ReceiptInput([SaleInput(bread, 3)]), "C001")
    db_session.commit()
    return {"receipts": receipts, "ids": (r1, r2, r3)}


class TestProductReports:
    def test_quantity_sold(self, db_session, scenario):
        products = ProductRepository(db_session)
        assert products.quantity_sold("111") == 3
        assert products.quantity_sold("222") == 4
        assert products.quantity_sold("333") == 0

    def test_quantity_sold_in_date_range(self, db_session, scenario):
        products = ProductRepository(db_session)
        past = [FilterParam(SoldQuantityFilter.DATE_MAX, "2000-01-01T00:00:00Z")]
        since = [FilterParam(SoldQuantityFilter.DATE_MIN, "2000-01-01T00:00:00Z")]
        assert products.quantity_sold("111", past) == 0
        assert products.quantity_sold("111", since) == 3

    def test_sold_for(self, db_session, scenario):
        rows = ProductRepository(db_session).sold_for(0)
        assert [(r.upc, r.sold_for) for r in rows] == [("111", 2700), ("222", 1155), ("333", 0)]
        assert rows[0].to_dict()["category_name"] == "Dairy"

    def test_sold_for_threshold(self, db_session, scenario):
        rows = ProductRepository(db_session).sold_for(2000)
        assert [r.upc for r in rows] == ["111"]

    def test_purchased_by_all_matching_clients(self, db_session, scenario):
        products = ProductRepository(db_session)
        assert [r.upc for r in products.purchased_by_all_clients("koval")] == ["111"]
        assert [r.product_name for r in products.purchased_by_all_clients("KOVALENKO")] == ["Bread", "Milk"]

    def test_purchased_by_all_clients_needs_a_match(self, db_session, scenario):
        assert ProductRepository(db_session).purchased_by_all_clients("Shevchuk") == []

    def test_sold_by_all_cashiers(self, db_session, scenario):
        rows = ProductRepository(db_session).sold_by_all_cashiers()
        assert [r.upc for r in rows] == ["111"]
        assert "sold_for" not in rows[0].to_dict()

    def test_sold_by_all_cashiers_without_cashiers(self, db_session, product, manager):
        assert ProductRepository(db_session).sold_by_all_cashiers() == []


class TestStaffAndClientReports:
    def test_best_cashiers(self, db_session, scenario):
        employees = EmployeeRepository(db_session)
        assert [(c.employee_id, c.products_sold) for c in employees.best_cashiers(1)] == [("C001", 2), ("C002", 1)]
        assert [c.employee_id for c in employees.best_cashiers(2)] == ["C001"]
        assert employees.best_cashiers(3) == []

    def test_regular_customers(self, db_session, scenario):
        clients = ClientRepository(db_session)
        rows = clients.regular_customers(1)
        assert [(c.last_name, c.total_receipts) for c in rows] == [("Kovalchuk", 1), ("Kovalenko", 1)]
        assert clients.regular_customers(2) == []


class TestReceiptReports:
    def test_total_sum(self, scenario):
        assert scenario["receipts"].total_sum() == 1955 + 1000 + 900

    def test_receipts_covering_every_category(self, scenario):
        r1, _, _ = scenario["ids"]
        rows = scenario["receipts"].receipts_with_all_categories()
        assert [r.receipt_id for r in rows] == [r1]
        assert len(rows[0].sales) == 2
