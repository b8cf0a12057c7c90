"""
End-to-end API tests: payload validation, collection queries, error
translation and the write flows (catalog, promotions, staff, cards,
receipts).
"""

import pytest

from backoffice.decorators import CONSTRAINT_VIOLATION_MESSAGE
from backoffice.repositories import CategoryRepository
from conftest import PASSWORD, auth_headers, get_auth_token


def employee_payload(employee_id="C100", **overrides):
    payload = {
        "employee_id": employee_id,
        "name": {"first_name": "Ivan", "middle_name": None, "last_name": "Franko"},
        "role": "cashier",
        "salary": 1_800_000,
        "birth_date": "2000-06-15",
        "work_start_date": "2020-01-10",
        "phone": "+380931234567",
        "address": {"city": "Kyiv", "street": "Sahaidachnoho 5", "zip_code": "04070"},
        "login": "ivan",
        "password": "Kameniar#1856",
    }
    payload.update(overrides)
    return payload


def client_payload(card_number="CARD000000050", **overrides):
    payload = {
        "card_number": card_number,
        "name": {"first_name": "Marko", "last_name": "Vovchok"},
        "phone": "+380500000000",
        "discount": 5,
        "address": None,
    }
    payload.update(overrides)
    return payload


# =============================================================================
# CATALOG
# =============================================================================


class TestCategories:
    def test_create_and_list(self, client, seed, manager_headers):
        resp = client.post("/api/categories", json={"category_name": "Bakery"}, headers=manager_headers)
        assert resp.status_code == 201
        assert resp.json["category_name"] == "Bakery"

        resp = client.get("/api/categories", headers=manager_headers)
        assert [c["category_name"] for c in resp.json] == ["Bakery", "Dairy"]
        assert resp.headers["X-Total-Count"] == "2"

    def test_duplicate_name_is_constraint_violation(self, client, seed, manager_headers):
        resp = client.post("/api/categories", json={"category_name": "Dairy"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == CONSTRAINT_VIOLATION_MESSAGE

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"category_name": ""},
            {"category_name": "x" * 51},
            {"category_name": "Ok", "category_id": 7},
            ["not", "an", "object"],
        ],
    )
    def test_invalid_payloads(self, client, seed, manager_headers, body):
        resp = client.post("/api/categories", json=body, headers=manager_headers)
        assert resp.status_code == 400

    def test_delete_in_use_is_rejected(self, client, seed, manager_headers):
        category_id = client.get("/api/categories", headers=manager_headers).json[0]["category_id"]
        resp = client.delete(f"/api/categories/{category_id}", headers=manager_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_missing_is_404(self, client, seed, manager_headers, method):
        resp = getattr(client, method)("/api/categories/9999", json={"category_name": "X"}, headers=manager_headers)
        assert resp.status_code == 404


class TestCollectionQueries:
    @pytest.fixture
    def many_products(self, client, seed, manager_headers):
        category_id = client.get("/api/categories", headers=manager_headers).json[0]["category_id"]
        for i, name in enumerate(["Yogurt", "Butter", "Kefir", "Cream"]):
            resp = client.post(
                "/api/products",
                json={
                    "upc": f"90{i}",
                    "category_id": category_id,
                    "product_name": name,
                    "manufacturer": "Yagotynske",
                    "specs": "-",
                },
                headers=manager_headers,
            )
            assert resp.status_code == 201
        return category_id

    def test_sort_and_paginate(self, client, many_products, manager_headers):
        resp = client.get("/api/products?sort_by=product_name&order=desc&limit=2&offset=1", headers=manager_headers)
        assert [p["product_name"] for p in resp.json] == ["Milk", "Kefir"]
        assert resp.headers["X-Total-Count"] == "5"

    def test_name_filter(self, client, many_products, manager_headers):
        resp = client.get("/api/products?product_name=UTT", headers=manager_headers)
        assert [p["product_name"] for p in resp.json] == ["Butter"]

    @pytest.mark.parametrize(
        "query",
        ["sort_by=price", "order=sideways", "limit=abc", "limit=1001", "offset=-1", "category_id=x"],
    )
    def test_bad_query_params(self, client, seed, manager_headers, query):
        resp = client.get(f"/api/products?{query}", headers=manager_headers)
        assert resp.status_code == 400


# =============================================================================
# STORE PRODUCTS AND PROMOTIONS
# =============================================================================


class TestStoreProducts:
    def test_second_regular_row_reports_reason(self, client, seed, manager_headers):
        resp = client.post(
            "/api/store_products",
            json={"upc": "111", "price": 900, "quantity": 1},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "A product cannot have more than one non-promotional store product"

    @pytest.mark.parametrize(
        "body",
        [
            {"upc": "111", "price": -1, "quantity": 1},
            {"upc": "111", "price": 1.5, "quantity": 1},
            {"upc": "111", "price": 100, "quantity": -3},
            {"upc": "111", "price": 100, "quantity": 1, "base_store_product_id": 1},
        ],
    )
    def test_invalid_payloads(self, client, seed, manager_headers, body):
        resp = client.post("/api/store_products", json=body, headers=manager_headers)
        assert resp.status_code == 400

    def test_promotion_lifecycle(self, client, seed, manager_headers):
        base_id = seed["store_product_id"]
        url = f"/api/store_products/{base_id}/promotional"

        resp = client.post(url, json={"quantity": 10}, headers=manager_headers)
        assert resp.status_code == 201
        promo = resp.json
        assert promo["price"] == 500
        assert promo["is_promotional"] is True
        assert client.get(f"/api/store_products/{base_id}", headers=manager_headers).json["quantity"] == 40

        resp = client.patch(url, json={"quantity": 4}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["quantity"] == 4
        assert client.get(f"/api/store_products/{base_id}", headers=manager_headers).json["quantity"] == 46

        resp = client.delete(url, headers=manager_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/store_products/{base_id}", headers=manager_headers).json["quantity"] == 50
        assert client.get(f"/api/store_products/{promo['store_product_id']}", headers=manager_headers).status_code == 404

    def test_second_promotion_with_stock(self, client, seed, manager_headers):
        url = f"/api/store_products/{seed['store_product_id']}/promotional"
        client.post(url, json={"quantity": 10}, headers=manager_headers)
        resp = client.post(url, json={"quantity": 1}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "The current promotion still has stock left"

    def test_promotional_row_not_editable_directly(self, client, seed, manager_headers):
        promo = client.post(
            f"/api/store_products/{seed['store_product_id']}/promotional",
            json={"quantity": 10},
            headers=manager_headers,
        ).json
        resp = client.put(
            f"/api/store_products/{promo['store_product_id']}",
            json={"upc": "111", "price": 1, "quantity": 1},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert client.get(f"/api/store_products/{promo['store_product_id']}", headers=manager_headers).json["price"] == 500

    def test_promotion_larger_than_stock_rolls_back(self, client, seed, manager_headers):
        url = f"/api/store_products/{seed['store_product_id']}/promotional"
        resp = client.post(url, json={"quantity": 51}, headers=manager_headers)
        assert resp.status_code == 400
        listing = client.get("/api/store_products?upc=111", headers=manager_headers)
        assert listing.headers["X-Total-Count"] == "1"

    @pytest.mark.parametrize("quantity", [0, -5, "ten", None])
    def test_promotion_quantity_must_be_positive(self, client, seed, manager_headers, quantity):
        url = f"/api/store_products/{seed['store_product_id']}/promotional"
        resp = client.post(url, json={"quantity": quantity}, headers=manager_headers)
        assert resp.status_code == 400

    def test_promotion_of_missing_base(self, client, seed, manager_headers):
        resp = client.post("/api/store_products/9999/promotional", json={"quantity": 1}, headers=manager_headers)
        assert resp.status_code == 404

    def test_is_promotional_filter(self, client, seed, manager_headers):
        client.post(
            f"/api/store_products/{seed['store_product_id']}/promotional",
            json={"quantity": 10},
            headers=manager_headers,
        )
        resp = client.get("/api/store_products?is_promotional=true", headers=manager_headers)
        assert [p["is_promotional"] for p in resp.json] == [True]


# =============================================================================
# EMPLOYEES
# =============================================================================


class TestEmployees:
    def test_create_then_login(self, client, seed, manager_headers):
        resp = client.post("/api/employees", json=employee_payload(), headers=manager_headers)
        assert resp.status_code == 201
        assert resp.json["name"]["last_name"] == "Franko"
        assert "password" not in resp.json
        assert get_auth_token(client, "ivan", "Kameniar#1856") is not None

    def test_hired_at_17_rejected(self, client, seed, manager_headers):
        resp = client.post(
            "/api/employees",
            json=employee_payload(work_start_date="2018-06-14"),
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == CONSTRAINT_VIOLATION_MESSAGE

    def test_hired_on_18th_birthday_accepted(self, client, seed, manager_headers):
        resp = client.post(
            "/api/employees",
            json=employee_payload(work_start_date="2018-06-15"),
            headers=manager_headers,
        )
        assert resp.status_code == 201

    @pytest.mark.parametrize(
        "overrides",
        [
            {"password": "weak"},
            {"role": "janitor"},
            {"birth_date": "15.06.2000"},
            {"work_start_date": "1999-01-01"},
            {"name": {"first_name": "Ivan", "surname": "Franko"}},
            {"address": "Kyiv"},
            {"salary": -1},
        ],
    )
    def test_invalid_payloads(self, client, seed, manager_headers, overrides):
        resp = client.post("/api/employees", json=employee_payload(**overrides), headers=manager_headers)
        assert resp.status_code == 400

    def test_put_without_password_keeps_it(self, client, seed, manager_headers):
        payload = employee_payload()
        client.post("/api/employees", json=payload, headers=manager_headers)
        del payload["password"]
        payload["salary"] = 2_000_000

        resp = client.put("/api/employees/C100", json=payload, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["salary"] == 2_000_000
        assert get_auth_token(client, "ivan", "Kameniar#1856") is not None

    def test_best_cashiers_defaults(self, client, seed, manager_headers):
        resp = client.get("/api/employees/best_cashiers", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json == []

    def test_cashiers_short(self, client, seed, manager_headers):
        resp = client.get("/api/employees/cashiers/short", headers=manager_headers)
        assert [c["primary_key"] for c in resp.json] == [seed["cashier_id"]]


# =============================================================================
# CLIENT CARDS
# =============================================================================


class TestClients:
    def test_cashier_registers_card(self, client, seed, cashier_headers):
        resp = client.post("/api/clients", json=client_payload(), headers=cashier_headers)
        assert resp.status_code == 201
        assert resp.json["address"] is None

    def test_partial_address_rejected(self, client, seed, cashier_headers):
        resp = client.post(
            "/api/clients",
            json=client_payload(address={"city": "Lviv"}),
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("discount", [-1, 101, "15%"])
    def test_discount_range(self, client, seed, cashier_headers, discount):
        resp = client.post("/api/clients", json=client_payload(discount=discount), headers=cashier_headers)
        assert resp.status_code == 400

    def test_drop_address_on_update(self, client, seed, cashier_headers):
        card = client.get("/api/clients/CARD000000001", headers=cashier_headers).json
        card["address"] = None
        resp = client.put("/api/clients/CARD000000001", json=card, headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["address"] is None

    def test_filters(self, client, seed, cashier_headers):
        client.post("/api/clients", json=client_payload(), headers=cashier_headers)
        assert client.get("/api/clients?discount=15", headers=cashier_headers).headers["X-Total-Count"] == "1"
        resp = client.get("/api/clients?last_name=vov", headers=cashier_headers)
        assert [c["card_number"] for c in resp.json] == ["CARD000000050"]


# =============================================================================
# RECEIPTS
# =============================================================================


class TestReceipts:
    def sell(self, client, headers, lines, card_number=None):
        body = {"sales": [{"store_product_id": sp, "quantity": q} for sp, q in lines]}
        if card_number is not None:
            body["card_number"] = card_number
        return client.post("/api/receipts", json=body, headers=headers)

    def test_create_receipt(self, client, seed, cashier_headers):
        resp = self.sell(client, cashier_headers, [(seed["store_product_id"], 2)], seed["card_number"])
        assert resp.status_code == 201
        assert resp.json["employee_id"] == seed["cashier_id"]
        assert resp.json["discount"] == 15
        assert resp.json["sum_total"] == 1700
        assert resp.json["vat"] == 340
        assert resp.json["sales"][0]["price"] == 1000

    def test_oversell_rolls_back(self, client, seed, cashier_headers):
        resp = self.sell(client, cashier_headers, [(seed["store_product_id"], 51)])
        assert resp.status_code == 400
        assert client.get("/api/receipts", headers=cashier_headers).headers["X-Total-Count"] == "0"
        stock = client.get(f"/api/store_products/{seed['store_product_id']}", headers=cashier_headers)
        assert stock.json["quantity"] == 50

    def test_unknown_store_product_rolls_back(self, client, seed, cashier_headers):
        resp = self.sell(client, cashier_headers, [(seed["store_product_id"], 1), (9999, 1)])
        assert resp.status_code == 400
        stock = client.get(f"/api/store_products/{seed['store_product_id']}", headers=cashier_headers)
        assert stock.json["quantity"] == 50

    @pytest.mark.parametrize(
        "sales",
        [
            [],
            None,
            [{"store_product_id": 1}],
            [{"store_product_id": 1, "quantity": 0}],
            [{"store_product_id": 1, "quantity": 1}, {"store_product_id": 1, "quantity": 2}],
        ],
    )
    def test_invalid_sales(self, client, seed, cashier_headers, sales):
        resp = client.post("/api/receipts", json={"sales": sales}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_my_receipts_and_reports(self, client, seed, cashier_headers, manager_headers):
        self.sell(client, cashier_headers, [(seed["store_product_id"], 3)])
        self.sell(client, cashier_headers, [(seed["store_product_id"], 2)], seed["card_number"])

        mine = client.get("/api/receipts/me", headers=cashier_headers)
        assert mine.headers["X-Total-Count"] == "2"

        total = client.get(f"/api/receipts/total_sum?employee_id={seed['cashier_id']}", headers=manager_headers)
        assert total.json == {"sum_total": 3000 + 1700}

        sold = client.get("/api/products/111/sold_quantity?date_min=2000-01-01", headers=manager_headers)
        assert sold.json == {"upc": "111", "quantity": 5}

        none_yet = client.get("/api/products/111/sold_quantity?date_max=2000-01-01", headers=manager_headers)
        assert none_yet.json["quantity"] == 0

        regular = client.get("/api/clients/regular", headers=manager_headers)
        assert [c["card_number"] for c in regular.json] == [seed["card_number"]]

        everything = client.get("/api/receipts/all_categories", headers=manager_headers)
        assert len(everything.json) == 2

    def test_bad_date_filter(self, client, seed, manager_headers):
        resp = client.get("/api/receipts?date_min=yesterday", headers=manager_headers)
        assert resp.status_code == 400

    def test_manager_deletes_receipt(self, client, seed, cashier_headers, manager_headers):
        receipt = self.sell(client, cashier_headers, [(seed["store_product_id"], 1)]).json
        resp = client.delete(f"/api/receipts/{receipt['receipt_id']}", headers=manager_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/receipts/{receipt['receipt_id']}", headers=manager_headers).status_code == 404

    def test_purchased_by_all_clients_needs_surname(self, client, seed, manager_headers):
        resp = client.get("/api/products/purchased_by_all_clients", headers=manager_headers)
        assert resp.status_code == 400


# =============================================================================
# UNEXPECTED ERRORS
# =============================================================================


class TestUnexpectedErrors:
    def test_internal_error_is_500(self, client, seed, manager_headers, monkeypatch):
        def boom(self):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(CategoryRepository, "all_in_short", boom)
        resp = client.get("/api/categories/short", headers=manager_headers)
        assert resp.status_code == 500
        assert resp.json == {"error": "Internal server error"}

    def test_read_requests_cannot_write(self, client, seed, manager_headers, monkeypatch):
        def sneaky_write(self):
            self._execute("DELETE FROM customer_card", [])
            return []

        monkeypatch.setattr(CategoryRepository, "all_in_short", sneaky_write)
        resp = client.get("/api/categories/short", headers=manager_headers)
        assert resp.status_code == 500
        assert client.get("/api/clients", headers=manager_headers).headers["X-Total-Count"] == "1"


def test_login_token_reuse_across_requests(client, seed):
    token = get_auth_token(client, "manager", PASSWORD)
    for _ in range(3):
        assert client.get("/api/products", headers=auth_headers(token)).status_code == 200
