from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..entities import ProductInput, ProductOutput, ProductPK, Short
from .base import FilterParam, Repository
from .query_strategy import Order, QueryStrategy, SelectStrategy, sql


class ProductFilter(Enum):
    PRIMARY_KEY = "primary_key"
    CATEGORY_ID = "category_id"
    PRODUCT_NAME = "product_name"


class ProductOrder(Enum):
    PRODUCT_NAME = "product_name"


class ProductQuery(Enum):
    SHORT = "short"
    SOLD_QUANTITY = "sold_quantity"
    SOLD_FOR = "sold_for"
    PURCHASED_BY_ALL_CLIENTS = "purchased_by_all_clients"
    SOLD_BY_ALL_CASHIERS = "sold_by_all_cashiers"


class SoldQuantityFilter(Enum):
    UPC = "upc"
    DATE_MIN = "date_min"
    DATE_MAX = "date_max"


PRODUCT_QUERY_STRATEGY = QueryStrategy(
    select=SelectStrategy(
        base_clause=sql("""
            SELECT product.upc, product.category_id, category_name, product_name, manufacturer, specs
            FROM product
                INNER JOIN category ON product.category_id = category.category_id
            WHERE TRUE"""),
        filters={
            ProductFilter.PRIMARY_KEY: sql("""
                AND product.upc = ?"""),
            ProductFilter.CATEGORY_ID: sql("""
                AND product.category_id = ?"""),
            ProductFilter.PRODUCT_NAME: sql("""
                AND instr(lower(product_name), lower(?)) > 0"""),
        },
        orders={
            ProductOrder.PRODUCT_NAME: Order(
                asc=sql("""
                    ORDER BY product_name ASC"""),
                desc=sql("""
                    ORDER BY product_name DESC"""),
            ),
        },
    ),
    insert=sql("""
        INSERT INTO product (upc, category_id, product_name, manufacturer, specs)
        VALUES (?, ?, ?, ?, ?)
        RETURNING upc"""),
    update=sql("""
        UPDATE product
        SET upc = ?,
            category_id = ?,
            product_name = ?,
            manufacturer = ?,
            specs = ?
        WHERE upc = ?
        RETURNING upc"""),
    delete=sql("""
        DELETE FROM product
        WHERE upc = ?"""),
    queries={
        ProductQuery.SHORT: sql("""
            SELECT upc, (product_name || ' ' || manufacturer) AS description
            FROM product
            ORDER BY product_name ASC"""),
        # Revenue per product after receipt discounts, for products above a threshold
        ProductQuery.SOLD_FOR: sql("""
            SELECT product.upc, product_name, product.category_id, category_name,
                SUM(COALESCE(sale.price * (100 - receipt.discount) * sale.quantity / 100, 0)) AS sold_for
            FROM product
                INNER JOIN category ON product.category_id = category.category_id
                LEFT OUTER JOIN store_product ON product.upc = store_product.upc
                LEFT OUTER JOIN sale ON store_product.store_product_id = sale.store_product_id
                LEFT OUTER JOIN receipt ON receipt.receipt_id = sale.receipt_id
            GROUP BY product.upc, product_name, product.category_id, category_name
            HAVING sold_for >= ?
            ORDER BY sold_for DESC"""),
        # Products bought by every card holder whose surname matches
        ProductQuery.PURCHASED_BY_ALL_CLIENTS: sql("""
            SELECT product.upc, product_name, product.category_id, category_name
            FROM product
                INNER JOIN category ON product.category_id = category.category_id
            WHERE EXISTS (
                SELECT *
                FROM customer_card
                WHERE instr(lower(last_name), lower(?)) > 0
            )
            AND NOT EXISTS (
                SELECT *
                FROM customer_card
                WHERE instr(lower(last_name), lower(?)) > 0
                AND card_number NOT IN (
                    SELECT receipt.card_number
                    FROM receipt
                        INNER JOIN sale ON sale.receipt_id = receipt.receipt_id
                        INNER JOIN store_product ON store_product.store_product_id = sale.store_product_id
                    WHERE receipt.card_number IS NOT NULL
                    AND store_product.upc = product.upc
                )
            )
            ORDER BY product_name ASC"""),
        # Products that every cashier has sold at least once
        ProductQuery.SOLD_BY_ALL_CASHIERS: sql("""
            SELECT product.upc, product_name, product.category_id, category_name
            FROM product
                INNER JOIN category ON product.category_id = category.category_id
            WHERE EXISTS (
                SELECT *
                FROM employee
                WHERE role = 'cashier'
            )
            AND NOT EXISTS (
                SELECT *
                FROM employee
                WHERE role = 'cashier'
                AND NOT EXISTS (
                    SELECT *
                    FROM receipt
                        INNER JOIN sale ON sale.receipt_id = receipt.receipt_id
                        INNER JOIN store_product ON store_product.store_product_id = sale.store_product_id
                    WHERE receipt.employee_id = employee.employee_id
                    AND store_product.upc = product.upc
                )
            )
            ORDER BY product_name ASC"""),
    },
    filtered_selects={
        ProductQuery.SOLD_QUANTITY: SelectStrategy(
            base_clause=sql("""
                SELECT COALESCE(SUM(sale.quantity), 0) AS quantity
                FROM product
                    INNER JOIN store_product ON product.upc = store_product.upc
                    INNER JOIN sale ON store_product.store_product_id = sale.store_product_id
                    INNER JOIN receipt ON sale.receipt_id = receipt.receipt_id
                WHERE TRUE"""),
            filters={
                SoldQuantityFilter.UPC: sql("""
                    AND product.upc = ?"""),
                SoldQuantityFilter.DATE_MIN: sql("""
                    AND print_date >= ?"""),
                SoldQuantityFilter.DATE_MAX: sql("""
                    AND print_date <= ?"""),
            },
        ),
    },
)


@dataclass
class ProductReportRow:
    upc: ProductPK
    product_name: str
    category_id: int
    category_name: str
    sold_for: int | None = None

    def to_dict(self) -> dict:
        data = {
            "upc": self.upc,
            "product_name": self.product_name,
            "category_id": self.category_id,
            "category_name": self.category_name,
        }
        if self.sold_for is not None:
            data["sold_for"] = self.sold_for
        return data


class ProductRepository(Repository[ProductPK, ProductInput, ProductOutput]):
    strategy = PRODUCT_QUERY_STRATEGY
    primary_key_filter = ProductFilter.PRIMARY_KEY

    def all_in_short(self) -> list[Short]:
        rows = self._specialized_select(ProductQuery.SHORT)
        return [Short(row["upc"], row["description"]) for row in rows]

    def quantity_sold(self, upc: ProductPK, filters: Sequence[FilterParam] = ()) -> int:
        """Units of the product sold, optionally within a print-date range."""
        row = self._specialized_filtered_select_first(
            ProductQuery.SOLD_QUANTITY,
            [*filters, FilterParam(SoldQuantityFilter.UPC, upc)],
        )
        # An aggregate without GROUP BY always yields one row
        return row["quantity"]

    def sold_for(self, min_total: int) -> list[ProductReportRow]:
        rows = self._specialized_select(ProductQuery.SOLD_FOR, [min_total])
        return [self._report_row(row) for row in rows]

    def purchased_by_all_clients(self, client_surname: str) -> list[ProductReportRow]:
        rows = self._specialized_select(ProductQuery.PURCHASED_BY_ALL_CLIENTS, [client_surname, client_surname])
        return [self._report_row(row) for row in rows]

    def sold_by_all_cashiers(self) -> list[ProductReportRow]:
        rows = self._specialized_select(ProductQuery.SOLD_BY_ALL_CASHIERS)
        return [self._report_row(row) for row in rows]

    def cast_to_output(self, row) -> ProductOutput:
        return ProductOutput(
            upc=row["upc"],
            category_id=row["category_id"],
            category_name=row["category_name"],
            product_name=row["product_name"],
            manufacturer=row["manufacturer"],
            specs=row["specs"],
        )

    def cast_to_params(self, dto: ProductInput) -> list:
        return [dto.upc, dto.category_id, dto.product_name, dto.manufacturer, dto.specs]

    @staticmethod
    def _report_row(row) -> ProductReportRow:
        return ProductReportRow(
            upc=row["upc"],
            product_name=row["product_name"],
            category_id=row["category_id"],
            category_name=row["category_name"],
            sold_for=row.get("sold_for"),
        )
