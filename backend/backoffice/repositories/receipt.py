"""
Receipt repository.

A receipt is written once, together with its sales, and never updated.
create() runs every step on the caller's session; the caller owns the
transaction, so any failure part-way (unknown store product, stock
underflow, duplicate line) rolls the whole receipt back.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..entities import (
    ClientPK,
    EmployeePK,
    PersonName,
    PromotionalPatch,
    ReceiptInput,
    ReceiptOutput,
    ReceiptPK,
    SaleInput,
    SaleOutput,
)
from ..time_utils import to_utc_z, utcnow
from .base import FilterParam, Pagination, Repository, SelectResult
from .client import ClientRepository
from .query_builder import OrderParam
from .query_strategy import Order, QueryStrategy, SelectStrategy, sql
from .store_product import StoreProductRepository


class ReceiptFilter(Enum):
    PRIMARY_KEY = "primary_key"
    DATE_MIN = "date_min"
    DATE_MAX = "date_max"
    EMPLOYEE_ID = "employee_id"


class ReceiptOrder(Enum):
    DATE = "date"


class ReceiptQuery(Enum):
    SALES = "sales"
    INSERT_SALE = "insert_sale"
    TOTAL_SUM = "total_sum"
    ALL_CATEGORIES = "all_categories"


RECEIPT_QUERY_STRATEGY = QueryStrategy(
    select=SelectStrategy(
        base_clause=sql("""
            SELECT receipt.receipt_id, print_date, sum_total, vat, receipt.discount,
                receipt.card_number, customer_card.first_name AS client_first_name,
                customer_card.middle_name AS client_middle_name, customer_card.last_name AS client_last_name,
                receipt.employee_id, employee.first_name AS employee_first_name,
                employee.middle_name AS employee_middle_name, employee.last_name AS employee_last_name
            FROM receipt
                INNER JOIN employee ON receipt.employee_id = employee.employee_id
                LEFT OUTER JOIN customer_card ON receipt.card_number = customer_card.card_number
            WHERE TRUE"""),
        filters={
            ReceiptFilter.PRIMARY_KEY: sql("""
                AND receipt.receipt_id = ?"""),
            ReceiptFilter.DATE_MIN: sql("""
                AND print_date >= ?"""),
            ReceiptFilter.DATE_MAX: sql("""
                AND print_date <= ?"""),
            ReceiptFilter.EMPLOYEE_ID: sql("""
                AND receipt.employee_id = ?"""),
        },
        orders={
            ReceiptOrder.DATE: Order(
                asc=sql("""
                    ORDER BY print_date ASC, receipt.receipt_id ASC"""),
                desc=sql("""
                    ORDER BY print_date DESC, receipt.receipt_id DESC"""),
            ),
        },
    ),
    insert=sql("""
        INSERT INTO receipt (print_date, discount, card_number, employee_id)
        VALUES (?, ?, ?, ?)
        RETURNING receipt_id"""),
    delete=sql("""
        DELETE FROM receipt
        WHERE receipt_id = ?"""),
    queries={
        ReceiptQuery.SALES: sql("""
            SELECT sale.store_product_id, sale.price, sale.quantity, store_product.upc, product_name, is_promotional
            FROM sale
                INNER JOIN store_product ON sale.store_product_id = store_product.store_product_id
                INNER JOIN product ON product.upc = store_product.upc
            WHERE receipt_id = ?
            ORDER BY product_name ASC"""),
        ReceiptQuery.INSERT_SALE: sql("""
            INSERT INTO sale (receipt_id, store_product_id, quantity, price)
            VALUES (?, ?, ?, ?)"""),
        # Receipts whose sales cover every category
        ReceiptQuery.ALL_CATEGORIES: sql("""
            SELECT receipt.receipt_id, print_date, sum_total, vat, receipt.discount,
                receipt.card_number, customer_card.first_name AS client_first_name,
                customer_card.middle_name AS client_middle_name, customer_card.last_name AS client_last_name,
                receipt.employee_id, employee.first_name AS employee_first_name,
                employee.middle_name AS employee_middle_name, employee.last_name AS employee_last_name
            FROM receipt
                INNER JOIN employee ON receipt.employee_id = employee.employee_id
                LEFT OUTER JOIN customer_card ON receipt.card_number = customer_card.card_number
            WHERE NOT EXISTS (
                SELECT category.category_id
                FROM category
                WHERE category.category_id NOT IN (
                    SELECT product.category_id
                    FROM sale
                        INNER JOIN store_product ON store_product.store_product_id = sale.store_product_id
                        INNER JOIN product ON product.upc = store_product.upc
                    WHERE sale.receipt_id = receipt.receipt_id
                )
            )
            ORDER BY print_date ASC"""),
    },
    filtered_selects={
        ReceiptQuery.TOTAL_SUM: SelectStrategy(
            base_clause=sql("""
                SELECT COALESCE(SUM(sum_total), 0) AS sum_total
                FROM receipt
                WHERE TRUE"""),
            filters={
                ReceiptFilter.DATE_MIN: sql("""
                    AND print_date >= ?"""),
                ReceiptFilter.DATE_MAX: sql("""
                    AND print_date <= ?"""),
                ReceiptFilter.EMPLOYEE_ID: sql("""
                    AND employee_id = ?"""),
            },
        ),
    },
)


@dataclass
class ReceiptHeader:
    """The receipt row itself, as resolved by create()."""
    print_date: str
    discount: int
    employee_id: EmployeePK
    card_number: Optional[ClientPK] = None


class ReceiptRepository(Repository[ReceiptPK, ReceiptHeader, ReceiptOutput]):
    strategy = RECEIPT_QUERY_STRATEGY
    primary_key_filter = ReceiptFilter.PRIMARY_KEY

    def __init__(
        self,
        session: Session,
        store_products: Optional[StoreProductRepository] = None,
        clients: Optional[ClientRepository] = None,
    ):
        super().__init__(session)
        self.store_products = store_products or StoreProductRepository(session)
        self.clients = clients or ClientRepository(session)

    # -------------------------------------------------------------------------
    # Reads always carry the sales
    # -------------------------------------------------------------------------

    def select(
        self,
        filters: Sequence[FilterParam] = (),
        order: Optional[OrderParam] = None,
        pagination: Pagination = Pagination(),
    ) -> SelectResult[ReceiptOutput]:
        result = super().select(filters, order, pagination)
        for receipt in result.rows:
            receipt.sales = self._select_sales(receipt.receipt_id)
        return result

    def select_first(self, filters: Sequence[FilterParam] = ()) -> Optional[ReceiptOutput]:
        receipt = super().select_first(filters)
        if receipt is not None:
            receipt.sales = self._select_sales(receipt.receipt_id)
        return receipt

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, dto: ReceiptInput, employee_id: EmployeePK) -> ReceiptPK:
        """
        Insert the receipt, its sales, and take the sold units off the shelf.

        The print date is stamped here and the discount is copied from the
        client card, so later card changes never touch existing receipts.
        Sum and VAT are kept up to date by the sale triggers.
        """
        discount = 0
        if dto.card_number is not None:
            client = self.clients.select_by_pk(dto.card_number)
            # An unknown card fails on the foreign key below
            if client is not None:
                discount = client.discount

        receipt_id = self.insert(ReceiptHeader(
            print_date=to_utc_z(utcnow()),
            discount=discount,
            employee_id=employee_id,
            card_number=dto.card_number,
        ))
        for sale in dto.sales:
            self._insert_sale(receipt_id, sale)
            self._take_from_stock(sale)
        return receipt_id

    def create_and_return(self, dto: ReceiptInput, employee_id: EmployeePK) -> Optional[ReceiptOutput]:
        return self.select_by_pk(self.create(dto, employee_id))

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def total_sum(self, filters: Sequence[FilterParam] = ()) -> int:
        row = self._specialized_filtered_select_first(ReceiptQuery.TOTAL_SUM, filters)
        return row["sum_total"]

    def receipts_with_all_categories(self) -> list[ReceiptOutput]:
        rows = self._specialized_select(ReceiptQuery.ALL_CATEGORIES)
        receipts = [self.cast_to_output(row) for row in rows]
        for receipt in receipts:
            receipt.sales = self._select_sales(receipt.receipt_id)
        return receipts

    # -------------------------------------------------------------------------
    # Mappers
    # -------------------------------------------------------------------------

    def cast_to_output(self, row) -> ReceiptOutput:
        client_name = None
        if row["card_number"] is not None:
            client_name = PersonName(row["client_first_name"], row["client_last_name"], row["client_middle_name"])
        return ReceiptOutput(
            receipt_id=row["receipt_id"],
            print_date=row["print_date"],
            sum_total=row["sum_total"],
            vat=row["vat"],
            discount=row["discount"],
            employee_id=row["employee_id"],
            employee_name=PersonName(
                row["employee_first_name"], row["employee_last_name"], row["employee_middle_name"]
            ),
            card_number=row["card_number"],
            client_name=client_name,
        )

    def cast_to_params(self, dto: ReceiptHeader) -> list:
        return [dto.print_date, dto.discount, dto.card_number, dto.employee_id]

    def _select_sales(self, receipt_id: ReceiptPK) -> list[SaleOutput]:
        rows = self._specialized_select(ReceiptQuery.SALES, [receipt_id])
        return [
            SaleOutput(
                store_product_id=row["store_product_id"],
                price=row["price"],
                quantity=row["quantity"],
                upc=row["upc"],
                product_name=row["product_name"],
                is_promotional=bool(row["is_promotional"]),
            )
            for row in rows
        ]

    def _insert_sale(self, receipt_id: ReceiptPK, sale: SaleInput) -> None:
        store_product = self.store_products.select_by_pk(sale.store_product_id)
        # A missing store product leaves price NULL and the insert fails on NOT NULL
        price = store_product.price if store_product is not None else None
        self._specialized_command(
            ReceiptQuery.INSERT_SALE,
            [receipt_id, sale.store_product_id, sale.quantity, price],
        )

    def _take_from_stock(self, sale: SaleInput) -> None:
        store_product = self.store_products.select_by_pk(sale.store_product_id)
        remaining = store_product.quantity - sale.quantity
        # Underflow fails on the quantity CHECK constraint
        if store_product.is_promotional:
            self.store_products.patch_promotional_quantity(
                store_product.base_store_product_id,
                PromotionalPatch(quantity=remaining, control_total_quantity=False),
            )
        else:
            self.store_products.update(sale.store_product_id, replace(store_product, quantity=remaining))
