from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..entities import Address, Client, ClientPK, PersonName, Short
from .base import Repository
from .query_strategy import Order, QueryStrategy, SelectStrategy, sql


class ClientFilter(Enum):
    PRIMARY_KEY = "primary_key"
    DISCOUNT = "discount"
    LAST_NAME = "last_name"


class ClientOrder(Enum):
    LAST_NAME = "last_name"


class ClientQuery(Enum):
    SHORT = "short"
    REGULAR_CUSTOMERS = "regular_customers"


CLIENT_QUERY_STRATEGY = QueryStrategy(
    select=SelectStrategy(
        base_clause=sql("""
            SELECT card_number, first_name, middle_name, last_name, phone, discount, city, street, zip_code
            FROM customer_card
            WHERE TRUE"""),
        filters={
            ClientFilter.PRIMARY_KEY: sql("""
                AND card_number = ?"""),
            ClientFilter.DISCOUNT: sql("""
                AND discount = ?"""),
            ClientFilter.LAST_NAME: sql("""
                AND instr(lower(last_name), lower(?)) > 0"""),
        },
        orders={
            ClientOrder.LAST_NAME: Order(
                asc=sql("""
                    ORDER BY last_name ASC"""),
                desc=sql("""
                    ORDER BY last_name DESC"""),
            ),
        },
    ),
    insert=sql("""
        INSERT INTO customer_card (
            card_number, first_name, middle_name, last_name, phone, discount, city, street, zip_code
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        RETURNING card_number"""),
    update=sql("""
        UPDATE customer_card
        SET card_number = ?,
            first_name = ?,
            middle_name = ?,
            last_name = ?,
            phone = ?,
            discount = ?,
            city = ?,
            street = ?,
            zip_code = ?
        WHERE card_number = ?
        RETURNING card_number"""),
    delete=sql("""
        DELETE FROM customer_card
        WHERE card_number = ?"""),
    queries={
        ClientQuery.SHORT: sql("""
            SELECT card_number, (last_name || ' ' || first_name || COALESCE(' ' || middle_name, '')) AS full_name
            FROM customer_card
            ORDER BY last_name ASC"""),
        # Card holders with at least N receipts
        ClientQuery.REGULAR_CUSTOMERS: sql("""
            SELECT customer_card.card_number, last_name, first_name,
                COUNT(DISTINCT receipt.receipt_id) AS total_receipts
            FROM customer_card
                INNER JOIN receipt ON customer_card.card_number = receipt.card_number
            GROUP BY customer_card.card_number, last_name, first_name
            HAVING COUNT(DISTINCT receipt.receipt_id) >= ?
            ORDER BY total_receipts DESC, last_name ASC"""),
    },
)


@dataclass
class RegularCustomer:
    card_number: ClientPK
    last_name: str
    first_name: str
    total_receipts: int

    def to_dict(self) -> dict:
        return {
            "card_number": self.card_number,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "total_receipts": self.total_receipts,
        }


class ClientRepository(Repository[ClientPK, Client, Client]):
    strategy = CLIENT_QUERY_STRATEGY
    primary_key_filter = ClientFilter.PRIMARY_KEY

    def all_in_short(self) -> list[Short]:
        rows = self._specialized_select(ClientQuery.SHORT)
        return [Short(row["card_number"], row["full_name"]) for row in rows]

    def regular_customers(self, min_receipts: int) -> list[RegularCustomer]:
        rows = self._specialized_select(ClientQuery.REGULAR_CUSTOMERS, [min_receipts])
        return [
            RegularCustomer(
                card_number=row["card_number"],
                last_name=row["last_name"],
                first_name=row["first_name"],
                total_receipts=row["total_receipts"],
            )
            for row in rows
        ]

    def cast_to_output(self, row) -> Client:
        address = None
        # The schema keeps the address all-or-nothing, so one column decides
        if row["city"] is not None:
            address = Address(row["city"], row["street"], row["zip_code"])
        return Client(
            card_number=row["card_number"],
            name=PersonName(row["first_name"], row["last_name"], row["middle_name"]),
            phone=row["phone"],
            discount=row["discount"],
            address=address,
        )

    def cast_to_params(self, dto: Client) -> list:
        address = dto.address
        return [
            dto.card_number,
            dto.name.first_name,
            dto.name.middle_name,
            dto.name.last_name,
            dto.phone,
            dto.discount,
            address.city if address else None,
            address.street if address else None,
            address.zip_code if address else None,
        ]
