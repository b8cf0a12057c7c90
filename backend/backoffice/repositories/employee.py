from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..entities import Address, EmployeeInput, EmployeeOutput, EmployeePK, PersonName, Short, User
from ..time_utils import parse_iso_date, to_iso_date
from .base import Repository
from .query_strategy import Order, QueryStrategy, SelectStrategy, sql


class EmployeeFilter(Enum):
    PRIMARY_KEY = "primary_key"
    ROLE = "role"
    LAST_NAME = "last_name"


class EmployeeOrder(Enum):
    LAST_NAME = "last_name"


class EmployeeQuery(Enum):
    USER = "user"
    CASHIERS_SHORT = "cashiers_short"
    BEST_CASHIERS = "best_cashiers"


EMPLOYEE_QUERY_STRATEGY = QueryStrategy(
    select=SelectStrategy(
        base_clause=sql("""
            SELECT employee_id, first_name, middle_name, last_name, role, salary,
                birth_date, work_start_date, phone, city, street, zip_code, login
            FROM employee
            WHERE TRUE"""),
        filters={
            EmployeeFilter.PRIMARY_KEY: sql("""
                AND employee_id = ?"""),
            EmployeeFilter.ROLE: sql("""
                AND role = ?"""),
            EmployeeFilter.LAST_NAME: sql("""
                AND instr(lower(last_name), lower(?)) > 0"""),
        },
        orders={
            EmployeeOrder.LAST_NAME: Order(
                asc=sql("""
                    ORDER BY last_name ASC"""),
                desc=sql("""
                    ORDER BY last_name DESC"""),
            ),
        },
    ),
    insert=sql("""
        INSERT INTO employee (
            employee_id, first_name, middle_name, last_name, role, salary,
            birth_date, work_start_date, phone, city, street, zip_code, login, password_hash
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        RETURNING employee_id"""),
    # A NULL password hash keeps the stored one
    update=sql("""
        UPDATE employee
        SET employee_id = ?,
            first_name = ?,
            middle_name = ?,
            last_name = ?,
            role = ?,
            salary = ?,
            birth_date = ?,
            work_start_date = ?,
            phone = ?,
            city = ?,
            street = ?,
            zip_code = ?,
            login = ?,
            password_hash = COALESCE(?, password_hash)
        WHERE employee_id = ?
        RETURNING employee_id"""),
    delete=sql("""
        DELETE FROM employee
        WHERE employee_id = ?"""),
    queries={
        EmployeeQuery.USER: sql("""
            SELECT employee_id, login, role, first_name, middle_name, last_name, password_hash
            FROM employee
            WHERE login = ?"""),
        EmployeeQuery.CASHIERS_SHORT: sql("""
            SELECT employee_id, (last_name || ' ' || first_name || COALESCE(' ' || middle_name, '')) AS full_name
            FROM employee
            WHERE role = 'cashier'
            ORDER BY last_name ASC"""),
        # Cashiers who sold at least N distinct products
        EmployeeQuery.BEST_CASHIERS: sql("""
            SELECT employee.employee_id, employee.last_name, employee.first_name,
                COUNT(DISTINCT store_product.upc) AS products_sold
            FROM employee
                INNER JOIN receipt ON employee.employee_id = receipt.employee_id
                INNER JOIN sale ON receipt.receipt_id = sale.receipt_id
                INNER JOIN store_product ON sale.store_product_id = store_product.store_product_id
            WHERE employee.role = 'cashier'
            GROUP BY employee.employee_id, employee.last_name, employee.first_name
            HAVING COUNT(DISTINCT store_product.upc) >= ?
            ORDER BY products_sold DESC, employee.last_name ASC"""),
    },
)


@dataclass
class CashierPerformance:
    employee_id: EmployeePK
    last_name: str
    first_name: str
    products_sold: int

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "products_sold": self.products_sold,
        }


class EmployeeRepository(Repository[EmployeePK, EmployeeInput, EmployeeOutput]):
    strategy = EMPLOYEE_QUERY_STRATEGY
    primary_key_filter = EmployeeFilter.PRIMARY_KEY

    def select_user(self, login: str) -> Optional[User]:
        """Authentication lookup; the only read that returns the password hash."""
        row = self._specialized_select_first(EmployeeQuery.USER, [login])
        if row is None:
            return None
        return User(
            user_id=row["employee_id"],
            login=row["login"],
            role=row["role"],
            name=PersonName(row["first_name"], row["last_name"], row["middle_name"]),
            password_hash=row["password_hash"],
        )

    def cashiers_in_short(self) -> list[Short]:
        rows = self._specialized_select(EmployeeQuery.CASHIERS_SHORT)
        return [Short(row["employee_id"], row["full_name"]) for row in rows]

    def best_cashiers(self, min_products: int) -> list[CashierPerformance]:
        rows = self._specialized_select(EmployeeQuery.BEST_CASHIERS, [min_products])
        return [
            CashierPerformance(
                employee_id=row["employee_id"],
                last_name=row["last_name"],
                first_name=row["first_name"],
                products_sold=row["products_sold"],
            )
            for row in rows
        ]

    def cast_to_output(self, row) -> EmployeeOutput:
        return EmployeeOutput(
            employee_id=row["employee_id"],
            name=PersonName(row["first_name"], row["last_name"], row["middle_name"]),
            role=row["role"],
            salary=row["salary"],
            birth_date=parse_iso_date(row["birth_date"]),
            work_start_date=parse_iso_date(row["work_start_date"]),
            phone=row["phone"],
            address=Address(row["city"], row["street"], row["zip_code"]),
            login=row["login"],
        )

    def cast_to_params(self, dto: EmployeeInput) -> list:
        return [
            dto.employee_id,
            dto.name.first_name,
            dto.name.middle_name,
            dto.name.last_name,
            dto.role,
            dto.salary,
            to_iso_date(dto.birth_date),
            to_iso_date(dto.work_start_date),
            dto.phone,
            dto.address.city,
            dto.address.street,
            dto.address.zip_code,
            dto.login,
            dto.password_hash,
        ]
