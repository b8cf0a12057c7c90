# backend/backoffice/entities.py
"""
Data transfer objects passed into and returned from the repositories.

Input shapes carry what a caller may write; output shapes add joined
display fields. Every output shape has a to_dict() for JSON responses.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .time_utils import to_iso_date

CategoryPK = int
ProductPK = str
StoreProductPK = int
EmployeePK = str
ClientPK = str
ReceiptPK = int

ROLE_CASHIER = "cashier"
ROLE_MANAGER = "manager"
ROLES = (ROLE_CASHIER, ROLE_MANAGER)


@dataclass
class PersonName:
    first_name: str
    last_name: str
    middle_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
        }


@dataclass
class Address:
    city: str
    street: str
    zip_code: str

    def to_dict(self) -> dict:
        return {"city": self.city, "street": self.street, "zip_code": self.zip_code}


@dataclass
class Short:
    """Minimal (id, label) projection for UI lookup pickers."""
    primary_key: object
    description: str

    def to_dict(self) -> dict:
        return {"primary_key": self.primary_key, "description": self.description}


# =============================================================================
# CATEGORY
# =============================================================================

@dataclass
class CategoryInput:
    category_name: str


@dataclass
class CategoryOutput:
    category_id: CategoryPK
    category_name: str

    def to_dict(self) -> dict:
        return {"category_id": self.category_id, "category_name": self.category_name}


# =============================================================================
# PRODUCT
# =============================================================================

@dataclass
class ProductInput:
    upc: ProductPK
    category_id: CategoryPK
    product_name: str
    manufacturer: str
    specs: str


@dataclass
class ProductOutput(ProductInput):
    category_name: str = ""

    def to_dict(self) -> dict:
        return {
            "upc": self.upc,
            "category_id": self.category_id,
            "category_name": self.category_name,
            "product_name": self.product_name,
            "manufacturer": self.manufacturer,
            "specs": self.specs,
        }


# =============================================================================
# STORE PRODUCT
# =============================================================================

@dataclass
class StoreProductInput:
    upc: ProductPK
    price: int
    quantity: int
    # Never taken from clients: None for regular rows, the base's id for promotions
    base_store_product_id: Optional[StoreProductPK] = None


@dataclass
class StoreProductOutput(StoreProductInput):
    store_product_id: StoreProductPK = 0
    product_name: str = ""
    manufacturer: str = ""

    @property
    def is_promotional(self) -> bool:
        return self.base_store_product_id is not None

    def to_dict(self) -> dict:
        return {
            "store_product_id": self.store_product_id,
            "base_store_product_id": self.base_store_product_id,
            "is_promotional": self.is_promotional,
            "upc": self.upc,
            "price": self.price,
            "quantity": self.quantity,
            "product_name": self.product_name,
            "manufacturer": self.manufacturer,
        }


@dataclass
class PromotionalInsert:
    """Everything but the quantity is derived from the base store product."""
    quantity: int


@dataclass
class PromotionalPatch:
    """
    control_total_quantity=True moves the difference to/from the base row
    (warehouse adjustments); False lets the total shrink (sales, write-offs).
    """
    quantity: int
    control_total_quantity: bool = True


# =============================================================================
# EMPLOYEE
# =============================================================================

@dataclass
class EmployeeOutput:
    employee_id: EmployeePK
    name: PersonName
    role: str
    salary: int
    birth_date: date
    work_start_date: date
    phone: str
    address: Address
    login: Optional[str]

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "name": self.name.to_dict(),
            "role": self.role,
            "salary": self.salary,
            "birth_date": to_iso_date(self.birth_date),
            "work_start_date": to_iso_date(self.work_start_date),
            "phone": self.phone,
            "address": self.address.to_dict(),
            "login": self.login,
        }


@dataclass
class EmployeeInput(EmployeeOutput):
    # Already hashed by the caller. None on update means "keep the stored hash".
    password_hash: Optional[str] = None


@dataclass
class User:
    """Authentication principal; employees and users are the same rows."""
    user_id: EmployeePK
    login: str
    role: str
    name: PersonName
    password_hash: Optional[str] = field(default=None, repr=False)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "login": self.login,
            "role": self.role,
            "name": self.name.to_dict(),
        }


# =============================================================================
# CLIENT (CUSTOMER CARD)
# =============================================================================

@dataclass
class Client:
    card_number: ClientPK
    name: PersonName
    phone: str
    discount: int
    address: Optional[Address] = None

    def to_dict(self) -> dict:
        return {
            "card_number": self.card_number,
            "name": self.name.to_dict(),
            "phone": self.phone,
            "discount": self.discount,
            "address": self.address.to_dict() if self.address else None,
        }


# =============================================================================
# RECEIPT
# =============================================================================

@dataclass
class SaleInput:
    store_product_id: StoreProductPK
    quantity: int


@dataclass
class SaleOutput:
    store_product_id: StoreProductPK
    price: int
    quantity: int
    upc: ProductPK
    product_name: str
    is_promotional: bool

    def to_dict(self) -> dict:
        return {
            "store_product_id": self.store_product_id,
            "price": self.price,
            "quantity": self.quantity,
            "upc": self.upc,
            "product_name": self.product_name,
            "is_promotional": self.is_promotional,
        }


@dataclass
class ReceiptInput:
    sales: list[SaleInput]
    card_number: Optional[ClientPK] = None


@dataclass
class ReceiptOutput:
    receipt_id: ReceiptPK
    print_date: str
    sum_total: int
    vat: int
    discount: int
    employee_id: EmployeePK
    employee_name: PersonName
    card_number: Optional[ClientPK] = None
    client_name: Optional[PersonName] = None
    sales: list[SaleOutput] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "receipt_id": self.receipt_id,
            "print_date": self.print_date,
            "sum_total": self.sum_total,
            "vat": self.vat,
            "discount": self.discount,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name.to_dict(),
            "card_number": self.card_number,
            "client_name": self.client_name.to_dict() if self.client_name else None,
            "sales": [sale.to_dict() for sale in self.sales],
        }
