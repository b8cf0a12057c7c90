# backend/backoffice/models.py
"""
Storage schema for the back-office store.

The ORM classes exist to declare tables, constraints and triggers in one
place (db.create_all / Alembic). Reads and writes go through the
repositories in backoffice.repositories, which run hand-written SQL against
these tables.
"""
from __future__ import annotations
from sqlalchemy import DDL, event

from .extensions import db


MAX_MONEY = 99_999_999_999

# Raised by triggers; the request wrapper strips this prefix and reports
# the remainder as the reason.
CORPORATE_INTEGRITY_PREFIX = "CORPORATE_INTEGRITY_CONSTRAINT"


class Category(db.Model):
    __tablename__ = "category"
    __table_args__ = (
        db.CheckConstraint("LENGTH(category_name) <= 50", name="ck_category_name_length"),
    )

    category_id = db.Column(db.Integer, primary_key=True)
    category_name = db.Column(db.String(50), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Category id={self.category_id} name={self.category_name!r}>"


class Product(db.Model):
    __tablename__ = "product"
    __table_args__ = (
        db.CheckConstraint("LENGTH(upc) <= 12", name="ck_product_upc_length"),
        db.CheckConstraint("LENGTH(product_name) <= 50", name="ck_product_name_length"),
        db.CheckConstraint("LENGTH(manufacturer) <= 50", name="ck_product_manufacturer_length"),
        db.CheckConstraint("LENGTH(specs) <= 100", name="ck_product_specs_length"),
    )

    upc = db.Column(db.String(12), primary_key=True)
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("category.category_id", onupdate="CASCADE", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    product_name = db.Column(db.String(50), nullable=False)
    manufacturer = db.Column(db.String(50), nullable=False)
    specs = db.Column(db.String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Product upc={self.upc!r} name={self.product_name!r}>"


class StoreProduct(db.Model):
    """
    A priced, quantified shelf listing of a product.

    Rows with base_store_product_id set are promotional variants of the
    product's single non-promotional row. See the insert trigger below for
    the per-product row limits.
    """
    __tablename__ = "store_product"
    __table_args__ = (
        db.CheckConstraint(f"price BETWEEN 0 AND {MAX_MONEY}", name="ck_store_product_price"),
        db.CheckConstraint("quantity >= 0", name="ck_store_product_quantity"),
    )

    store_product_id = db.Column(db.Integer, primary_key=True)
    base_store_product_id = db.Column(
        db.Integer,
        db.ForeignKey("store_product.store_product_id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=True,
    )
    upc = db.Column(
        db.String(12),
        db.ForeignKey("product.upc", onupdate="CASCADE", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    price = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    is_promotional = db.Column(
        db.Boolean,
        db.Computed("base_store_product_id IS NOT NULL", persisted=True),
    )

    def __repr__(self) -> str:
        return f"<StoreProduct id={self.store_product_id} upc={self.upc!r} promo={self.is_promotional}>"


class Employee(db.Model):
    """Employees double as the authentication principals."""
    __tablename__ = "employee"
    __table_args__ = (
        db.CheckConstraint("LENGTH(employee_id) <= 10", name="ck_employee_id_length"),
        db.CheckConstraint("LENGTH(first_name) <= 50", name="ck_employee_first_name_length"),
        db.CheckConstraint("LENGTH(middle_name) <= 50", name="ck_employee_middle_name_length"),
        db.CheckConstraint("LENGTH(last_name) <= 50", name="ck_employee_last_name_length"),
        db.CheckConstraint("role IN ('cashier', 'manager')", name="ck_employee_role"),
        db.CheckConstraint(f"salary BETWEEN 0 AND {MAX_MONEY}", name="ck_employee_salary"),
        db.CheckConstraint("LENGTH(phone) <= 13", name="ck_employee_phone_length"),
        db.CheckConstraint("LENGTH(city) <= 50", name="ck_employee_city_length"),
        db.CheckConstraint("LENGTH(street) <= 50", name="ck_employee_street_length"),
        db.CheckConstraint("LENGTH(zip_code) <= 9", name="ck_employee_zip_code_length"),
        db.CheckConstraint("LENGTH(login) <= 15", name="ck_employee_login_length"),
        db.CheckConstraint("LENGTH(password_hash) <= 60", name="ck_employee_password_hash_length"),
        db.CheckConstraint(
            "work_start_date >= date(birth_date, '+18 years')",
            name="ck_employee_adult_at_start",
        ),
    )

    employee_id = db.Column(db.String(10), primary_key=True)
    first_name = db.Column(db.String(50), nullable=False)
    middle_name = db.Column(db.String(50), nullable=True)
    last_name = db.Column(db.String(50), nullable=False)
    role = db.Column(db.String(10), nullable=False)
    salary = db.Column(db.Integer, nullable=False)
    # ISO 'YYYY-MM-DD'; kept as text so SQLite's date() arithmetic applies directly
    birth_date = db.Column(db.String(10), nullable=False)
    work_start_date = db.Column(db.String(10), nullable=False)
    phone = db.Column(db.String(13), nullable=False)
    city = db.Column(db.String(50), nullable=False)
    street = db.Column(db.String(50), nullable=False)
    zip_code = db.Column(db.String(9), nullable=False)
    login = db.Column(db.String(15), nullable=True, unique=True)
    password_hash = db.Column(db.String(60), nullable=True)

    def __repr__(self) -> str:
        return f"<Employee id={self.employee_id!r} login={self.login!r} role={self.role!r}>"


class CustomerCard(db.Model):
    __tablename__ = "customer_card"
    __table_args__ = (
        db.CheckConstraint("LENGTH(card_number) <= 13", name="ck_card_number_length"),
        db.CheckConstraint("LENGTH(first_name) <= 50", name="ck_card_first_name_length"),
        db.CheckConstraint("LENGTH(middle_name) <= 50", name="ck_card_middle_name_length"),
        db.CheckConstraint("LENGTH(last_name) <= 50", name="ck_card_last_name_length"),
        db.CheckConstraint("LENGTH(phone) <= 13", name="ck_card_phone_length"),
        db.CheckConstraint("LENGTH(city) <= 50", name="ck_card_city_length"),
        db.CheckConstraint("LENGTH(street) <= 50", name="ck_card_street_length"),
        db.CheckConstraint("LENGTH(zip_code) <= 9", name="ck_card_zip_code_length"),
        db.CheckConstraint("discount BETWEEN 0 AND 100", name="ck_card_discount"),
        db.CheckConstraint(
            "(city IS NULL AND street IS NULL AND zip_code IS NULL)"
            " OR (city IS NOT NULL AND street IS NOT NULL AND zip_code IS NOT NULL)",
            name="ck_card_address_complete",
        ),
    )

    card_number = db.Column(db.String(13), primary_key=True)
    first_name = db.Column(db.String(50), nullable=False)
    middle_name = db.Column(db.String(50), nullable=True)
    last_name = db.Column(db.String(50), nullable=False)
    phone = db.Column(db.String(13), nullable=False)
    discount = db.Column(db.Integer, nullable=False)
    city = db.Column(db.String(50), nullable=True)
    street = db.Column(db.String(50), nullable=True)
    zip_code = db.Column(db.String(9), nullable=True)

    def __repr__(self) -> str:
        return f"<CustomerCard number={self.card_number!r} discount={self.discount}>"


class Receipt(db.Model):
    """
    Receipt header. sum_total and vat are maintained by the Sale triggers;
    discount is the card's percent at the time of sale.
    """
    __tablename__ = "receipt"
    __table_args__ = (
        db.CheckConstraint("sum_total >= 0", name="ck_receipt_sum_total"),
        db.CheckConstraint("vat >= 0", name="ck_receipt_vat"),
        db.CheckConstraint("discount BETWEEN 0 AND 100", name="ck_receipt_discount"),
    )

    receipt_id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(
        db.String(10),
        db.ForeignKey("employee.employee_id", onupdate="CASCADE", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    card_number = db.Column(
        db.String(13),
        db.ForeignKey("customer_card.card_number", onupdate="CASCADE", ondelete="RESTRICT"),
        nullable=True,
    )
    # ISO-8601 UTC with trailing Z (see time_utils.to_utc_z)
    print_date = db.Column(db.String(20), nullable=False, index=True)
    sum_total = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    vat = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    discount = db.Column(db.Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<Receipt id={self.receipt_id} total={self.sum_total}>"


class Sale(db.Model):
    """A receipt line; price is copied from the store product at sale time."""
    __tablename__ = "sale"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_quantity"),
        db.CheckConstraint(f"price BETWEEN 0 AND {MAX_MONEY}", name="ck_sale_price"),
    )

    store_product_id = db.Column(
        db.Integer,
        db.ForeignKey("store_product.store_product_id", onupdate="CASCADE", ondelete="RESTRICT"),
        primary_key=True,
    )
    receipt_id = db.Column(
        db.Integer,
        db.ForeignKey("receipt.receipt_id", onupdate="CASCADE", ondelete="CASCADE"),
        primary_key=True,
    )
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<Sale receipt={self.receipt_id} store_product={self.store_product_id} qty={self.quantity}>"


# =============================================================================
# TRIGGERS
# =============================================================================

STORE_PRODUCT_INSERT_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS store_product_limit_per_product
BEFORE INSERT ON store_product
BEGIN
    SELECT CASE
        WHEN (SELECT COUNT(*) FROM store_product WHERE upc = NEW.upc) >= 2
            THEN RAISE(ABORT, '{CORPORATE_INTEGRITY_PREFIX}: A product cannot have more than two store products')
        WHEN NEW.base_store_product_id IS NULL
            AND (SELECT COUNT(*) FROM store_product WHERE upc = NEW.upc AND base_store_product_id IS NULL) >= 1
            THEN RAISE(ABORT, '{CORPORATE_INTEGRITY_PREFIX}: A product cannot have more than one non-promotional store product')
    END;
END
"""

# Skipped for a product UPC rename: the cascade runs after the product row moved
STORE_PRODUCT_UPC_UPDATE_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS store_product_limit_on_upc_change
BEFORE UPDATE OF upc ON store_product
WHEN NEW.upc IS NOT OLD.upc
    AND EXISTS (SELECT 1 FROM product WHERE upc = OLD.upc)
BEGIN
    SELECT CASE
        WHEN EXISTS (SELECT 1 FROM store_product WHERE base_store_product_id = OLD.store_product_id)
            THEN RAISE(ABORT, '{CORPORATE_INTEGRITY_PREFIX}: A store product with a promotion cannot change its product')
        WHEN (SELECT COUNT(*) FROM store_product WHERE upc = NEW.upc) >= 2
            THEN RAISE(ABORT, '{CORPORATE_INTEGRITY_PREFIX}: A product cannot have more than two store products')
        WHEN NEW.base_store_product_id IS NULL
            AND (SELECT COUNT(*) FROM store_product WHERE upc = NEW.upc AND base_store_product_id IS NULL) >= 1
            THEN RAISE(ABORT, '{CORPORATE_INTEGRITY_PREFIX}: A product cannot have more than one non-promotional store product')
    END;
END
"""

_RECOMPUTE_TOTALS = """
    UPDATE receipt
    SET sum_total = COALESCE((SELECT SUM(price * quantity) FROM sale WHERE sale.receipt_id = receipt.receipt_id), 0)
            * (100 - discount) / 100,
        vat = COALESCE((SELECT SUM(price * quantity) FROM sale WHERE sale.receipt_id = receipt.receipt_id), 0)
            * (100 - discount) / 100 / 5
    WHERE receipt_id = {target};
"""

SALE_TRIGGERS = (
    f"""
CREATE TRIGGER IF NOT EXISTS sale_after_insert
AFTER INSERT ON sale
BEGIN
{_RECOMPUTE_TOTALS.format(target="NEW.receipt_id")}
END
""",
    f"""
CREATE TRIGGER IF NOT EXISTS sale_after_update
AFTER UPDATE ON sale
BEGIN
{_RECOMPUTE_TOTALS.format(target="NEW.receipt_id")}
{_RECOMPUTE_TOTALS.format(target="OLD.receipt_id")}
END
""",
    f"""
CREATE TRIGGER IF NOT EXISTS sale_after_delete
AFTER DELETE ON sale
BEGIN
{_RECOMPUTE_TOTALS.format(target="OLD.receipt_id")}
END
""",
)

event.listen(StoreProduct.__table__, "after_create", DDL(STORE_PRODUCT_INSERT_TRIGGER))
event.listen(StoreProduct.__table__, "after_create", DDL(STORE_PRODUCT_UPC_UPDATE_TRIGGER))
for _trigger in SALE_TRIGGERS:
    event.listen(Sale.__table__, "after_create", DDL(_trigger))
