"""Initial back-office schema: catalog, inventory, staff, cards, receipts

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. category, product
2. store_product (with the generated is_promotional column and the
   per-product row-limit trigger)
3. employee, customer_card
4. receipt, sale (with the triggers that keep receipt totals current)
"""
from alembic import op
import sqlalchemy as sa

from backoffice.models import (
    MAX_MONEY,
    SALE_TRIGGERS,
    STORE_PRODUCT_INSERT_TRIGGER,
    STORE_PRODUCT_UPC_UPDATE_TRIGGER,
)


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. CATALOG
    # ==========================================================================
    op.create_table('category',
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=50), nullable=False),
        sa.CheckConstraint('LENGTH(category_name) <= 50', name='ck_category_name_length'),
        sa.PrimaryKeyConstraint('category_id'),
        sa.UniqueConstraint('category_name'),
    )

    op.create_table('product',
        sa.Column('upc', sa.String(length=12), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=50), nullable=False),
        sa.Column('manufacturer', sa.String(length=50), nullable=False),
        sa.Column('specs', sa.String(length=100), nullable=False),
        sa.CheckConstraint('LENGTH(upc) <= 12', name='ck_product_upc_length'),
        sa.CheckConstraint('LENGTH(product_name) <= 50', name='ck_product_name_length'),
        sa.CheckConstraint('LENGTH(manufacturer) <= 50', name='ck_product_manufacturer_length'),
        sa.CheckConstraint('LENGTH(specs) <= 100', name='ck_product_specs_length'),
        sa.ForeignKeyConstraint(['category_id'], ['category.category_id'], onupdate='CASCADE', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('upc'),
    )
    op.create_index('ix_product_category_id', 'product', ['category_id'])

    # ==========================================================================
    # 2. STORE PRODUCTS
    # ==========================================================================
    op.create_table('store_product',
        sa.Column('store_product_id', sa.Integer(), nullable=False),
        sa.Column('base_store_product_id', sa.Integer(), nullable=True),
        sa.Column('upc', sa.String(length=12), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('is_promotional', sa.Boolean(),
                  sa.Computed('base_store_product_id IS NOT NULL', persisted=True)),
        sa.CheckConstraint(f'price BETWEEN 0 AND {MAX_MONEY}', name='ck_store_product_price'),
        sa.CheckConstraint('quantity >= 0', name='ck_store_product_quantity'),
        sa.ForeignKeyConstraint(['base_store_product_id'], ['store_product.store_product_id'],
                                onupdate='CASCADE', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['upc'], ['product.upc'], onupdate='CASCADE', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('store_product_id'),
    )
    op.create_index('ix_store_product_upc', 'store_product', ['upc'])
    op.execute(STORE_PRODUCT_INSERT_TRIGGER)
    op.execute(STORE_PRODUCT_UPC_UPDATE_TRIGGER)

    # ==========================================================================
    # 3. STAFF AND CARDS
    # ==========================================================================
    op.create_table('employee',
        sa.Column('employee_id', sa.String(length=10), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('middle_name', sa.String(length=50), nullable=True),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('role', sa.String(length=10), nullable=False),
        sa.Column('salary', sa.Integer(), nullable=False),
        sa.Column('birth_date', sa.String(length=10), nullable=False),
        sa.Column('work_start_date', sa.String(length=10), nullable=False),
        sa.Column('phone', sa.String(length=13), nullable=False),
        sa.Column('city', sa.String(length=50), nullable=False),
        sa.Column('street', sa.String(length=50), nullable=False),
        sa.Column('zip_code', sa.String(length=9), nullable=False),
        sa.Column('login', sa.String(length=15), nullable=True),
        sa.Column('password_hash', sa.String(length=60), nullable=True),
        sa.CheckConstraint('LENGTH(employee_id) <= 10', name='ck_employee_id_length'),
        sa.CheckConstraint('LENGTH(first_name) <= 50', name='ck_employee_first_name_length'),
        sa.CheckConstraint('LENGTH(middle_name) <= 50', name='ck_employee_middle_name_length'),
        sa.CheckConstraint('LENGTH(last_name) <= 50', name='ck_employee_last_name_length'),
        sa.CheckConstraint("role IN ('cashier', 'manager')", name='ck_employee_role'),
        sa.CheckConstraint(f'salary BETWEEN 0 AND {MAX_MONEY}', name='ck_employee_salary'),
        sa.CheckConstraint('LENGTH(phone) <= 13', name='ck_employee_phone_length'),
        sa.CheckConstraint('LENGTH(city) <= 50', name='ck_employee_city_length'),
        sa.CheckConstraint('LENGTH(street) <= 50', name='ck_employee_street_length'),
        sa.CheckConstraint('LENGTH(zip_code) <= 9', name='ck_employee_zip_code_length'),
        sa.CheckConstraint('LENGTH(login) <= 15', name='ck_employee_login_length'),
        sa.CheckConstraint('LENGTH(password_hash) <= 60', name='ck_employee_password_hash_length'),
        sa.CheckConstraint("work_start_date >= date(birth_date, '+18 years')", name='ck_employee_adult_at_start'),
        sa.PrimaryKeyConstraint('employee_id'),
        sa.UniqueConstraint('login'),
    )

    op.create_table('customer_card',
        sa.Column('card_number', sa.String(length=13), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('middle_name', sa.String(length=50), nullable=True),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('phone', sa.String(length=13), nullable=False),
        sa.Column('discount', sa.Integer(), nullable=False),
        sa.Column('city', sa.String(length=50), nullable=True),
        sa.Column('street', sa.String(length=50), nullable=True),
        sa.Column('zip_code', sa.String(length=9), nullable=True),
        sa.CheckConstraint('LENGTH(card_number) <= 13', name='ck_card_number_length'),
        sa.CheckConstraint('LENGTH(first_name) <= 50', name='ck_card_first_name_length'),
        sa.CheckConstraint('LENGTH(middle_name) <= 50', name='ck_card_middle_name_length'),
        sa.CheckConstraint('LENGTH(last_name) <= 50', name='ck_card_last_name_length'),
        sa.CheckConstraint('LENGTH(phone) <= 13', name='ck_card_phone_length'),
        sa.CheckConstraint('LENGTH(city) <= 50', name='ck_card_city_length'),
        sa.CheckConstraint('LENGTH(street) <= 50', name='ck_card_street_length'),
        sa.CheckConstraint('LENGTH(zip_code) <= 9', name='ck_card_zip_code_length'),
        sa.CheckConstraint('discount BETWEEN 0 AND 100', name='ck_card_discount'),
        sa.CheckConstraint(
            '(city IS NULL AND street IS NULL AND zip_code IS NULL)'
            ' OR (city IS NOT NULL AND street IS NOT NULL AND zip_code IS NOT NULL)',
            name='ck_card_address_complete',
        ),
        sa.PrimaryKeyConstraint('card_number'),
    )

    # ==========================================================================
    # 4. RECEIPTS
    # ==========================================================================
    op.create_table('receipt',
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.String(length=10), nullable=False),
        sa.Column('card_number', sa.String(length=13), nullable=True),
        sa.Column('print_date', sa.String(length=20), nullable=False),
        sa.Column('sum_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('vat', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount', sa.Integer(), nullable=False),
        sa.CheckConstraint('sum_total >= 0', name='ck_receipt_sum_total'),
        sa.CheckConstraint('vat >= 0', name='ck_receipt_vat'),
        sa.CheckConstraint('discount BETWEEN 0 AND 100', name='ck_receipt_discount'),
        sa.ForeignKeyConstraint(['employee_id'], ['employee.employee_id'], onupdate='CASCADE', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['card_number'], ['customer_card.card_number'],
                                onupdate='CASCADE', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('receipt_id'),
    )
    op.create_index('ix_receipt_employee_id', 'receipt', ['employee_id'])
    op.create_index('ix_receipt_print_date', 'receipt', ['print_date'])

    op.create_table('sale',
        sa.Column('store_product_id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sale_quantity'),
        sa.CheckConstraint(f'price BETWEEN 0 AND {MAX_MONEY}', name='ck_sale_price'),
        sa.ForeignKeyConstraint(['store_product_id'], ['store_product.store_product_id'],
                                onupdate='CASCADE', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['receipt_id'], ['receipt.receipt_id'], onupdate='CASCADE', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('store_product_id', 'receipt_id'),
    )
    for trigger in SALE_TRIGGERS:
        op.execute(trigger)


def downgrade():
    op.drop_table('sale')
    op.drop_index('ix_receipt_print_date', table_name='receipt')
    op.drop_index('ix_receipt_employee_id', table_name='receipt')
    op.drop_table('receipt')
    op.drop_table('customer_card')
    op.drop_table('employee')
    op.drop_index('ix_store_product_upc', table_name='store_product')
    op.drop_table('store_product')
    op.drop_index('ix_product_category_id', table_name='product')
    op.drop_table('product')
    op.drop_table('category')
