"""
Store product repository.

Besides plain CRUD this owns the promotion lifecycle. A product has at most
one regular (base) store product and at most one promotional one, priced at
floor(base price * discount quotient). Stock moved into a promotion is taken
from the base row, and deleting the promotion gives it back. Underflow is
never checked here: the quantity CHECK constraint rejects it.
"""
from __future__ import annotations

import math
from dataclasses import replace
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from ..entities import (
    ProductPK,
    PromotionalInsert,
    PromotionalPatch,
    Short,
    StoreProductInput,
    StoreProductOutput,
    StoreProductPK,
)
from .base import CorporateIntegrityError, FilterParam, Repository
from .query_strategy import Order, QueryStrategy, SelectStrategy, sql

DEFAULT_DISCOUNT_QUOTIENT = 0.8


class StoreProductFilter(Enum):
    PRIMARY_KEY = "primary_key"
    UPC = "upc"
    IS_PROMOTIONAL = "is_promotional"


class StoreProductOrder(Enum):
    PRODUCT_NAME = "product_name"
    QUANTITY = "quantity"


class StoreProductQuery(Enum):
    SHORT = "short"


STORE_PRODUCT_QUERY_STRATEGY = QueryStrategy(
    select=SelectStrategy(
        base_clause=sql("""
            SELECT store_product_id, base_store_product_id, store_product.upc, price, quantity,
                product_name, manufacturer
            FROM store_product
                INNER JOIN product ON store_product.upc = product.upc
            WHERE TRUE"""),
        filters={
            StoreProductFilter.PRIMARY_KEY: sql("""
                AND store_product_id = ?"""),
            StoreProductFilter.UPC: sql("""
                AND store_product.upc = ?"""),
            StoreProductFilter.IS_PROMOTIONAL: sql("""
                AND is_promotional = ?"""),
        },
        orders={
            StoreProductOrder.PRODUCT_NAME: Order(
                asc=sql("""
                    ORDER BY product_name ASC"""),
                desc=sql("""
                    ORDER BY product_name DESC"""),
            ),
            StoreProductOrder.QUANTITY: Order(
                asc=sql("""
                    ORDER BY quantity ASC"""),
                desc=sql("""
                    ORDER BY quantity DESC"""),
            ),
        },
    ),
    insert=sql("""
        INSERT INTO store_product (base_store_product_id, upc, price, quantity)
        VALUES (?, ?, ?, ?)
        RETURNING store_product_id"""),
    update=sql("""
        UPDATE store_product
        SET base_store_product_id = ?,
            upc = ?,
            price = ?,
            quantity = ?
        WHERE store_product_id = ?
        RETURNING store_product_id"""),
    delete=sql("""
        DELETE FROM store_product
        WHERE store_product_id = ?"""),
    queries={
        StoreProductQuery.SHORT: sql("""
            SELECT store_product_id,
                (store_product.upc || ' ' || product_name
                    || (CASE WHEN is_promotional THEN ' (promo)' ELSE '' END)) AS description
            FROM store_product
                INNER JOIN product ON store_product.upc = product.upc
            ORDER BY product_name ASC, is_promotional ASC"""),
    },
)


class StoreProductRepository(Repository[StoreProductPK, StoreProductInput, StoreProductOutput]):
    strategy = STORE_PRODUCT_QUERY_STRATEGY
    primary_key_filter = StoreProductFilter.PRIMARY_KEY

    def __init__(self, session: Session, discount_quotient: Optional[float] = None):
        super().__init__(session)
        self.discount_quotient = DEFAULT_DISCOUNT_QUOTIENT if discount_quotient is None else discount_quotient

    def all_in_short(self) -> list[Short]:
        rows = self._specialized_select(StoreProductQuery.SHORT)
        return [Short(row["store_product_id"], row["description"]) for row in rows]

    # -------------------------------------------------------------------------
    # Regular store products
    # -------------------------------------------------------------------------

    def insert(self, dto: StoreProductInput) -> StoreProductPK:
        # Promotions are only ever created through insert_promotional
        return super().insert(replace(dto, base_store_product_id=None))

    def update(self, pk: StoreProductPK, dto: StoreProductInput) -> Optional[StoreProductPK]:
        current = self.select_by_pk(pk)
        if current is None:
            return None
        if current.is_promotional:
            raise CorporateIntegrityError("Promotional store products are changed through the promotional endpoints")
        return super().update(pk, replace(dto, base_store_product_id=None))

    def delete(self, pk: StoreProductPK) -> None:
        current = self.select_by_pk(pk)
        if current is None:
            return
        if current.is_promotional:
            raise CorporateIntegrityError("Promotional store products are deleted through the promotional endpoints")
        # Cascades to the promotional row, if any
        super().delete(pk)

    # -------------------------------------------------------------------------
    # Promotions
    # -------------------------------------------------------------------------

    def insert_promotional(self, base_pk: StoreProductPK, dto: PromotionalInsert) -> Optional[StoreProductPK]:
        """
        Start a promotion of `dto.quantity` units of the base store product.

        An exhausted promotion (quantity 0) is reused in place; a promotion
        that still has stock blocks a new one.
        """
        base = self.select_by_pk(base_pk)
        if base is None:
            return None
        if base.is_promotional:
            raise CorporateIntegrityError("A promotion cannot be based on another promotional store product")

        promo_dto = StoreProductInput(
            upc=base.upc,
            price=math.floor(base.price * self.discount_quotient),
            quantity=dto.quantity,
            base_store_product_id=base_pk,
        )
        existing = self._select_promotional_for(base.upc)
        if existing is not None:
            if existing.quantity != 0:
                raise CorporateIntegrityError("The current promotion still has stock left")
            pk = super().update(existing.store_product_id, promo_dto)
        else:
            pk = super().insert(promo_dto)

        # May go negative, in which case the quantity CHECK constraint fails
        self.update(base_pk, replace(base, quantity=base.quantity - dto.quantity))
        return pk

    def insert_promotional_and_return(
        self, base_pk: StoreProductPK, dto: PromotionalInsert
    ) -> Optional[StoreProductOutput]:
        pk = self.insert_promotional(base_pk, dto)
        return self.select_by_pk(pk) if pk is not None else None

    def patch_promotional_quantity(self, base_pk: StoreProductPK, dto: PromotionalPatch) -> Optional[StoreProductPK]:
        base = self.select_by_pk(base_pk)
        if base is None:
            return None
        promo = self._select_promotional_for(base.upc)
        if promo is None:
            return None

        delta = promo.quantity - dto.quantity
        pk = super().update(promo.store_product_id, replace(promo, quantity=dto.quantity))
        if dto.control_total_quantity:
            self.update(base_pk, replace(base, quantity=base.quantity + delta))
        return pk

    def patch_promotional_quantity_and_return(
        self, base_pk: StoreProductPK, dto: PromotionalPatch
    ) -> Optional[StoreProductOutput]:
        pk = self.patch_promotional_quantity(base_pk, dto)
        return self.select_by_pk(pk) if pk is not None else None

    def delete_promotional(self, base_pk: StoreProductPK) -> None:
        base = self.select_by_pk(base_pk)
        if base is None:
            return
        promo = self._select_promotional_for(base.upc)
        if promo is None:
            return
        super().delete(promo.store_product_id)
        super().update(base_pk, replace(base, quantity=base.quantity + promo.quantity))

    # -------------------------------------------------------------------------
    # Mappers
    # -------------------------------------------------------------------------

    def cast_to_output(self, row) -> StoreProductOutput:
        return StoreProductOutput(
            store_product_id=row["store_product_id"],
            base_store_product_id=row["base_store_product_id"],
            upc=row["upc"],
            price=row["price"],
            quantity=row["quantity"],
            product_name=row["product_name"],
            manufacturer=row["manufacturer"],
        )

    def cast_to_params(self, dto: StoreProductInput) -> list:
        return [dto.base_store_product_id, dto.upc, dto.price, dto.quantity]

    def _select_promotional_for(self, upc: ProductPK) -> Optional[StoreProductOutput]:
        return self.select_first([
            FilterParam(StoreProductFilter.UPC, upc),
            FilterParam(StoreProductFilter.IS_PROMOTIONAL, 1),
        ])
