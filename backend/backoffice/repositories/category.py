from __future__ import annotations

from enum import Enum

from ..entities import CategoryInput, CategoryOutput, CategoryPK, Short
from .base import Repository
from .query_strategy import Order, QueryStrategy, SelectStrategy, sql


class CategoryFilter(Enum):
    PRIMARY_KEY = "primary_key"
    NAME = "category_name"


class CategoryOrder(Enum):
    NAME = "category_name"


class CategoryQuery(Enum):
    SHORT = "short"


CATEGORY_QUERY_STRATEGY = QueryStrategy(
    select=SelectStrategy(
        base_clause=sql("""
            SELECT category_id, category_name
            FROM category
            WHERE TRUE"""),
        filters={
            CategoryFilter.PRIMARY_KEY: sql("""
                AND category_id = ?"""),
            CategoryFilter.NAME: sql("""
                AND category_name = ?"""),
        },
        orders={
            CategoryOrder.NAME: Order(
                asc=sql("""
                    ORDER BY category_name ASC"""),
                desc=sql("""
                    ORDER BY category_name DESC"""),
            ),
        },
    ),
    insert=sql("""
        INSERT INTO category (category_name)
        VALUES (?)
        RETURNING category_id"""),
    update=sql("""
        UPDATE category
        SET category_name = ?
        WHERE category_id = ?
        RETURNING category_id"""),
    delete=sql("""
        DELETE FROM category
        WHERE category_id = ?"""),
    queries={
        CategoryQuery.SHORT: sql("""
            SELECT category_id, category_name
            FROM category
            ORDER BY category_name ASC"""),
    },
)


class CategoryRepository(Repository[CategoryPK, CategoryInput, CategoryOutput]):
    strategy = CATEGORY_QUERY_STRATEGY
    primary_key_filter = CategoryFilter.PRIMARY_KEY

    def all_in_short(self) -> list[Short]:
        rows = self._specialized_select(CategoryQuery.SHORT)
        return [Short(row["category_id"], row["category_name"]) for row in rows]

    def cast_to_output(self, row) -> CategoryOutput:
        return CategoryOutput(category_id=row["category_id"], category_name=row["category_name"])

    def cast_to_params(self, dto: CategoryInput) -> list:
        return [dto.category_name]
