# Overview: Generic CRUD engine shared by every entity repository.

"""
Generic repository.

Repository[PK, InputT, OutputT] binds one QueryStrategy to the current
SQLAlchemy session. Concrete repositories provide the strategy and two
mappers (row -> output DTO, input DTO -> ordered statement parameters);
everything else is shared.

Errors are never caught here. Constraint failures surface as
sqlalchemy.exc.IntegrityError, rule violations as CorporateIntegrityError,
and the request wrapper (decorators.transactional) decides what to do.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Iterable, Mapping, Optional, Sequence, TypeVar

from sqlalchemy.orm import Session

from .query_builder import OrderParam, SqlQueryBuilder
from .query_strategy import QueryStrategy

PK = TypeVar("PK")
InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class CorporateIntegrityError(ValueError):
    """Write rejected by a business rule that no column constraint expresses."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class FilterParam:
    """A filter key paired with the value bound to its placeholder."""
    key: Enum
    param: Any


@dataclass(frozen=True)
class Pagination:
    # limit=0 means "everything from offset on"
    limit: int = 0
    offset: int = 0

    def apply(self, rows: list) -> list:
        if self.limit > 0:
            return rows[self.offset:self.offset + self.limit]
        if self.offset > 0:
            return rows[self.offset:]
        return rows


@dataclass
class SelectResult(Generic[OutputT]):
    rows: list[OutputT] = field(default_factory=list)
    # Size of the full filtered result, before pagination
    total_count: int = 0


def split_filters(filters: Iterable[FilterParam]) -> tuple[list[Enum], list[Any]]:
    """Keys and parameters in the same order, so placeholders line up."""
    keys: list[Enum] = []
    params: list[Any] = []
    for f in filters:
        keys.append(f.key)
        params.append(f.param)
    return keys, params


class Repository(Generic[PK, InputT, OutputT]):
    strategy: QueryStrategy
    # Filter key used by select_by_pk; every strategy declares one
    primary_key_filter: Enum

    def __init__(self, session: Session):
        self.session = session
        self.query_builder = SqlQueryBuilder(self.strategy)

    # -------------------------------------------------------------------------
    # Mappers
    # -------------------------------------------------------------------------

    def cast_to_output(self, row: Mapping[str, Any]) -> OutputT:
        raise NotImplementedError

    def cast_to_params(self, dto: InputT) -> list[Any]:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def select(
        self,
        filters: Sequence[FilterParam] = (),
        order: Optional[OrderParam] = None,
        pagination: Pagination = Pagination(),
    ) -> SelectResult[OutputT]:
        """
        Run the filtered, sorted select and return one page of it together
        with the total number of matches.
        """
        keys, params = split_filters(filters)
        rows = self._fetch_all(self.query_builder.build_select(keys, order), params)
        return SelectResult(
            rows=[self.cast_to_output(row) for row in pagination.apply(rows)],
            total_count=len(rows),
        )

    def select_first(self, filters: Sequence[FilterParam] = ()) -> Optional[OutputT]:
        keys, params = split_filters(filters)
        row = self._fetch_first(self.query_builder.build_select(keys), params)
        return self.cast_to_output(row) if row is not None else None

    def select_by_pk(self, pk: PK) -> Optional[OutputT]:
        return self.select_first([FilterParam(self.primary_key_filter, pk)])

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, dto: InputT) -> PK:
        # Insert statements end in RETURNING <pk>, so generated keys are known
        # without a second lookup.
        row = self._fetch_first(self.query_builder.build_insert(), self.cast_to_params(dto))
        return self._first_value(row)

    def insert_and_return(self, dto: InputT) -> Optional[OutputT]:
        return self.select_by_pk(self.insert(dto))

    def update(self, pk: PK, dto: InputT) -> Optional[PK]:
        """Returns the (possibly changed) primary key, or None if nothing matched."""
        row = self._fetch_first(self.query_builder.build_update(), [*self.cast_to_params(dto), pk])
        return self._first_value(row)

    def update_and_return(self, pk: PK, dto: InputT) -> Optional[OutputT]:
        new_pk = self.update(pk, dto)
        if new_pk is None:
            return None
        return self.select_by_pk(new_pk)

    def delete(self, pk: PK) -> None:
        self._execute(self.query_builder.build_delete(), [pk])

    # -------------------------------------------------------------------------
    # Specialized statements; concrete repositories wrap these in typed methods
    # -------------------------------------------------------------------------

    def _specialized_select(self, key: Enum, params: Sequence[Any] = ()) -> list[dict]:
        return self._fetch_all(self.query_builder.build_custom_query(key), params)

    def _specialized_select_first(self, key: Enum, params: Sequence[Any] = ()) -> Optional[dict]:
        return self._fetch_first(self.query_builder.build_custom_query(key), params)

    def _specialized_command(self, key: Enum, params: Sequence[Any] = ()) -> None:
        self._execute(self.query_builder.build_custom_query(key), params)

    def _specialized_filtered_select(
        self,
        key: Enum,
        filters: Sequence[FilterParam] = (),
        order: Optional[OrderParam] = None,
        pagination: Pagination = Pagination(),
    ) -> SelectResult[dict]:
        keys, params = split_filters(filters)
        rows = self._fetch_all(self.query_builder.build_custom_filtered_select(key, keys, order), params)
        return SelectResult(rows=pagination.apply(rows), total_count=len(rows))

    def _specialized_filtered_select_first(self, key: Enum, filters: Sequence[FilterParam] = ()) -> Optional[dict]:
        keys, params = split_filters(filters)
        return self._fetch_first(self.query_builder.build_custom_filtered_select(key, keys), params)

    # -------------------------------------------------------------------------
    # Statement execution
    # -------------------------------------------------------------------------

    def _execute(self, statement: str, params: Sequence[Any]):
        # Strategies use positional "?" placeholders, so statements go to the
        # driver as-is rather than through sqlalchemy.text().
        return self.session.connection().exec_driver_sql(statement, tuple(params))

    def _fetch_all(self, statement: str, params: Sequence[Any]) -> list[dict]:
        return [dict(row) for row in self._execute(statement, params).mappings().all()]

    def _fetch_first(self, statement: str, params: Sequence[Any]) -> Optional[dict]:
        row = self._execute(statement, params).mappings().first()
        return dict(row) if row is not None else None

    @staticmethod
    def _first_value(row: Optional[dict]):
        if row is None:
            return None
        return next(iter(row.values()))
