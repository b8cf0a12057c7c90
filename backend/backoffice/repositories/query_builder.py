# Overview: Assembles executable statements from a QueryStrategy.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from flask import current_app, has_app_context

from .query_strategy import QueryStrategy, QueryStrategyError, SelectStrategy


@dataclass(frozen=True)
class OrderParam:
    key: Enum
    asc: bool = True


class SqlQueryBuilder:
    """
    Deterministic statement assembly.

    Filter fragments are appended in exactly the order given; callers keep
    filter keys and their parameters in lockstep (see FilterParam in
    repositories.base), so placeholder order always matches parameter order.
    """

    def __init__(self, strategy: QueryStrategy):
        self.strategy = strategy

    def build_select(self, filter_keys: Iterable[Enum] = (), order: Optional[OrderParam] = None) -> str:
        return self._assemble(self.strategy.select, filter_keys, order)

    def build_insert(self) -> str:
        return self._finish(self.strategy.insert)

    def build_update(self) -> str:
        if self.strategy.update is None:
            raise QueryStrategyError("This strategy has no update statement")
        return self._finish(self.strategy.update)

    def build_delete(self) -> str:
        return self._finish(self.strategy.delete)

    def build_custom_query(self, key: Enum) -> str:
        return self._finish(self.strategy.query(key))

    def build_custom_filtered_select(
        self,
        key: Enum,
        filter_keys: Iterable[Enum] = (),
        order: Optional[OrderParam] = None,
    ) -> str:
        return self._assemble(self.strategy.filtered_select(key), filter_keys, order)

    def _assemble(self, select: SelectStrategy, filter_keys: Iterable[Enum], order: Optional[OrderParam]) -> str:
        parts = [select.base_clause]
        parts.extend(select.filter_clause(key) for key in filter_keys)
        if order is not None:
            parts.append(select.order_clause(order.key, order.asc))
        return self._finish("\n".join(parts))

    @staticmethod
    def _finish(statement: str) -> str:
        statement = statement.rstrip().rstrip(";") + ";"
        if has_app_context():
            current_app.logger.debug("Built statement:\n%s", statement)
        return statement
