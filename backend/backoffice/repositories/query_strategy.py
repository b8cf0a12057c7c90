# Overview: Typed tables of SQL fragments that a repository is allowed to run.

"""
Query strategies.

A strategy is the complete, fully written-out list of statements one
repository may execute. Nothing is concatenated at runtime except whole
fragments picked by key:

    base_clause            always present, ends in WHERE TRUE
    + filter fragments     each starts with AND, any subset, any order
    + one order fragment   ASC and DESC versions both spelled out

Keys are Enum members declared next to each strategy, so a caller can only
name fragments that exist. Plain specialized statements (reports, short
listings, extra commands) live in `queries`; specialized statements that
accept the filter/order machinery live in `filtered_selects`.
"""
from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional


class QueryStrategyError(LookupError):
    """A repository asked for a fragment its strategy does not define."""


def sql(fragment: str) -> str:
    """
    Strip the indentation and the leading newline that triple-quoted
    fragments pick up from the surrounding code.
    """
    return textwrap.dedent(fragment).strip("\n")


@dataclass(frozen=True)
class Order:
    asc: str
    desc: str

    def clause(self, ascending: bool) -> str:
        return self.asc if ascending else self.desc


@dataclass(frozen=True)
class SelectStrategy:
    base_clause: str
    filters: Mapping[Enum, str] = field(default_factory=dict)
    orders: Mapping[Enum, Order] = field(default_factory=dict)

    def filter_clause(self, key: Enum) -> str:
        try:
            return self.filters[key]
        except KeyError:
            raise QueryStrategyError(f"Unknown filter: {key!r}") from None

    def order_clause(self, key: Enum, ascending: bool) -> str:
        try:
            return self.orders[key].clause(ascending)
        except KeyError:
            raise QueryStrategyError(f"Unknown order: {key!r}") from None


@dataclass(frozen=True)
class QueryStrategy:
    select: SelectStrategy
    insert: str
    delete: str
    # None for write-once entities (receipts)
    update: Optional[str] = None
    queries: Mapping[Enum, str] = field(default_factory=dict)
    filtered_selects: Mapping[Enum, SelectStrategy] = field(default_factory=dict)

    def query(self, key: Enum) -> str:
        try:
            return self.queries[key]
        except KeyError:
            raise QueryStrategyError(f"Unknown specialized query: {key!r}") from None

    def filtered_select(self, key: Enum) -> SelectStrategy:
        try:
            return self.filtered_selects[key]
        except KeyError:
            raise QueryStrategyError(f"Unknown filtered select: {key!r}") from None
