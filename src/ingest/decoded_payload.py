"""Decoded table containers.

A decoder returns either a single table or several named tables. Both
variants expose ``tables()`` so store writers iterate without type checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union

import pandas as pd


@dataclass(frozen=True)
class DecodedTable:
    """One decoded table and its variable label table.

    Attributes:
        name: Lower-cased table stem used for stored file names.
        data: Row data, one column per variable.
        labels: Variable metadata with ``name, label, type, width, format``.
    """

    name: str
    data: pd.DataFrame
    labels: pd.DataFrame


@dataclass(frozen=True)
class SinglePayload:
    """Decoder result holding exactly one table."""

    table: DecodedTable

    def tables(self) -> tuple[DecodedTable, ...]:
        return (self.table,)


@dataclass(frozen=True)
class MultiplePayload:
    """Decoder result holding several tables keyed by name."""

    tables_by_name: Mapping[str, DecodedTable]

    def tables(self) -> tuple[DecodedTable, ...]:
        return tuple(self.tables_by_name.values())


DecodedPayload = Union[SinglePayload, MultiplePayload]
