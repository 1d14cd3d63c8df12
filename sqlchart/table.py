"""Query result rows reshaped into chart series and groups.

A result is a list of rows; the first row holds the column labels and the
first cell of every other row is the series label::

    MEASURE | JAN | FEB          groups = ["JAN", "FEB"]
    A       |  10 |  20    ->    series = [{"name": "A", "items": [10, 20]},
    B       |   7 |  22              {"name": "B", "items": [7, 22]}]
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field


class TableShapeError(ValueError):
    pass


class Series(BaseModel):
    name: str
    items: List[Optional[float]] = Field(default_factory=list)


def _to_python(value: Any) -> Any:
    if isinstance(value, (np.generic, np.ndarray)):
        return value.item()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _label(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass
class QueryTable:
    rows: List[List[Any]] = field(default_factory=list)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]], strict: bool = True) -> "QueryTable":
        converted = [[_to_python(cell) for cell in row] for row in rows]
        if strict and converted:
            width = len(converted[0])
            for index, row in enumerate(converted[1:], start=1):
                if len(row) != width:
                    raise TableShapeError(
                        f"Row {index} has {len(row)} cells, expected {width} like the header row"
                    )
        return cls(converted)

    @property
    def header(self) -> List[Any]:
        return self.rows[0] if self.rows else []

    def groups(self) -> List[str]:
        if len(self.header) < 2:
            return []
        return [_label(cell) for cell in self.header[1:]]

    def series(self) -> List[Series]:
        if len(self.rows) < 2:
            return []
        width = len(self.groups())
        result: List[Series] = []
        for row in self.rows[1:]:
            if not row:
                continue
            items = [_to_number(cell) for cell in row[1:]]
            # non-strict tables: pad or cut to the group count
            items = (items + [None] * width)[:width]
            result.append(Series(name=_label(row[0]), items=items))
        return result


def reshape(rows: Sequence[Sequence[Any]], strict: bool = True) -> Tuple[List[str], List[Series]]:
    table = QueryTable.from_rows(rows, strict=strict)
    return table.groups(), table.series()


__all__ = ["QueryTable", "Series", "TableShapeError", "reshape"]
