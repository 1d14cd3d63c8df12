from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from sqlchart import config
from sqlchart.table import Series


class ChartType(str, Enum):
    BAR = "bar"
    LINE = "line"
    COMBO = "combo"
    AREA = "area"
    LINE_WITH_AREA = "lineWithArea"
    PIE = "pie"


PAGE_GLOBALS = ("chartTitle", "chartType", "chartSeries", "chartGroups")


@dataclass
class ChartSession:
    """Everything the chart page shows, plus the window bookkeeping.

    One instance lives for the whole process. Only units of work running on
    the surface's UI loop mutate it.
    """

    title: str = field(default_factory=lambda: config.default_title)
    chart_type: ChartType = field(default_factory=lambda: ChartType(config.default_chart_type))
    series: List[Series] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    current_url: Optional[str] = None
    window_open: bool = False
    width: int = field(default_factory=lambda: config.width)
    height: int = field(default_factory=lambda: config.height)

    def page_globals(self, fields: Optional[Iterable[str]] = None) -> Dict[str, str]:
        values = {
            "chartTitle": self.title,
            "chartType": self.chart_type.value,
            "chartSeries": json.dumps([s.model_dump() for s in self.series]),
            "chartGroups": json.dumps(self.groups),
        }
        if fields is None:
            return values
        wanted = set(fields)
        unknown = wanted.difference(PAGE_GLOBALS)
        if unknown:
            raise KeyError(f"Unknown page globals: {sorted(unknown)}")
        return {key: value for key, value in values.items() if key in wanted}
