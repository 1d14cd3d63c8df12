"""SQL shell add-on that charts query results with Oracle JET in a browser window."""

from .commands import (
    CHART_TYPES,
    HELP_ENTRIES,
    ChartCommand,
    parse_chart_command,
    split_commands,
)
from .state import ChartSession, ChartType
from .table import QueryTable, Series, TableShapeError, reshape

__version__ = "0.1.0"

__all__ = [
    "CHART_TYPES",
    "HELP_ENTRIES",
    "ChartCommand",
    "ChartSession",
    "ChartType",
    "QueryTable",
    "Series",
    "TableShapeError",
    "parse_chart_command",
    "reshape",
    "split_commands",
]
