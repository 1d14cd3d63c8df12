from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Set, Tuple


CHART_TYPES = ("bar", "line", "combo", "area", "lineWithArea", "pie")

HELP_ENTRIES = {
    "chart": "chart - open the chart window (or bring it back) with the default chart page",
    "type": "chart type <bar|line|combo|area|lineWithArea|pie> - switch the chart type",
    "title": "chart title <text> - set the title shown above the chart",
    "data": "chart data SELECT <series>, <group_1>, ... <group_n> FROM <table> - chart a query result",
    "screenshot": "chart screenshot - save the current chart as ojchart_<epoch-millis>.png",
    "help": "chart help - open the sqlcl-chart README in the chart window",
    "curl": "curl <url> - load a web page in the chart window",
}

# Checked top to bottom; the bare "chart" prefix must come after its subcommands.
COMMAND_PREFIXES: List[Tuple[str, str]] = [
    ("chart type", "type"),
    ("chart data", "data"),
    ("chart title", "title"),
    ("chart screenshot", "screenshot"),
    ("chart help", "help"),
    ("chart", "show"),
    ("curl", "curl"),
]

_QUERY_KEYWORDS = ("select", "with")


@dataclass(frozen=True)
class ChartCommand:
    kind: str
    argument: str = ""
    raw: str = ""
    description: str = ""
    warning: str = ""


def _flush(buf: List[str], commands: List[str]) -> None:
    command = "".join(buf).strip()
    if command:
        commands.append(command)
    buf.clear()


def _is_free_text(buf: List[str]) -> bool:
    # a chart title is taken as typed, apostrophes included
    matched = match_prefix("".join(buf).strip())
    return matched is not None and matched[0] == "title"


def _scan(raw: str, literal: Set[int]) -> Tuple[List[str], Optional[int]]:
    commands: List[str] = []
    buf: List[str] = []
    quote: Optional[str] = None
    opened: Optional[int] = None
    for index, ch in enumerate(raw):
        if ch in {'"', "'"} and index not in literal:
            if quote is None:
                if not _is_free_text(buf):
                    quote, opened = ch, index
            elif quote == ch:
                # '' inside a literal closes and reopens, so the text is kept as typed
                quote = None
            buf.append(ch)
            continue
        if ch == ";" and quote is None:
            _flush(buf, commands)
            continue
        buf.append(ch)
    _flush(buf, commands)
    return commands, opened if quote is not None else None


def split_commands(raw: str) -> List[str]:
    """Split a terminal line on ``;`` outside SQL string literals.

    Backslashes are kept as typed. A quote that is never closed is treated
    as an ordinary character, so a stray apostrophe cannot swallow the rest
    of the line.
    """
    literal: Set[int] = set()
    while True:
        commands, unclosed = _scan(raw, literal)
        if unclosed is None:
            return commands
        literal.add(unclosed)


def match_prefix(line: str) -> Optional[Tuple[str, str]]:
    """Return ``(kind, argument)`` for the first prefix that matches ``line``.

    A prefix only matches on a word boundary, so ``charts`` or ``curling``
    are left to the host.
    """
    for prefix, kind in COMMAND_PREFIXES:
        if line == prefix:
            return kind, ""
        if line.startswith(prefix) and line[len(prefix)].isspace():
            return kind, line[len(prefix):].strip()
    return None


def parse_chart_command(raw: str) -> Optional[ChartCommand]:
    """Parse one terminal line into a :class:`ChartCommand`.

    Returns ``None`` when the line is not a chart command at all. Raises
    ``ValueError`` when it is one but its argument is unusable.
    """
    line = raw.strip()
    matched = match_prefix(line)
    if matched is None:
        return None
    kind, argument = matched

    if kind == "type":
        if not argument:
            raise ValueError("Missing chart type; expected one of: " + ", ".join(CHART_TYPES))
        if argument not in CHART_TYPES:
            raise ValueError(f"Unsupported chart type '{argument}'; expected one of: " + ", ".join(CHART_TYPES))
        return ChartCommand(kind, argument, line, f"Set chart type to {argument}")

    if kind == "data":
        statement = argument.rstrip(";").strip()
        first = statement.split(None, 1)[0].lower() if statement else ""
        if first not in _QUERY_KEYWORDS:
            # anything else starting with "chart" brings the window back
            return ChartCommand(
                "show", "", line, "Show chart window",
                warning="chart data expects a SELECT statement; showing the chart window",
            )
        return ChartCommand(kind, statement, line, "Chart query result")

    if kind == "title":
        return ChartCommand(kind, argument, line, f"Set chart title to '{argument}'")

    if kind in {"screenshot", "help", "show"}:
        if argument and kind == "show":
            return ChartCommand(
                kind, "", line, "Show chart window",
                warning=f"Unknown chart command '{line}'; showing the chart window",
            )
        if argument:
            raise ValueError(f"Unexpected arguments after 'chart {kind}'")
        description = {
            "screenshot": "Save chart screenshot",
            "help": "Show chart help",
            "show": "Show chart window",
        }[kind]
        return ChartCommand(kind, "", line, description)

    # curl: only the first token is the URL, like a shell would pass it
    if not argument:
        raise ValueError("Missing URL for curl")
    url = argument.split()[0]
    return ChartCommand(kind, url, line, f"Load {url}")


__all__ = [
    "CHART_TYPES",
    "COMMAND_PREFIXES",
    "HELP_ENTRIES",
    "ChartCommand",
    "match_prefix",
    "parse_chart_command",
    "split_commands",
]
