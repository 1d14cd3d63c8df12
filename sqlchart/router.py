from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional

from sqlchart import config
from sqlchart.commands import ChartCommand, parse_chart_command
from sqlchart.query import QueryError, QueryRunner
from sqlchart.state import ChartType
from sqlchart.surface import ChartSurface, SurfaceNotReadyError
from sqlchart.table import Series, TableShapeError, reshape


class ChartCommandRouter:
    """Turns ``chart ...`` / ``curl ...`` lines into work for the chart surface.

    ``handle`` runs on the terminal thread. It never touches the session or
    the pages itself: it parses the line, runs any query, and submits a unit
    that applies the change on the surface's UI loop.
    """

    def __init__(
        self,
        surface: ChartSurface,
        runner: QueryRunner,
        help_url: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.surface = surface
        self.runner = runner
        self.help_url = help_url or config.help_url
        self._clock = clock
        self._handlers: Dict[str, Callable[[ChartCommand], None]] = {
            "type": self._chart_type,
            "data": self._chart_data,
            "title": self._chart_title,
            "screenshot": self._chart_screenshot,
            "help": self._chart_help,
            "show": self._chart_show,
            "curl": self._curl,
        }

    @property
    def session(self):
        return self.surface.session

    def handle(self, line: str) -> bool:
        """Return False when ``line`` is not a chart command, True otherwise."""
        try:
            command = parse_chart_command(line)
        except ValueError as exc:
            print(f"❌ {exc}")
            return True
        if command is None:
            return False
        config.debug(command.description)
        if command.warning:
            print(f"⚠️ {command.warning}")
        try:
            self.surface.launch()
            self._handlers[command.kind](command)
        except SurfaceNotReadyError:
            print("Waiting for toolkit to initialize.")
        except Exception as exc:
            print(f"[Chart] {exc}")
        return True

    # ----------------------------- handlers -----------------------------
    def _chart_type(self, command: ChartCommand) -> None:
        chart_type = ChartType(command.argument)

        async def apply() -> None:
            self.session.chart_type = chart_type
            await self.surface.show()
            await self.surface.push(["chartType"])

        self.surface.submit(apply)

    def _chart_data(self, command: ChartCommand) -> None:
        try:
            rows = self.runner.execute_rows(command.argument)
            groups, series = reshape(rows)
        except (QueryError, TableShapeError) as exc:
            print(f"❌ {exc}")
            return
        print(f"📊 {len(series)} series × {len(groups)} groups")
        self.surface.submit(self._set_data(groups, series))

    def _set_data(self, groups: List[str], series: List[Series]):
        async def apply() -> None:
            self.session.groups = groups
            self.session.series = series
            await self.surface.show()
            await self.surface.push(["chartGroups", "chartSeries"])

        return apply

    def _chart_title(self, command: ChartCommand) -> None:
        title = command.argument

        async def apply() -> None:
            self.session.title = title
            await self.surface.show()
            await self.surface.push(["chartTitle"])

        self.surface.submit(apply)

    def _chart_screenshot(self, command: ChartCommand) -> None:
        millis = int(self._clock() * 1000)

        async def apply() -> None:
            await self.surface.screenshot(millis)

        self.surface.submit(apply)

    def _chart_help(self, command: ChartCommand) -> None:
        url = self.help_url

        async def apply() -> None:
            self.session.current_url = url
            await self.surface.navigate(url, config.help_title)

        self.surface.submit(apply)

    def _chart_show(self, command: ChartCommand) -> None:
        async def apply() -> None:
            self.session.current_url = None
            await self.surface.show(reset=True)

        self.surface.submit(apply)

    def _curl(self, command: ChartCommand) -> None:
        url = command.argument

        async def apply() -> None:
            self.session.current_url = url
            await self.surface.navigate(url, url)

        self.surface.submit(apply)
