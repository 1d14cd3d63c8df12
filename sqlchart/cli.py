"""sqlchart shell: a small SQL prompt with Oracle JET chart commands.

Every line is split on ``;`` and each statement is offered to the registered
command listeners first (the chart router is one); statements nobody claims
run as plain SQL and print as a table.
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Iterable, List, Optional

try:  # Optional readline support for interactive editing
    import readline  # type: ignore
except ImportError:  # pragma: no cover - Windows fallback
    try:
        import pyreadline3 as readline  # type: ignore
    except ImportError:  # pragma: no cover - readline unavailable
        readline = None  # type: ignore

import pandas as pd

from sqlchart import config
from sqlchart.commands import HELP_ENTRIES, split_commands
from sqlchart.query import QueryError, QueryRunner
from sqlchart.router import ChartCommandRouter
from sqlchart.state import ChartSession
from sqlchart.surface import ChartSurface

EXIT_SUCCESS = 0
EXIT_USAGE = 2
EXIT_SQL = 3

Listener = Callable[[str], bool]


class ChartShell:
    prompt = "SQL> "

    def __init__(self, runner: QueryRunner, listeners: Optional[Iterable[Listener]] = None) -> None:
        self.runner = runner
        self.listeners: List[Listener] = list(listeners or [])
        self._readline = readline
        if self._readline:
            self._configure_readline()

    def add_listener(self, listener: Listener) -> None:
        self.listeners.append(listener)

    def execute(self, command: str) -> int:
        for listener in self.listeners:
            if listener(command):
                return EXIT_SUCCESS
        return self.run_sql(command)

    def run_sql(self, sql: str) -> int:
        try:
            frame = self.runner.execute_frame(sql)
        except QueryError as exc:
            print(f"❌ {exc}")
            return EXIT_SQL
        render_frame(frame)
        return EXIT_SUCCESS

    def run_line(self, line: str) -> int:
        exit_code = EXIT_SUCCESS
        for command in split_commands(line):
            if command.lower() == "help" or command.lower().startswith("help "):
                render_chart_help(command[4:].strip() or None)
                continue
            code = self.execute(command)
            if code != EXIT_SUCCESS:
                exit_code = code
        return exit_code

    def run_repl(self) -> None:
        print("🟡 sqlchart shell. Type SQL, 'chart ...' commands or 'help'. Type 'exit' to quit.")
        while True:
            try:
                line = input(self.prompt)
            except EOFError:
                break
            except KeyboardInterrupt:
                print()
                break
            if not line.strip():
                continue
            if self._readline:
                try:
                    self._readline.add_history(line)
                except Exception:  # pragma: no cover - readline quirk
                    pass
            if line.strip().lower() in {"exit", "quit", ":q"}:
                break
            exit_code = self.run_line(line)
            if exit_code != EXIT_SUCCESS:
                print(f"(exit code {exit_code})")

    def _configure_readline(self) -> None:
        try:
            self._readline.parse_and_bind("set editing-mode emacs")
            self._readline.parse_and_bind("tab: complete")
        except Exception:  # pragma: no cover - readline/pyreadline differences
            pass


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def render_frame(frame: Optional[pd.DataFrame], limit: int = 50) -> None:
    if frame is None:
        print("✅ Statement executed.")
        return
    if frame.empty:
        print("(no rows)")
        return
    print(frame.head(limit).to_string(index=False))
    if len(frame) > limit:
        print(f"… ({len(frame) - limit} more rows)")
    print(f"({len(frame)} rows)")


def render_chart_help(topic: Optional[str]) -> None:
    if topic:
        entry = HELP_ENTRIES.get(topic.lower())
        if entry:
            print(entry)
        else:
            print(f"❓ Unknown chart command '{topic}'.")
            print("   Available: " + ", ".join(sorted(HELP_ENTRIES.keys())))
        return
    print("Available commands:")
    for key in HELP_ENTRIES:
        print(f"  - {HELP_ENTRIES[key]}")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SQL shell with Oracle JET chart commands")
    parser.add_argument("command", nargs="*", help="Optional statement(s) to run, separated by ';'")
    parser.add_argument("--db", default=config.database_url, help="SQLAlchemy database URL (default: %(default)s)")
    parser.add_argument("--host", default=config.host, help="Interface for the chart page server")
    parser.add_argument("--port", type=int, default=config.default_port, help="Port for the chart page server")
    parser.add_argument("--no-browser", action="store_true", help="Print the chart page URL instead of opening a browser")
    parser.add_argument("--page", help="Serve this HTML file as the chart page")
    parser.add_argument("--screenshot-dir", help="Directory for chart screenshots (default: current directory)")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (1024 < args.port < 65535):
        parser.error("Port number must be between 1024 and 65535")

    config.database_url = args.db
    config.host = args.host
    config.default_port = args.port
    if args.no_browser:
        config.open_browser = False
    if args.page:
        config.page_path = args.page
    if args.screenshot_dir:
        config.screenshot_dir = args.screenshot_dir

    runner = QueryRunner(config.database_url)
    surface = ChartSurface(ChartSession())
    router = ChartCommandRouter(surface, runner)
    shell = ChartShell(runner, [router.handle])

    exit_code = EXIT_SUCCESS
    try:
        if args.command:
            exit_code = shell.run_line(" ".join(args.command))
        else:
            shell.run_repl()
    except KeyboardInterrupt:
        exit_code = EXIT_SUCCESS
    finally:
        if surface.is_ready and not surface.join(timeout=config.startup_timeout):
            print("[Chart] chart updates still queued at exit")
        surface.stop()
        runner.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
