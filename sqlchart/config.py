"""Process-wide settings for sqlchart.

Values come from the environment (and an optional ``.env`` file) once at
import time; the CLI overrides them by plain attribute assignment.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default) not in ("", "0", "false", "False")


database_url = os.getenv("SQLCHART_DATABASE_URL", "sqlite://")
host = os.getenv("SQLCHART_HOST", "127.0.0.1")
default_port = int(os.getenv("SQLCHART_PORT", "8765"))
open_browser = _flag("SQLCHART_OPEN_BROWSER", "1")
page_path = os.getenv("SQLCHART_PAGE", "")
screenshot_dir = os.getenv("SQLCHART_SCREENSHOT_DIR", ".")
startup_timeout = float(os.getenv("SQLCHART_STARTUP_TIMEOUT", "8.0"))
help_url = os.getenv(
    "SQLCHART_HELP_URL",
    "https://github.com/icodealot/sqlcl-chart/blob/master/README.md#sqlcl-chart",
)
default_chart_type = os.getenv("SQLCHART_CHART_TYPE", "bar")
default_title = "SQLcl JET Chart"
help_title = "SQLcl JET Chart Help"

# window size of the chart page; screenshots use the same canvas
width = 600
height = 450

SQLCHART_DEBUG = _flag("SQLCHART_DEBUG")


def debug(message: str) -> None:
    if SQLCHART_DEBUG:
        print(f"[Chart] {message}")
