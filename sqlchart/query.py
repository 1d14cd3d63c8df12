from __future__ import annotations

from typing import Any, List, Optional

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sqlchart import config


class QueryError(RuntimeError):
    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.sql = sql


class QueryRunner:
    """Runs statements for the shell and for ``chart data``.

    The engine is created on first use so that starting the shell never
    blocks on an unreachable database.
    """

    def __init__(self, url: Optional[str] = None, echo: bool = False) -> None:
        self.url = url or config.database_url
        self.echo = echo
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self.url, echo=self.echo)
            config.debug(f"engine created for {self._engine.url.render_as_string(hide_password=True)}")
        return self._engine

    def execute_rows(self, sql: str) -> List[List[Any]]:
        """Return the result as rows of cells, column labels first."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql))
                rows: List[List[Any]] = [list(result.keys())]
                rows.extend(list(row) for row in result)
        except SQLAlchemyError as exc:
            raise QueryError(f"Query failed: {exc}", sql) from exc
        return rows

    def execute_frame(self, sql: str) -> Optional[pd.DataFrame]:
        """Run an ordinary statement; row-returning results come back as a DataFrame."""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(sql))
                if not result.returns_rows:
                    return None
                return pd.DataFrame(result.fetchall(), columns=list(result.keys()))
        except SQLAlchemyError as exc:
            raise QueryError(f"Statement failed: {exc}", sql) from exc

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
