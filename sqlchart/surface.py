"""Chart page server: the rendering surface behind the ``chart`` commands.

A FastAPI app is served by uvicorn on one background thread. That thread's
event loop is the UI thread: it owns the connected chart pages and is the
only place where the session is mutated. Other threads hand over work with
:meth:`ChartSurface.submit`, which queues an ``async`` callable; a single
consumer task runs the queued units one at a time, in submission order.

Pages talk to the server over ``/ws``:

- server -> page ``{"op": "state", "chartTitle": ..., ...}`` sets the page
  globals that are present and calls ``chartApp.update()``
- server -> page ``{"op": "load", "url": ..., "title": ...}`` navigates away
- server -> page ``{"op": "reset"}`` reloads the chart page
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
import time
import traceback
import webbrowser
from collections import deque
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, Literal, Optional, Set

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
from starlette.websockets import WebSocketDisconnect

from sqlchart import config
from sqlchart.render import save_screenshot
from sqlchart.state import ChartSession

DEFAULT_PAGE = Path(__file__).resolve().parent / "static" / "oj-chart.html"
WAITING_MESSAGE = "Waiting for toolkit to initialize."

Unit = Callable[[], Awaitable[None]]


class SurfaceNotReadyError(RuntimeError):
    pass


class StateMessage(BaseModel):
    op: Literal["state"] = "state"
    chartTitle: Optional[str] = None
    chartType: Optional[str] = None
    chartSeries: Optional[str] = None
    chartGroups: Optional[str] = None


class LoadMessage(BaseModel):
    op: Literal["load"] = "load"
    url: str
    title: Optional[str] = None


class ResetMessage(BaseModel):
    op: Literal["reset"] = "reset"


class ChartSurface:
    def __init__(
        self,
        session: ChartSession,
        host: Optional[str] = None,
        port: Optional[int] = None,
        open_browser: Optional[bool] = None,
        page_path: Optional[str] = None,
        screenshot_dir: Optional[str] = None,
        startup_timeout: Optional[float] = None,
    ) -> None:
        self.session = session
        self.host = host or config.host
        self.port = port or config.default_port
        self.open_browser = config.open_browser if open_browser is None else open_browser
        self.page_path = Path(page_path) if page_path else (Path(config.page_path) if config.page_path else DEFAULT_PAGE)
        self.screenshot_dir = screenshot_dir or config.screenshot_dir
        self.startup_timeout = config.startup_timeout if startup_timeout is None else startup_timeout

        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._pending: Deque[Unit] = deque()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task[Any]] = None
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._launched = False
        self._clients: Set[WebSocket] = set()
        self._opened_at: Optional[float] = None
        self.app = self._build_app()

    @property
    def page_url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    # ----------------------------- app -----------------------------
    def _build_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            self._attach(asyncio.get_running_loop())
            try:
                yield
            finally:
                self._detach()

        app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

        @app.get("/", response_class=HTMLResponse)
        async def chart_page() -> HTMLResponse:
            try:
                html = self.page_path.read_text(encoding="utf-8")
            except OSError as exc:
                raise HTTPException(status_code=404, detail=f"Chart page not found: {exc}") from exc
            return HTMLResponse(html)

        @app.get("/state")
        async def chart_state() -> JSONResponse:
            payload = self.session.page_globals()
            payload["windowOpen"] = self.session.window_open
            payload["currentUrl"] = self.session.current_url
            return JSONResponse(payload)

        @app.websocket("/ws")
        async def page_socket(websocket: WebSocket) -> None:
            await websocket.accept()
            self._clients.add(websocket)
            self._opened_at = None
            self.session.window_open = True
            config.debug(f"page connected ({len(self._clients)} open)")
            try:
                await websocket.send_json(self._state_message())
                while True:
                    text = await websocket.receive_text()
                    config.debug(f"page says {text[:200]}")
            except WebSocketDisconnect:
                pass
            finally:
                self._clients.discard(websocket)
                if not self._clients:
                    self.session.window_open = False
                config.debug(f"page disconnected ({len(self._clients)} open)")

        return app

    # ----------------------------- UI loop -----------------------------
    def _attach(self, loop: asyncio.AbstractEventLoop) -> None:
        with self._lock:
            self._loop = loop
            self._queue = asyncio.Queue()
            while self._pending:
                self._queue.put_nowait(self._pending.popleft())
            self._consumer = loop.create_task(self._consume(self._queue))

    def _detach(self) -> None:
        with self._lock:
            self._ready.clear()
            loop, self._loop = self._loop, None
            if self._consumer is not None and loop is not None and not loop.is_closed():
                self._consumer.cancel()
            self._consumer = None
            if self._queue is not None:
                # units that never ran wait for the next launch
                while not self._queue.empty():
                    self._pending.append(self._queue.get_nowait())
                self._queue = None
            if self._pending:
                config.debug(f"{len(self._pending)} chart updates kept for the next launch")

    async def _listening(self) -> None:
        # the lifespan starts before uvicorn binds its socket
        server = self._server
        while server is not None and not server.started:
            await asyncio.sleep(0.05)

    async def _consume(self, queue: asyncio.Queue) -> None:
        await self._listening()
        self._ready.set()
        config.debug(f"chart page server ready at {self.page_url}")
        while True:
            unit = await queue.get()
            try:
                await unit()
            except Exception as exc:
                print(f"[Chart] {exc}")
                if config.SQLCHART_DEBUG:
                    traceback.print_exc()
            finally:
                queue.task_done()

    def submit(self, unit: Unit) -> None:
        """Queue ``unit`` for the UI loop without waiting for it to run.

        Units submitted before the loop is up are kept and run, in order,
        once it is.
        """
        if not self._launched and self._loop is None:
            raise SurfaceNotReadyError("Chart window has not been launched")
        with self._lock:
            loop, queue = self._loop, self._queue
            if loop is None or queue is None or loop.is_closed():
                self._pending.append(unit)
                print(WAITING_MESSAGE)
                return
            loop.call_soon_threadsafe(queue.put_nowait, unit)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued unit has run. Returns False on timeout."""
        with self._lock:
            loop, queue = self._loop, self._queue
        if loop is None or queue is None:
            return not self._pending
        future = asyncio.run_coroutine_threadsafe(queue.join(), loop)
        try:
            future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            return False
        return True

    # ----------------------------- lifecycle -----------------------------
    def launch(self) -> bool:
        """Start the page server thread unless it is running. Returns True if started now."""
        if self._thread is not None and self._thread.is_alive():
            return False
        self._launched = True
        self._start_server()
        deadline = time.monotonic() + self.startup_timeout
        while not self._ready.wait(0.05):
            thread = self._thread
            if thread is None or not thread.is_alive() or time.monotonic() >= deadline:
                print(WAITING_MESSAGE)
                break
        return True

    def _start_server(self) -> None:
        server_config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="debug" if config.SQLCHART_DEBUG else "warning",
            ws="websockets",
            lifespan="on",
        )
        self._server = uvicorn.Server(server_config)
        self._thread = threading.Thread(target=self._serve, args=(self._server,), name="sqlchart-ui", daemon=True)
        self._thread.start()

    def _serve(self, server: uvicorn.Server) -> None:
        try:
            server.run()
        except SystemExit as exc:
            # uvicorn exits when it cannot bind, e.g. the port is taken
            config.debug(f"uvicorn exited with status {exc.code}")
        if not server.started:
            print(f"[Chart] chart page server could not listen on port {self.port}; is it already in use?")
            self._detach()

    def stop(self, timeout: float = 5.0) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout)
        self._server = None
        self._thread = None
        self._launched = False

    # ----------------------------- UI operations -----------------------------
    # Everything below runs on the UI loop, from inside a submitted unit.
    def _state_message(self, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        return StateMessage(**self.session.page_globals(fields)).model_dump(exclude_none=True)

    async def _broadcast(self, message: Dict[str, Any]) -> int:
        sent = 0
        for websocket in list(self._clients):
            try:
                await websocket.send_json(message)
                sent += 1
            except Exception as exc:
                print(f"[Chart] dropping chart page connection: {exc}")
                self._clients.discard(websocket)
        if not self._clients:
            self.session.window_open = False
        return sent

    async def push(self, fields: Optional[Iterable[str]] = None) -> int:
        """Send page globals (all, or just ``fields``) and have the page redraw."""
        return await self._broadcast(self._state_message(fields))

    async def open_window(self, url: str) -> None:
        self._opened_at = time.monotonic()
        if not self.open_browser:
            print(f"[Chart] chart page at {url}")
            return
        opened = await asyncio.to_thread(webbrowser.open, url)
        if not opened:
            print(f"[Chart] Could not open a browser; visit {url}")

    def _opening(self) -> bool:
        # a window was just requested and its page has not connected yet
        return self._opened_at is not None and time.monotonic() - self._opened_at < self.startup_timeout

    async def show(self, reset: bool = False) -> None:
        """Make sure a chart page is visible; ``reset`` reloads pages already open."""
        if self._clients:
            if reset:
                await self._broadcast(ResetMessage().model_dump())
            return
        if self._opening():
            return
        await self.open_window(self.page_url)

    async def navigate(self, url: str, title: Optional[str] = None) -> None:
        if self._clients:
            await self._broadcast(LoadMessage(url=url, title=title or url).model_dump())
            return
        await self.open_window(url)

    async def screenshot(self, millis: int) -> Path:
        path, size = await asyncio.to_thread(save_screenshot, self.session, self.screenshot_dir, millis)
        print(f"📸 Chart saved to {path} ({size} bytes)")
        return path
