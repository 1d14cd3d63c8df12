import json
import socket

import pytest
from fastapi.testclient import TestClient

from sqlchart.state import ChartSession
from sqlchart.surface import ChartSurface, SurfaceNotReadyError
from sqlchart.table import Series


@pytest.fixture
def surface(tmp_path):
    session = ChartSession(title="Sales", groups=["JAN"], series=[Series(name="A", items=[1])])
    return ChartSurface(session, open_browser=False, screenshot_dir=str(tmp_path), startup_timeout=0.05)


def test_submit_before_launch_is_refused(surface):
    with pytest.raises(SurfaceNotReadyError):
        surface.submit(lambda: None)


def test_chart_page_is_served(surface):
    with TestClient(surface.app) as client:
        response = client.get("/")
    assert response.status_code == 200
    assert "chartApp.update()" in response.text


def test_missing_page_is_404(tmp_path):
    surface = ChartSurface(ChartSession(), page_path=str(tmp_path / "nope.html"))
    with TestClient(surface.app) as client:
        assert client.get("/").status_code == 404


def test_state_endpoint(surface):
    with TestClient(surface.app) as client:
        payload = client.get("/state").json()
    assert payload["chartTitle"] == "Sales"
    assert json.loads(payload["chartGroups"]) == ["JAN"]
    assert payload["windowOpen"] is False


def test_page_receives_full_state_then_updates(surface):
    with TestClient(surface.app) as client:
        with client.websocket_connect("/ws") as ws:
            first = ws.receive_json()
            assert first["op"] == "state"
            assert set(first) == {"op", "chartTitle", "chartType", "chartSeries", "chartGroups"}
            assert surface.session.window_open is True

            async def retitle():
                surface.session.title = "Revenue"
                await surface.push(["chartTitle"])

            surface.submit(retitle)
            assert ws.receive_json() == {"op": "state", "chartTitle": "Revenue"}
            assert surface.join(timeout=5)


def test_navigate_sends_load_to_open_pages(surface):
    with TestClient(surface.app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()

            async def go():
                await surface.navigate("https://example.com/", "Example")

            surface.submit(go)
            assert ws.receive_json() == {"op": "load", "url": "https://example.com/", "title": "Example"}


def test_units_queued_before_startup_run_in_order(surface, capsys):
    surface._start_server = lambda: None
    surface.launch()

    def retitle(title):
        async def apply():
            surface.session.title = title

        return apply

    surface.submit(retitle("X"))
    surface.submit(retitle("Y"))
    assert "Waiting for toolkit to initialize." in capsys.readouterr().out
    with TestClient(surface.app):
        assert surface.join(timeout=5)
        assert surface.session.title == "Y"


def test_failing_unit_does_not_stop_the_queue(surface, capsys):
    ran = []

    async def broken():
        raise RuntimeError("boom")

    async def fine():
        ran.append(True)

    with TestClient(surface.app):
        surface.submit(broken)
        surface.submit(fine)
        assert surface.join(timeout=5)
    assert ran == [True]
    assert "[Chart] boom" in capsys.readouterr().out


def test_show_opens_one_window_while_the_page_loads(surface, monkeypatch):
    opened = []
    monkeypatch.setattr("sqlchart.surface.webbrowser.open", lambda url: opened.append(url) or True)
    surface.open_browser = True
    surface.startup_timeout = 30

    async def show():
        await surface.show()

    with TestClient(surface.app):
        surface.submit(show)
        surface.submit(show)
        assert surface.join(timeout=5)
    assert opened == [surface.page_url]


def test_screenshot_writes_png(surface, tmp_path, capsys):
    async def shoot():
        await surface.screenshot(123)

    with TestClient(surface.app):
        surface.submit(shoot)
        assert surface.join(timeout=10)
    assert (tmp_path / "ojchart_123.png").exists()
    assert "📸 Chart saved to" in capsys.readouterr().out


def test_port_in_use_is_reported_and_units_wait(tmp_path, capsys):
    ran = []
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]
        surface = ChartSurface(ChartSession(), host="127.0.0.1", port=port, open_browser=False,
                               screenshot_dir=str(tmp_path), startup_timeout=10)
        try:
            surface.launch()
            surface._thread.join(10)

            async def retitle():
                ran.append(True)

            surface.submit(retitle)
        finally:
            surface.stop()
    out = capsys.readouterr().out
    assert f"could not listen on port {port}" in out
    assert "chart page at" not in out
    assert not surface.is_ready
    assert ran == []
