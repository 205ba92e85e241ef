"""
Shared test fixtures and configuration.

No external tool ever runs in these tests: the adapter registry is put
in mock mode with ``FakeHost``, a recording mock that also simulates
the filesystem effects of clone, build, unit writes and systemctl.
The platform API is a small Flask app served from a background thread.
"""

from __future__ import annotations

import socket
import threading
from dataclasses import dataclass
from pathlib import Path

import pytest
import yaml
from flask import Flask, request
from werkzeug.serving import make_server

from issuerctl.adapters.base import ExecutionContext
from issuerctl.adapters.mock import MockAdapter
from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.models.action import Receipt
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.models.settings import ApiSettings, Settings
from issuerctl.core.services.config_render import materialize


class FakeHost(MockAdapter):
    """MockAdapter that leaves the same traces on disk a real host would."""

    def __init__(self, source_subdir: str = "Go-issuer-node", revision: str = "abc1234"):
        super().__init__(adapter_name="fake-host")
        self.source_subdir = source_subdir
        self.active: set[str] = set()
        self.set_output("build:revision", revision)
        self.set_output("probe:version:go", "go version go1.22.5 linux/amd64")

    def execute(self, context: ExecutionContext) -> Receipt:
        if context.action.id not in self._responses:
            outcome = self._simulate(context)
            if outcome is not None:
                self._call_log.append(context)
                return outcome
        return super().execute(context)

    def _simulate(self, context: ExecutionContext) -> Receipt | None:
        action_id = context.action.id
        params = context.params

        if action_id == "workspace:clone":
            dest = Path(params["destination"])
            (dest / ".git").mkdir(parents=True, exist_ok=True)
            (dest / self.source_subdir).mkdir(parents=True, exist_ok=True)

        elif action_id.startswith("build:") and isinstance(params.get("command"), list):
            command = params["command"]
            if "-o" in command:
                Path(command[command.index("-o") + 1]).write_text("#!/bin/sh\n")

        elif params.get("operation") == "write":
            path = Path(params["path"])
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(params["content"])

        elif params.get("argv", [None])[0] == "systemctl":
            argv = params["argv"]
            unit = argv[-1].removesuffix(".service")
            if argv[1] in ("start", "enable"):
                self.active.add(unit)
            elif argv[1] == "stop":
                self.active.discard(unit)

        elif action_id.startswith("supervisor:is-active:"):
            unit = action_id.rsplit(":", 1)[1]
            if unit in self.active:
                return Receipt.success(
                    adapter=self.name, action_id=action_id, metadata={"return_code": 0}
                )
            return Receipt.failure(
                adapter=self.name,
                action_id=action_id,
                error="inactive",
                metadata={"return_code": 3},
            )

        return None


def free_port() -> int:
    """A port nothing listens on (connections are refused)."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for var in (
        "ISSUERCTL_CONFIG",
        "ISSUERCTL_HOME",
        "ISSUERCTL_LOG_LEVEL",
        "ISSUERCTL_LOG_FILE",
        "ISSUERCTL_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def home_root(tmp_path: Path) -> Path:
    return tmp_path / "issuer-home"


@pytest.fixture
def settings(tmp_path: Path, home_root: Path) -> Settings:
    """Settings rooted in tmp_path, with no pauses and an unreachable API."""
    return Settings(
        home=str(home_root),
        unit_dir=str(tmp_path / "units"),
        service_user="issuer",
        restart_pause=0,
        start_settle=0,
        api=ApiSettings(host="127.0.0.1", port=free_port(), timeout=2.0),
    )


@pytest.fixture
def rendered(settings: Settings) -> InstallationHome:
    """The ``settings`` home with its environment and resolver files written."""
    home = settings.installation_home()
    materialize(home, settings)
    return home


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def registry(host: FakeHost) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.set_mock_mode(True, host)
    return reg


@pytest.fixture
def swap_host(registry: AdapterRegistry):
    """Route ``registry`` to a new FakeHost, as if on a later invocation."""
    def swap(**kwargs) -> FakeHost:
        fresh = FakeHost(**kwargs)
        registry.set_mock_mode(True, fresh)
        return fresh
    return swap


def write_config(path: Path, settings: Settings) -> Path:
    path.write_text(yaml.safe_dump(settings.model_dump(mode="json")))
    return path


@pytest.fixture
def config_file(tmp_path: Path, settings: Settings) -> Path:
    """issuerctl.yml carrying the ``settings`` fixture."""
    return write_config(tmp_path / "issuerctl.yml", settings)


# ── Platform API stub ───────────────────────────────────────────────


@dataclass
class StubApi:
    url: str
    port: int
    app: Flask

    @property
    def identities(self) -> list[dict]:
        return self.app.config["IDENTITIES"]


def create_stub_app() -> Flask:
    app = Flask("issuer-stub")
    app.config["IDENTITIES"] = []

    @app.get("/status")
    def status():
        return {"status": "up"}

    @app.post("/v1/identities")
    def identities():
        auth = request.authorization
        if auth is None or (auth.username, auth.password) != ("admin", "admin123"):
            return {"message": "unauthorized"}, 401
        body = request.get_json()
        app.config["IDENTITIES"].append(body)
        meta = body["didMetadata"]
        return {
            "identifier": f"did:{meta['method']}:{meta['blockchain']}:{meta['network']}:2qStub",
            "state": {"status": "confirmed"},
        }, 201

    return app


@pytest.fixture
def issuer_api():
    app = create_stub_app()
    server = make_server("127.0.0.1", 0, app)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield StubApi(url=f"http://127.0.0.1:{server.server_port}", port=server.server_port, app=app)
    finally:
        server.shutdown()
        thread.join(timeout=5)


@pytest.fixture
def api_settings(settings: Settings, issuer_api: StubApi) -> Settings:
    """``settings`` pointed at the running stub API."""
    settings.api.port = issuer_api.port
    return settings


@pytest.fixture
def api_config_file(tmp_path: Path, api_settings: Settings) -> Path:
    """issuerctl.yml carrying ``api_settings``."""
    return write_config(tmp_path / "issuerctl-api.yml", api_settings)
