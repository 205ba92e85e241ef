"""
Tests for the lifecycle use cases — status, start, stop, restart, logs.
"""

from itertools import combinations

import pytest

from issuerctl.core.persistence.audit import AuditWriter
from issuerctl.core.services import supervisor as supervisor_module
from issuerctl.core.services.config_render import materialize
from issuerctl.core.services.units import UNIT_NAMES
from issuerctl.core.use_cases.lifecycle import (
    api_client,
    get_status,
    restart_services,
    start_services,
    stop_services,
    stream_logs,
)

SUBSETS = [set(c) for n in range(len(UNIT_NAMES) + 1) for c in combinations(UNIT_NAMES, n)]


class TestStatus:
    @pytest.mark.parametrize("active", SUBSETS, ids=lambda s: "+".join(sorted(s)) or "none")
    def test_reports_exact_active_subset(self, settings, registry, host, active):
        host.active = set(active)
        result = get_status(settings, registry)
        assert set(result.active_units) == active
        assert list(result.units) == UNIT_NAMES

    def test_api_unreachable(self, settings, registry):
        result = get_status(settings, registry)
        assert not result.api_reachable
        assert result.api_error
        assert result.health.get("api").status == "unhealthy"

    def test_api_reachable(self, api_settings, registry, host):
        host.active = set(UNIT_NAMES)
        result = get_status(api_settings, registry)
        assert result.api_reachable
        assert result.api_url.endswith("/status")
        assert result.health.status == "healthy"

    def test_to_dict(self, settings, registry):
        data = get_status(settings, registry).to_dict()
        assert set(data) == {"units", "api", "health"}
        assert data["units"]["issuer-platform"] is False

    def test_client_prefers_env_file(self, settings):
        rendered = settings.api.url
        materialize(settings.installation_home(), settings)
        settings.api.port = 1
        assert api_client(settings).base_url == rendered


class TestStartStop:
    def test_start_in_order(self, settings, registry, host, rendered):
        result = start_services(settings, registry)
        assert result.ok
        assert result.units == UNIT_NAMES
        assert host.action_ids == [f"supervisor:start:{n}" for n in UNIT_NAMES]
        assert host.active == set(UNIT_NAMES)

    def test_stop_in_order(self, settings, registry, host):
        host.active = set(UNIT_NAMES)
        result = stop_services(settings, registry)
        assert result.ok
        assert host.action_ids == [f"supervisor:stop:{n}" for n in UNIT_NAMES]
        assert host.active == set()

    def test_partial_failure_attempts_every_unit(self, settings, registry, host, rendered):
        host.set_failure("supervisor:start:issuer-notifications", error="exec format error")
        result = start_services(settings, registry)

        assert not result.ok
        assert result.units == ["issuer-platform", "issuer-publisher"]
        assert result.failed == {"issuer-notifications": "exec format error"}
        assert result.errors == ["issuer-notifications: exec format error"]
        assert "supervisor:start:issuer-publisher" in host.action_ids

    def test_audit_written_when_home_exists(self, settings, registry, host):
        home = settings.installation_home()
        home.ensure()
        host.set_failure("supervisor:stop:issuer-platform")
        stop_services(settings, registry)

        entry = AuditWriter(home.audit_file).read_all()[-1]
        assert entry.operation_type == "stop"
        assert entry.status == "partial"
        assert entry.units == ["issuer-notifications", "issuer-publisher"]

    def test_no_audit_without_home(self, settings, registry):
        stop_services(settings, registry)
        assert not settings.installation_home().root.exists()


class TestEnvironmentGuard:
    def test_start_refused_without_env_file(self, settings, registry, host):
        result = start_services(settings, registry)

        assert not result.ok
        assert result.units == []
        assert set(result.failed) == set(UNIT_NAMES)
        assert "Environment file not found" in result.failed["issuer-platform"]
        assert host.call_count == 0

    def test_start_refused_with_truncated_env_file(self, settings, registry, host, rendered):
        rendered.env_file.write_text("ISSUER_SERVER_URL=\n")

        result = start_services(settings, registry)

        assert not result.ok
        error = result.failed["issuer-notifications"]
        assert "ISSUER_DATABASE_URL" in error
        assert "ISSUER_SERVER_URL," not in error
        assert host.action_ids == []
        assert host.active == set()

    def test_restart_refused_leaves_units_running(self, settings, registry, host, rendered):
        rendered.env_file.unlink()
        host.active = set(UNIT_NAMES)

        result = restart_services(settings, registry, sleep=lambda _s: pytest.fail("should not pause"))

        assert not result.ok
        assert result.operation == "restart"
        assert host.action_ids == []
        assert host.active == set(UNIT_NAMES)

    def test_refusal_is_audited(self, settings, registry, rendered):
        rendered.env_file.write_text("# emptied\n")
        start_services(settings, registry)

        entry = AuditWriter(rendered.audit_file).read_all()[-1]
        assert entry.operation_type == "start"
        assert entry.status == "failed"
        assert entry.units == []


@pytest.mark.usefixtures("rendered")
class TestRestart:
    def test_stop_pause_start(self, settings, registry, host):
        events = []
        host.active = set(UNIT_NAMES)

        def sleep(seconds):
            events.append(("sleep", seconds, set(host.active)))

        result = restart_services(settings, registry, pause=2.5, sleep=sleep)

        assert result.ok
        assert result.operation == "restart"
        assert events == [("sleep", 2.5, set())]
        ids = host.action_ids
        assert ids[:3] == [f"supervisor:stop:{n}" for n in UNIT_NAMES]
        assert ids[3:] == [f"supervisor:start:{n}" for n in UNIT_NAMES]
        assert host.active == set(UNIT_NAMES)

    def test_uses_configured_pause(self, settings, registry):
        settings.restart_pause = 0.75
        pauses = []
        restart_services(settings, registry, sleep=pauses.append)
        assert pauses == [0.75]

    def test_failures_are_labelled(self, settings, registry, host):
        host.set_failure("supervisor:stop:issuer-publisher", error="timeout")
        host.set_failure("supervisor:start:issuer-platform", error="bad binary")
        result = restart_services(settings, registry, sleep=lambda _s: None)
        assert result.failed == {
            "issuer-publisher": "stop: timeout",
            "issuer-platform": "start: bad binary",
        }


class TestLogs:
    def test_streams_default_unit(self, settings, registry, monkeypatch):
        calls = []

        def fake_stream(argv):
            calls.append(argv)
            yield "Started issuer-platform"
            yield "listening on :3001"

        monkeypatch.setattr(supervisor_module, "stream_command", fake_stream)
        assert list(stream_logs(settings, registry)) == ["Started issuer-platform", "listening on :3001"]
        assert calls == [["journalctl", "-u", "issuer-platform.service", "-f"]]

    def test_alias(self, settings, registry, monkeypatch):
        calls = []

        def fake_stream(argv):
            calls.append(argv)
            return iter(())

        monkeypatch.setattr(supervisor_module, "stream_command", fake_stream)
        list(stream_logs(settings, registry, "publisher"))
        assert calls[0][2] == "issuer-publisher.service"

    def test_unknown_unit_raises_before_streaming(self, settings, registry, monkeypatch):
        monkeypatch.setattr(
            supervisor_module, "stream_command",
            lambda argv: pytest.fail("should not stream"),
        )
        with pytest.raises(ValueError, match="Unknown unit"):
            stream_logs(settings, registry, "postgres")
