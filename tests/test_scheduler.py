"""
Tests for reaper.services.scheduler.Scheduler.
"""

import logging
import threading
from unittest.mock import MagicMock

import pytest

from reaper.config.store import parse
from reaper.domain.broker.base import BrokerUnavailableError, TerminationFailedError
from reaper.services.scheduler import CycleReport, Scheduler, SchedulerState


def _make_scheduler(path, broker_clients, **kwargs):
    kwargs.setdefault("interval", 0)
    kwargs.setdefault("on_fatal", MagicMock())
    return Scheduler(path, client_factory=broker_clients, **kwargs)


# ---------------------------------------------------------------------------
# run_cycle
# ---------------------------------------------------------------------------

class TestRunCycle:

    def test_end_to_end_single_match(self, apps_ini, broker_clients, sample_session, caplog):
        """One disconnected Notepad session on DDC1 → one logoff, logged with app and user."""
        path = apps_ini("[DDC1]\napp1 = Notepad.exe\n")
        session = sample_session(handle="7", user="Alice", apps=["\\Apps\\Notepad.exe"])
        broker_clients("DDC1").fetch_disconnected.return_value = [session]

        scheduler = _make_scheduler(path, broker_clients)
        with caplog.at_level(logging.INFO, logger="session-reaper"):
            report = scheduler.run_cycle()

        broker_clients.clients["DDC1"].terminate.assert_called_once_with(session)
        assert report.logoffs_requested == 1
        assert report.sessions_seen == 1
        assert any("Notepad.exe" in r.getMessage() and "Alice" in r.getMessage() for r in caplog.records)

    def test_one_logoff_for_multiple_matches(self, broker_clients, sample_session):
        """Two allow-list entries matching the same session → exactly one terminate."""
        config = parse("[DDC1]\nnotes = Notepad.exe\ncalc = Calculator.exe\n")
        session = sample_session(apps=["\\Apps\\Notepad.exe", "\\Apps\\Calculator.exe"])
        broker_clients("DDC1").fetch_disconnected.return_value = [session]

        report = _make_scheduler("unused.ini", broker_clients).run_cycle(config)

        broker_clients.clients["DDC1"].terminate.assert_called_once_with(session)
        assert report.sessions_matched == 1
        assert report.logoffs_requested == 1

    def test_non_matching_sessions_untouched(self, broker_clients, sample_session):
        config = parse("[DDC1]\ncalc = Calculator.exe\n")
        broker_clients("DDC1").fetch_disconnected.return_value = [
            sample_session(handle="1", apps=["\\Apps\\Notepad.exe"]),
            sample_session(handle="2", apps=["\\Apps\\Calculator.exe"]),
        ]

        report = _make_scheduler("unused.ini", broker_clients).run_cycle(config)

        client = broker_clients.clients["DDC1"]
        assert client.terminate.call_count == 1
        assert client.terminate.call_args[0][0].session_handle == "2"
        assert report.sessions_seen == 2

    def test_allow_list_is_per_broker(self, broker_clients, sample_session):
        """An app allow-listed on DDC1 is not reaped on DDC2."""
        config = parse("[DDC1]\nnotes = Notepad.exe\n[DDC2]\ncalc = Calculator.exe\n")
        broker_clients("DDC2").fetch_disconnected.return_value = [
            sample_session(apps=["\\Apps\\Notepad.exe"]),
        ]

        report = _make_scheduler("unused.ini", broker_clients).run_cycle(config)

        broker_clients.clients["DDC2"].terminate.assert_not_called()
        assert report.brokers_checked == 2

    def test_brokers_visited_in_file_order(self, broker_clients):
        config = parse("[b-broker]\n[a-broker]\n[c-broker]\n")
        visited = []

        def _factory(broker):
            visited.append(broker)
            return broker_clients(broker)

        Scheduler("unused.ini", client_factory=_factory).run_cycle(config)
        assert visited == ["b-broker", "a-broker", "c-broker"]

    def test_no_section_bucket_skipped(self, broker_clients):
        config = parse("orphan = Notepad.exe\n[DDC1]\n")
        report = _make_scheduler("unused.ini", broker_clients).run_cycle(config)

        assert list(broker_clients.clients) == ["DDC1"]

    def test_orphan_entries_warned(self, broker_clients, caplog):
        config = parse("orphan = Notepad.exe\n[DDC1]\n")
        with caplog.at_level(logging.WARNING, logger="session-reaper"):
            _make_scheduler("unused.ini", broker_clients).run_cycle(config)
        assert any("outside any" in r.getMessage() for r in caplog.records)

    def test_leading_comment_not_warned(self, broker_clients, caplog):
        """A comment header above the first section is not an orphan entry."""
        config = parse("; header comment\n[DDC1]\n")
        with caplog.at_level(logging.WARNING, logger="session-reaper"):
            report = _make_scheduler("unused.ini", broker_clients).run_cycle(config)
        assert not any("outside any" in r.getMessage() for r in caplog.records)
        assert report.brokers_checked == 1

    def test_comment_keys_not_targets(self, broker_clients, sample_session):
        """A ';' line is never treated as an application name."""
        config = parse("[DDC1]\n; Notepad.exe\n")
        broker_clients("DDC1").fetch_disconnected.return_value = [
            sample_session(apps=["; Notepad.exe"]),
        ]

        _make_scheduler("unused.ini", broker_clients).run_cycle(config)
        broker_clients.clients["DDC1"].terminate.assert_not_called()

    def test_loads_config_when_not_given(self, apps_ini, broker_clients):
        path = apps_ini("[DDC1]\n")
        scheduler = _make_scheduler(path, broker_clients)
        report = scheduler.run_cycle()
        assert report.brokers_checked == 1
        assert scheduler.cycles == 1


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestFailures:

    def test_broker_failure_isolated(self, broker_clients, sample_session):
        """DDC1 down → DDC2 is still swept."""
        config = parse("[DDC1]\nnotes = Notepad.exe\n[DDC2]\nnotes = Notepad.exe\n")
        broker_clients("DDC1").fetch_disconnected.side_effect = BrokerUnavailableError("DDC1", "timeout")
        session = sample_session()
        broker_clients("DDC2").fetch_disconnected.return_value = [session]

        report = _make_scheduler("unused.ini", broker_clients).run_cycle(config)

        assert report.failed_brokers == ["DDC1"]
        broker_clients.clients["DDC2"].terminate.assert_called_once_with(session)

    def test_broker_failure_aborts_when_not_isolated(self, broker_clients):
        config = parse("[DDC1]\n[DDC2]\n")
        broker_clients("DDC1").fetch_disconnected.side_effect = BrokerUnavailableError("DDC1", "timeout")

        scheduler = _make_scheduler("unused.ini", broker_clients, isolate_broker_failures=False)
        with pytest.raises(BrokerUnavailableError):
            scheduler.run_cycle(config)

        assert "DDC2" not in broker_clients.clients

    def test_termination_failure_does_not_stop_cycle(self, broker_clients, sample_session):
        config = parse("[DDC1]\nnotes = Notepad.exe\n")
        first, second = sample_session(handle="1"), sample_session(handle="2")
        client = broker_clients("DDC1")
        client.fetch_disconnected.return_value = [first, second]
        client.terminate.side_effect = [TerminationFailedError("DDC1", "1", "HTTP 500"), None]

        report = _make_scheduler("unused.ini", broker_clients).run_cycle(config)

        assert client.terminate.call_count == 2
        assert report.logoff_failures == 1
        assert report.logoffs_requested == 2


# ---------------------------------------------------------------------------
# run loop
# ---------------------------------------------------------------------------

class TestRunLoop:

    def test_missing_config_is_fatal(self, tmp_path, broker_clients):
        """Nonexistent apps.ini → exit status 1 before any broker contact."""
        on_fatal = MagicMock()
        scheduler = _make_scheduler(tmp_path / "missing.ini", broker_clients, on_fatal=on_fatal)

        with pytest.raises(SystemExit) as exc_info:
            scheduler.run()

        assert exc_info.value.code == 1
        assert scheduler.state == SchedulerState.FATAL
        assert broker_clients.clients == {}
        on_fatal.assert_called_once()
        assert "missing.ini" in on_fatal.call_args[0][0]

    def test_config_deleted_between_cycles_is_fatal(self, apps_ini, broker_clients):
        path = apps_ini("[DDC1]\n")

        def _delete_after_fetch():
            path.unlink()
            return []

        broker_clients("DDC1").fetch_disconnected.side_effect = _delete_after_fetch
        scheduler = _make_scheduler(path, broker_clients)

        with pytest.raises(SystemExit):
            scheduler.run()
        assert scheduler.cycles == 1

    def test_stop_ends_loop(self, apps_ini, broker_clients):
        path = apps_ini("[DDC1]\n")
        scheduler = _make_scheduler(path, broker_clients, interval=60)

        def _stop_during_cycle():
            scheduler.stop()
            return []

        broker_clients("DDC1").fetch_disconnected.side_effect = _stop_during_cycle
        scheduler.run()

        assert scheduler.state == SchedulerState.STOPPED
        assert scheduler.cycles == 1
        assert scheduler.running is False

    def test_config_reloaded_every_cycle(self, apps_ini, broker_clients, sample_session):
        """Edits to apps.ini apply on the next cycle without restart."""
        path = apps_ini("[DDC1]\n")
        session = sample_session()
        calls = []

        scheduler = _make_scheduler(path, broker_clients)

        def _fetch():
            calls.append(1)
            if len(calls) == 1:
                path.write_text("[DDC1]\nnotes = Notepad.exe\n", encoding="utf-8")
            else:
                scheduler.stop()
            return [session]

        broker_clients("DDC1").fetch_disconnected.side_effect = _fetch
        scheduler.run()

        broker_clients.clients["DDC1"].terminate.assert_called_once_with(session)

    def test_cycle_error_does_not_stop_loop(self, apps_ini, broker_clients):
        path = apps_ini("[DDC1]\n")
        scheduler = _make_scheduler(path, broker_clients, isolate_broker_failures=False)
        attempts = []

        def _fetch():
            attempts.append(1)
            if len(attempts) == 1:
                raise BrokerUnavailableError("DDC1", "down")
            scheduler.stop()
            return []

        broker_clients("DDC1").fetch_disconnected.side_effect = _fetch
        scheduler.run()

        assert len(attempts) == 2

    def test_stop_interrupts_sleep(self, apps_ini, broker_clients):
        path = apps_ini("[DDC1]\n")
        scheduler = _make_scheduler(path, broker_clients, interval=30)
        thread = threading.Thread(target=scheduler.run, daemon=True)
        thread.start()

        for _ in range(200):
            if scheduler.state == SchedulerState.SLEEPING:
                break
            threading.Event().wait(0.01)

        scheduler.stop()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert scheduler.state == SchedulerState.STOPPED


class TestCycleReport:

    def test_defaults(self):
        report = CycleReport()
        assert report.logoffs_requested == 0
        assert report.failed_brokers == []
