"""Unit tests for the process supervisor's start/stop and crash policy."""

import asyncio

import pytest

from hidock_trigger.core import status
from hidock_trigger.core.errors import BuildError, LaunchError
from hidock_trigger.core.events import EventBus, EventType
from hidock_trigger.supervisor.supervisor import ProcessSupervisor, SupervisorState
from tests.infrastructure.mocks.process_mocks import FakeProcessFactory, wait_until


class ManualClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FailingLocator:
    def __init__(self) -> None:
        self.calls = 0

    async def resolve(self):
        self.calls += 1
        raise BuildError("Build failed with exit code 1")


def count(bus: EventBus, event_type: EventType) -> int:
    return sum(1 for event in bus.history if event.type is event_type)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def supervisor(monitor_locator, fake_launcher, bus) -> ProcessSupervisor:
    return ProcessSupervisor(
        monitor_locator,
        launcher=fake_launcher,
        events=bus,
        selected_mic="Samson Q2U Microphone",
        restart_delay=0.01,
    )


class TestRequestStart:

    @pytest.mark.asyncio
    async def test_launches_with_selected_mic(self, supervisor, fake_launcher, bus):
        assert await supervisor.request_start()

        assert fake_launcher.commands == [
            ["/usr/local/bin/hidock-mic-trigger", "--mic", "Samson Q2U Microphone"]
        ]
        assert supervisor.is_running
        assert supervisor.state is SupervisorState.RUNNING
        assert supervisor.pid == fake_launcher.latest.pid
        assert bus.last().type is EventType.STARTED

    @pytest.mark.asyncio
    async def test_no_mic_argument_without_selection(self, monitor_locator, fake_launcher):
        supervisor = ProcessSupervisor(monitor_locator, launcher=fake_launcher)

        await supervisor.request_start()

        assert fake_launcher.commands == [["/usr/local/bin/hidock-mic-trigger"]]

    @pytest.mark.asyncio
    async def test_start_when_running_is_noop(self, supervisor, fake_launcher):
        await supervisor.request_start()
        assert await supervisor.request_start()

        assert len(fake_launcher.processes) == 1

    @pytest.mark.asyncio
    async def test_build_failure_is_terminal(self, fake_launcher, bus):
        locator = FailingLocator()
        supervisor = ProcessSupervisor(locator, launcher=fake_launcher, events=bus)

        assert await supervisor.request_start() is False

        event = bus.last()
        assert event.type is EventType.ERROR
        assert event.terminal
        assert "Build failed" in event.message
        assert locator.calls == 1
        assert fake_launcher.commands == []
        assert supervisor.state is SupervisorState.FAILED

    @pytest.mark.asyncio
    async def test_launch_failure_is_reported(self, supervisor, fake_launcher, bus):
        fake_launcher.fail_with = LaunchError("Failed to start hidock-mic-trigger: permission denied")

        assert await supervisor.request_start() is False

        assert bus.last().type is EventType.ERROR
        assert bus.last().terminal
        assert not supervisor.is_running

    @pytest.mark.asyncio
    async def test_status_lines_become_events(self, supervisor, fake_launcher, bus):
        await supervisor.request_start()

        fake_launcher.latest.emit(status.MIC_ACTIVE_LINE)
        assert bus.last().type is EventType.MIC_ACTIVE

        fake_launcher.latest.emit(status.holder_started_line(99))
        assert bus.last().type is EventType.MIC_ACTIVE

        fake_launcher.latest.emit(status.MIC_INACTIVE_LINE)
        assert bus.last().type is EventType.MIC_INACTIVE
        assert supervisor.last_status_line == status.MIC_INACTIVE_LINE


class TestRequestStop:

    @pytest.mark.asyncio
    async def test_stop_interrupts_and_waits(self, supervisor, fake_launcher, bus):
        await supervisor.request_start()
        child = fake_launcher.latest

        task = supervisor.request_stop()
        assert task is not None
        await task

        assert child.signals == ["SIGINT"]
        assert not supervisor.is_running
        assert supervisor.state is SupervisorState.STOPPED
        assert bus.last().type is EventType.STOPPED
        assert count(bus, EventType.CRASHED) == 0

    @pytest.mark.asyncio
    async def test_stop_when_idle_returns_none(self, supervisor):
        assert supervisor.request_stop() is None
        assert supervisor.state is SupervisorState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_escalates_to_terminate(self, monitor_locator, bus):
        launcher = FakeProcessFactory(exit_on_interrupt=None)
        supervisor = ProcessSupervisor(monitor_locator, launcher=launcher, events=bus, stop_timeout=0.01)
        await supervisor.request_start()

        await supervisor.stop()

        assert launcher.latest.signals == ["SIGINT", "SIGTERM"]
        assert supervisor.state is SupervisorState.STOPPED
        assert count(bus, EventType.CRASHED) == 0

    @pytest.mark.asyncio
    async def test_start_during_stop_runs_after_exit(self, monitor_locator, bus):
        launcher = FakeProcessFactory(exit_on_interrupt=None)
        supervisor = ProcessSupervisor(monitor_locator, launcher=launcher, events=bus, stop_timeout=0.5)
        await supervisor.request_start()
        first = launcher.latest

        supervisor.request_stop()
        start = asyncio.create_task(supervisor.request_start())
        await asyncio.sleep(0)
        assert not start.done()
        assert supervisor.state is SupervisorState.STOPPING

        first.finish(0)
        assert await asyncio.wait_for(start, timeout=1.0) is True

        assert supervisor.state is SupervisorState.RUNNING
        assert len(launcher.processes) == 2
        assert supervisor.pid == launcher.latest.pid
        assert supervisor.pid != first.pid
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_stop_while_start_waits_cancels_start(self, monitor_locator, bus):
        launcher = FakeProcessFactory(exit_on_interrupt=None)
        supervisor = ProcessSupervisor(monitor_locator, launcher=launcher, events=bus, stop_timeout=0.5)
        await supervisor.request_start()
        first = launcher.latest

        supervisor.request_stop()
        start = asyncio.create_task(supervisor.request_start())
        await asyncio.sleep(0)
        supervisor.request_stop()

        first.finish(0)
        assert await asyncio.wait_for(start, timeout=1.0) is False

        assert supervisor.state is SupervisorState.STOPPED
        assert len(launcher.processes) == 1

    @pytest.mark.asyncio
    async def test_clean_exit_is_not_a_crash(self, supervisor, fake_launcher, bus):
        await supervisor.request_start()

        fake_launcher.latest.finish(0)
        await wait_until(lambda: supervisor.state is SupervisorState.STOPPED)

        assert count(bus, EventType.CRASHED) == 0
        assert not supervisor.restart_pending
        assert len(fake_launcher.processes) == 1


class TestCrashPolicy:

    @pytest.mark.asyncio
    async def test_three_restarts_then_give_up(self, supervisor, fake_launcher, bus):
        await supervisor.request_start()

        for attempt in range(1, 4):
            fake_launcher.latest.crash(1)
            await wait_until(lambda: len(fake_launcher.processes) == attempt + 1)
            assert supervisor.crash_count == attempt

        fake_launcher.latest.crash(1)
        await wait_until(lambda: supervisor.state is SupervisorState.FAILED)
        await asyncio.sleep(0.05)

        assert len(fake_launcher.processes) == 4
        assert count(bus, EventType.RESTART_SCHEDULED) == 3
        assert count(bus, EventType.CRASHED) == 4
        gave_up = bus.last(EventType.GAVE_UP)
        assert gave_up is not None and gave_up.terminal
        assert not supervisor.restart_pending

    @pytest.mark.asyncio
    async def test_intentional_stop_resets_counter(self, supervisor, fake_launcher):
        await supervisor.request_start()
        for attempt in range(1, 3):
            fake_launcher.latest.crash(1)
            await wait_until(lambda: len(fake_launcher.processes) == attempt + 1)
        assert supervisor.crash_count == 2

        await supervisor.stop()
        assert supervisor.crash_count == 0

        await supervisor.request_start()
        fake_launcher.latest.crash(1)
        await wait_until(lambda: supervisor.restart_pending or supervisor.is_running)

        assert supervisor.crash_count == 1

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_restart(self, monitor_locator, fake_launcher, bus):
        supervisor = ProcessSupervisor(monitor_locator, launcher=fake_launcher, events=bus, restart_delay=10)
        await supervisor.request_start()

        fake_launcher.latest.crash(1)
        await wait_until(lambda: supervisor.restart_pending)
        assert supervisor.state is SupervisorState.RESTART_PENDING

        assert supervisor.request_stop() is None
        await asyncio.sleep(0.02)

        assert not supervisor.restart_pending
        assert supervisor.state is SupervisorState.STOPPED
        assert supervisor.crash_count == 0
        assert len(fake_launcher.processes) == 1

    @pytest.mark.asyncio
    async def test_long_run_resets_counter(self, monitor_locator, fake_launcher, bus):
        clock = ManualClock()
        supervisor = ProcessSupervisor(
            monitor_locator,
            launcher=fake_launcher,
            events=bus,
            restart_delay=0.01,
            liveness_window=10.0,
            clock=clock,
        )
        await supervisor.request_start()

        fake_launcher.latest.crash(1)
        await wait_until(lambda: len(fake_launcher.processes) == 2)
        assert supervisor.crash_count == 1

        clock.now += 30.0
        fake_launcher.latest.crash(1)
        await wait_until(lambda: len(fake_launcher.processes) == 3)

        assert supervisor.crash_count == 1

    @pytest.mark.asyncio
    async def test_manual_start_after_give_up(self, monitor_locator, fake_launcher, bus):
        supervisor = ProcessSupervisor(
            monitor_locator, launcher=fake_launcher, events=bus, max_retries=0
        )
        await supervisor.request_start()
        fake_launcher.latest.crash(2)
        await wait_until(lambda: supervisor.state is SupervisorState.FAILED)
        assert bus.last(EventType.GAVE_UP) is not None

        assert await supervisor.request_start()
        assert supervisor.crash_count == 0
        assert supervisor.is_running


class TestSwitchDevice:

    @pytest.mark.asyncio
    async def test_switch_restarts_running_monitor(self, supervisor, fake_launcher, bus):
        await supervisor.request_start()
        first = fake_launcher.latest

        assert await supervisor.switch_device("HiDock H1")

        assert first.signals == ["SIGINT"]
        assert len(fake_launcher.processes) == 2
        assert fake_launcher.commands[-1][-2:] == ["--mic", "HiDock H1"]
        assert supervisor.selected_mic == "HiDock H1"
        assert supervisor.crash_count == 0
        assert count(bus, EventType.CRASHED) == 0
        switched = bus.last(EventType.DEVICE_SWITCHED)
        assert switched.payload == {"previous": "Samson Q2U Microphone", "mic": "HiDock H1"}

    @pytest.mark.asyncio
    async def test_switch_when_stopped_only_updates_selection(self, supervisor, fake_launcher):
        assert await supervisor.switch_device("HiDock H1") is False

        assert supervisor.selected_mic == "HiDock H1"
        assert fake_launcher.commands == []

    @pytest.mark.asyncio
    async def test_switch_to_same_device_is_noop(self, supervisor, fake_launcher):
        await supervisor.request_start()

        assert await supervisor.switch_device("Samson Q2U Microphone")
        assert len(fake_launcher.processes) == 1

    @pytest.mark.asyncio
    async def test_switch_to_none_stops(self, supervisor, fake_launcher):
        await supervisor.request_start()

        assert await supervisor.switch_device(None) is False

        assert not supervisor.is_running
        assert supervisor.selected_mic is None
        assert len(fake_launcher.processes) == 1


class TestIntrospection:

    @pytest.mark.asyncio
    async def test_snapshot_and_uptime(self, monitor_locator, fake_launcher):
        clock = ManualClock()
        supervisor = ProcessSupervisor(monitor_locator, launcher=fake_launcher, clock=clock, selected_mic="A")
        assert supervisor.uptime is None

        await supervisor.request_start()
        clock.now = 42.0
        snapshot = supervisor.snapshot()

        assert snapshot.state is SupervisorState.RUNNING
        assert snapshot.pid == fake_launcher.latest.pid
        assert snapshot.selected_mic == "A"
        assert snapshot.uptime == pytest.approx(42.0)
        assert supervisor.started_at == 0.0

    @pytest.mark.asyncio
    async def test_shutdown_stops_child(self, supervisor, fake_launcher):
        await supervisor.request_start()

        await supervisor.shutdown()

        assert fake_launcher.latest.returncode is not None
        assert supervisor.state is SupervisorState.STOPPED
