"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
fakes for every core port so tests can drive time and I/O deterministically.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pytest

from ccexperiment.config import TransferSettings
from ccexperiment.core.exceptions import ProcessExecutionError, TransportError
from ccexperiment.core.models import AgencyAccess
from ccexperiment.core.port_pool import PortPool
from ccexperiment.core.process_runner import ExternalProcessRunner
from ccexperiment.core.services import Experiment
from ccexperiment.core.transfer import TransferEndpoint


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, ports, and services")
    config.addinivalue_line("markers", "adapters: Agency, process and scheduler adapters")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line(
        "markers", "tra: Test Responsibility Anchor (TRA) - namespace.Anchor format"
    )
    config.addinivalue_line(
        "markers",
        "tier: Test tier for CI job separation (0=instant, 1=fast, 2=standard, 3=slow, 4=manual)",
    )


AGENCY_URL = "http://agency.test:8080/"


class FakeAgency:
    """In-memory AgencyPort recording every call.

    ``batch_states`` is consumed one entry per get_batch call; the last
    entry repeats. Names in ``failing`` raise TransportError.
    """

    def __init__(self, experiment_id: str = "exp-1", batch_id: str = "batch-1") -> None:
        self.submit_response: Any = {"experimentId": experiment_id}
        self.batches: list[dict[str, Any]] = [
            {"_id": "other-batch", "experimentId": "someone-else"},
            {"_id": batch_id, "experimentId": experiment_id},
        ]
        self.batch_responses: list[dict[str, Any]] = [{"state": "processing", "history": []}]
        self.delete_response: dict[str, Any] = {"state": "cancelled"}
        self.streams: dict[str, str] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[Any, ...]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.failing:
            raise TransportError(f"{name} failed", url=AGENCY_URL)

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def set_states(self, *states: str) -> None:
        self.batch_responses = [{"state": s, "history": []} for s in states]

    def submit(self, job_description: dict[str, Any]) -> Any:
        self._record("submit", job_description)
        return self.submit_response

    def list_batches(self, experiment_id: str) -> list[dict[str, Any]]:
        self._record("list_batches", experiment_id)
        return self.batches

    def get_batch(self, batch_id: str) -> dict[str, Any]:
        self._record("get_batch", batch_id)
        if len(self.batch_responses) > 1:
            return self.batch_responses.pop(0)
        return self.batch_responses[0]

    def delete_batch(self, batch_id: str) -> dict[str, Any]:
        self._record("delete_batch", batch_id)
        return self.delete_response

    def get_batch_stream(self, batch_id: str, stream: str) -> str:
        self._record("get_batch_stream", batch_id, stream)
        return self.streams.get(stream, "")


class FakeExecutor:
    """CommandExecutorPort that records docker commands instead of running them.

    ``fail_times[action]`` makes the next N invocations of ``docker <action>``
    fail; ``always_fail`` makes them fail forever.
    """

    def __init__(self, container_id: str = "c0ffee0123456789abcdef") -> None:
        self.container_id = container_id
        self.commands: list[list[str]] = []
        self.fail_times: dict[str, int] = {}
        self.always_fail: set[str] = set()

    def execute(self, command: Sequence[str]) -> str:
        self.commands.append(list(command))
        action = command[1] if len(command) > 1 else command[0]
        if action in self.always_fail or self.fail_times.get(action, 0) > 0:
            if self.fail_times.get(action, 0) > 0:
                self.fail_times[action] -= 1
            raise ProcessExecutionError(command, 1, "simulated failure")
        if action == "run":
            return self.container_id + "\n"
        return command[-1] + "\n"

    @property
    def actions(self) -> list[str]:
        return [command[1] for command in self.commands]


class ManualTask:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """SchedulerPort whose callbacks only run when the test says so."""

    def __init__(self) -> None:
        self.tasks: list[ManualTask] = []

    def schedule(self, delay: float, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(delay, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled and not t.fired]

    def fire_pending(self) -> None:
        for task in self.pending:
            task.fired = True
            task.callback()


class FakeClock:
    """Monotonic clock advanced only by its own sleep()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_agency() -> FakeAgency:
    return FakeAgency()


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runner(fake_executor: FakeExecutor) -> ExternalProcessRunner:
    return ExternalProcessRunner(fake_executor, sleep=lambda _seconds: None)


@pytest.fixture
def pool(clock: FakeClock) -> PortPool:
    return PortPool(5000, 5001, sleep=clock.sleep, clock=clock)


@pytest.fixture
def transfer_settings() -> TransferSettings:
    return TransferSettings(
        start_retry_delay=0,
        stop_retry_delay=0,
        port_poll_interval=1,
        port_max_wait=3,
    )


@pytest.fixture
def access() -> AgencyAccess:
    return AgencyAccess(url=AGENCY_URL, username="agency_user", password="agency_password")


@pytest.fixture
def make_endpoint(
    pool: PortPool, runner: ExternalProcessRunner, transfer_settings: TransferSettings
) -> Callable[..., TransferEndpoint]:
    """Factory for endpoints on the shared pool, with deterministic credentials."""

    def factory(shared_directory: str = "/srv/shared") -> TransferEndpoint:
        credentials = iter(["user0123456789ab", "pass0123456789ab"])
        return TransferEndpoint(
            shared_directory,
            pool,
            runner,
            transfer_settings,
            credential_factory=lambda: next(credentials),
        )

    return factory


@pytest.fixture
def make_experiment(
    access: AgencyAccess, fake_agency: FakeAgency, scheduler: ManualScheduler
) -> Callable[..., Experiment]:
    """Factory for experiments on the fake agency with one HTTP input."""

    def factory(
        timeout: int = 0, endpoint: TransferEndpoint | None = None
    ) -> Experiment:
        from ccexperiment.core.models import HTTPConnector, Input

        experiment = Experiment(
            access,
            "python3",
            "example/python:3",
            256,
            fake_agency,
            timeout=timeout,
            scheduler=scheduler,
            endpoint=endpoint,
        )
        experiment.add_input(
            Input("script", "File", 0, HTTPConnector("https://files.test/run.py"))
        )
        return experiment

    return factory
