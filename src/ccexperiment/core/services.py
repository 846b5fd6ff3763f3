"""Core domain services for ccexperiment."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from ccexperiment.core.exceptions import (
    BatchNotFoundError,
    CCExperimentError,
    PreconditionViolatedError,
    SubmissionFailedError,
    TransportError,
)
from ccexperiment.core.job_description import build_job_description
from ccexperiment.core.models import (
    AgencyAccess,
    BatchSnapshot,
    ExperimentStatus,
    GpuRequirement,
    Input,
    Output,
)
from ccexperiment.core.watchdog import TimeoutWatchdog


if TYPE_CHECKING:
    from ccexperiment.config import AgencySettings
    from ccexperiment.core.ports import AgencyPort, SchedulerPort
    from ccexperiment.core.transfer import TransferEndpoint


logger = logging.getLogger(__name__)


class Experiment:
    """Submits one containerized experiment to a cc-agency and supervises it.

    The experiment owns an optional TransferEndpoint. The endpoint is started
    before submission and torn down exactly once, by whichever of a terminal
    poll, an explicit cancel or the timeout watchdog gets there first.
    """

    def __init__(
        self,
        access: AgencyAccess,
        base_command: str,
        image: str,
        ram: int,
        agency: AgencyPort,
        *,
        timeout: int = 0,
        scheduler: SchedulerPort | None = None,
        endpoint: TransferEndpoint | None = None,
    ) -> None:
        """Initialize an experiment.

        Args:
            access: Agency URL and credentials, also embedded in the job description.
            base_command: Command run inside the experiment container.
            image: Container image of the experiment.
            ram: Memory in MB required by the experiment.
            agency: Transport to the agency.
            timeout: Minutes after submission before the experiment is cancelled;
                0 disables the timeout.
            scheduler: Scheduler for the timeout. Defaults to a threading timer.
            endpoint: Optional transfer endpoint owned by this experiment.
        """
        self.access = access
        self.base_command = base_command
        self.image = image
        self.ram = ram
        self.timeout = timeout
        self.inputs: list[Input] = []
        self.outputs: list[Output] = []
        self.gpus: list[GpuRequirement] = []
        self.endpoint = endpoint

        self.status = ExperimentStatus.UNKNOWN
        self.remote_state: str | None = None
        self.experiment_id: str | None = None
        self.batch_id: str | None = None
        self.debug_info: Any = None
        self.job_description: dict[str, Any] | None = None

        self._agency = agency
        self._scheduler = scheduler
        self._watchdog: TimeoutWatchdog | None = None
        self._endpoint_released = False
        self._lock = threading.RLock()

    @classmethod
    def create(
        cls,
        access: AgencyAccess,
        base_command: str,
        image: str,
        ram: int,
        *,
        timeout: int = 0,
        request_timeout: float = 30.0,
    ) -> Experiment:
        """Create an Experiment wired to the HTTP agency client and threading timers.

        Args:
            access: Agency URL and credentials.
            base_command: Command run inside the experiment container.
            image: Container image of the experiment.
            ram: Memory in MB.
            timeout: Minutes before automatic cancellation; 0 disables it.
            request_timeout: Seconds before a single HTTP request is abandoned.
        """
        from ccexperiment.adapters.agency import RequestsAgencyClient
        from ccexperiment.adapters.scheduler import ThreadingTimerScheduler

        return cls(
            access,
            base_command,
            image,
            ram,
            RequestsAgencyClient(access, timeout=request_timeout),
            timeout=timeout,
            scheduler=ThreadingTimerScheduler(),
        )

    @classmethod
    def from_settings(
        cls,
        settings: AgencySettings,
        base_command: str,
        image: str,
        ram: int,
        *,
        timeout: int = 0,
    ) -> Experiment:
        """Like create(), but with the agency connection taken from ``settings``."""
        return cls.create(
            settings.access,
            base_command,
            image,
            ram,
            timeout=timeout,
            request_timeout=settings.request_timeout,
        )

    @classmethod
    def existing(
        cls,
        access: AgencyAccess,
        experiment_id: str,
        agency: AgencyPort,
        *,
        endpoint: TransferEndpoint | None = None,
    ) -> Experiment:
        """Rebuild an experiment that was submitted earlier, to poll or cancel it."""
        experiment = cls(access, "", "", 0, agency, endpoint=endpoint)
        experiment.experiment_id = experiment_id
        return experiment

    def __repr__(self) -> str:
        return (
            f"Experiment(experiment_id={self.experiment_id!r}, "
            f"status={self.status.value!r})"
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _ensure_editable(self) -> None:
        if self.experiment_id is not None:
            raise PreconditionViolatedError(
                "Experiment was already submitted and can no longer be changed"
            )
        self.job_description = None

    def add_input(self, input: Input) -> None:
        self._ensure_editable()
        self.inputs.append(input)

    def add_output(self, output: Output) -> None:
        self._ensure_editable()
        self.outputs.append(output)

    def add_gpu(self, vram_min: int, amount: int = 1) -> None:
        """Request ``amount`` GPUs with at least ``vram_min`` MB of VRAM each."""
        self._ensure_editable()
        self.gpus.extend(GpuRequirement(vram_min) for _ in range(amount))

    def attach_endpoint(self, endpoint: TransferEndpoint) -> None:
        """Give this experiment ownership of a transfer endpoint.

        Raises:
            PreconditionViolatedError: If the experiment was submitted or
                already owns an endpoint.
        """
        self._ensure_editable()
        if self.endpoint is not None:
            raise PreconditionViolatedError(
                "Experiment already owns a transfer endpoint on port "
                f"{self.endpoint.port}"
            )
        self.endpoint = endpoint
        self._endpoint_released = False

    def build_job_description(self) -> dict[str, Any]:
        """Build (or rebuild) the job description from the declared settings.

        Raises:
            JobDescriptionError: If the declared inputs or outputs are incomplete.
        """
        self.job_description = build_job_description(
            base_command=self.base_command,
            image=self.image,
            ram=self.ram,
            access=self.access,
            inputs=self.inputs,
            outputs=self.outputs,
            gpus=self.gpus,
        )
        return self.job_description

    def submit(self) -> str:
        """Start the transfer endpoint, if any, and submit the experiment.

        Returns:
            The experiment id assigned by the agency.

        Raises:
            PreconditionViolatedError: If already submitted, or the endpoint
                was already released.
            JobDescriptionError: If the job description cannot be built.
            StartFailedError: If the endpoint could not be started; nothing
                is submitted.
            SubmissionFailedError: If the agency request failed or returned
                no experiment id. The endpoint is torn down in that case.
        """
        with self._lock:
            if self.experiment_id is not None:
                raise PreconditionViolatedError(
                    f"Experiment {self.experiment_id} was already submitted"
                )
            if self._endpoint_released:
                raise PreconditionViolatedError(
                    "The transfer endpoint of this experiment was already released"
                )
            job_description = self.job_description or self.build_job_description()

            if self.endpoint is not None and not self.endpoint.is_running:
                self.endpoint.start()

            try:
                response = self._agency.submit(job_description)
            except TransportError as e:
                self._abort_submission()
                raise SubmissionFailedError(
                    f"Failed to submit experiment: {e}", cause=e
                ) from e

            experiment_id = None
            if isinstance(response, dict):
                experiment_id = response.get("experimentId")
            if not experiment_id:
                self._abort_submission()
                raise SubmissionFailedError(
                    "Experiment ID not returned in the response."
                )

            self.experiment_id = str(experiment_id)
            self.status = ExperimentStatus.SUBMITTED
            logger.info("Submitted experiment %s", self.experiment_id)

            if self.timeout > 0:
                self._arm_watchdog(self.timeout * 60)
            return self.experiment_id

    def _abort_submission(self) -> None:
        try:
            self._teardown_endpoint()
        except CCExperimentError as e:
            logger.error(
                "Could not tear down transfer endpoint after failed submission: %s", e
            )

    def resolve_batch(self) -> str:
        """Look up and cache the batch id belonging to this experiment.

        Raises:
            PreconditionViolatedError: If the experiment has no id yet.
            BatchNotFoundError: If no batch carries the experiment id.
            TransportError: If the agency could not be queried.
        """
        with self._lock:
            if self.batch_id is not None:
                return self.batch_id
            if self.experiment_id is None:
                raise PreconditionViolatedError("Experiment has not been submitted")
            for batch in self._agency.list_batches(self.experiment_id):
                if batch.get("experimentId") == self.experiment_id and batch.get("_id"):
                    self.batch_id = str(batch["_id"])
                    logger.debug(
                        "Experiment %s runs as batch %s", self.experiment_id, self.batch_id
                    )
                    return self.batch_id
            raise BatchNotFoundError(self.experiment_id)

    def _try_resolve_batch(self) -> bool:
        try:
            self.resolve_batch()
        except (BatchNotFoundError, PreconditionViolatedError, TransportError) as e:
            logger.debug("Batch of experiment %s not resolved: %s", self.experiment_id, e)
            return False
        return True

    def poll_status(self) -> ExperimentStatus:
        """Refresh the status from the agency.

        Returns the last known status unchanged when the batch cannot be
        resolved yet. Reaching a terminal status disarms the timeout and
        tears the transfer endpoint down.

        Raises:
            TransportError: If the batch could not be fetched.
            StopFailedError: If the endpoint teardown failed; the new status
                is recorded first.
        """
        with self._lock:
            if self.status.is_terminal:
                return self.status
            if self.batch_id is None and not self._try_resolve_batch():
                return self.status

            assert self.batch_id is not None
            snapshot = BatchSnapshot.from_response(self._agency.get_batch(self.batch_id))
            if snapshot.state is None:
                raise TransportError(
                    f"Batch {self.batch_id} response carries no state", url=self.access.url
                )
            self.remote_state = snapshot.state
            self.status = snapshot.status
            logger.debug("Experiment %s is %s", self.experiment_id, snapshot.state)

            if self.status is ExperimentStatus.FAILED:
                failure = snapshot.last_failure()
                if failure is not None:
                    self.debug_info = failure.debug_info

            if self.status.is_terminal:
                logger.info(
                    "Experiment %s finished with status %s",
                    self.experiment_id,
                    self.status.value,
                )
                self._disarm_watchdog()
                self._teardown_endpoint()
            return self.status

    def cancel(self) -> bool:
        """Cancel the experiment on the agency.

        Returns:
            True if the agency reports the batch as cancelled, False if it
            reports another state or the batch could not be resolved.

        Raises:
            TransportError: If the cancellation request failed.
            StopFailedError: If the endpoint teardown failed.
        """
        with self._lock:
            if self.status.is_terminal:
                return self.status is ExperimentStatus.CANCELLED
            if self.batch_id is None and not self._try_resolve_batch():
                return False

            self._disarm_watchdog()
            assert self.batch_id is not None
            snapshot = BatchSnapshot.from_response(self._agency.delete_batch(self.batch_id))
            cancelled = snapshot.status is ExperimentStatus.CANCELLED
            if cancelled:
                self.status = ExperimentStatus.CANCELLED
                self.remote_state = snapshot.state
                logger.info("Cancelled experiment %s", self.experiment_id)
            else:
                logger.warning(
                    "Agency reports experiment %s as %s after cancellation",
                    self.experiment_id,
                    snapshot.state,
                )
            self._teardown_endpoint()
            return cancelled

    def read_stream(self, stream: str) -> str:
        """Return the named output stream ("stdout" or "stderr") of the batch.

        Raises:
            BatchNotFoundError: If the batch cannot be resolved.
            TransportError: If the agency could not be queried.
        """
        batch_id = self.resolve_batch()
        return self._agency.get_batch_stream(batch_id, stream)

    def stdout(self) -> str:
        return self.read_stream("stdout")

    def stderr(self) -> str:
        return self.read_stream("stderr")

    def _arm_watchdog(self, delay: float) -> None:
        if self._watchdog is None:
            scheduler = self._scheduler
            if scheduler is None:
                from ccexperiment.adapters.scheduler import ThreadingTimerScheduler

                scheduler = self._scheduler = ThreadingTimerScheduler()
            self._watchdog = TimeoutWatchdog(scheduler, self._on_timeout)
        self._watchdog.arm(delay)

    def _disarm_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.disarm()

    def _on_timeout(self) -> None:
        logger.warning(
            "Experiment %s exceeded its timeout of %d minute(s), cancelling",
            self.experiment_id,
            self.timeout,
        )
        try:
            self.cancel()
        except CCExperimentError as e:
            logger.error("Automatic cancellation of %s failed: %s", self.experiment_id, e)

    def _teardown_endpoint(self) -> None:
        # Callers hold self._lock.
        if self.endpoint is None or self._endpoint_released:
            return
        self._endpoint_released = True
        if self.endpoint.is_running:
            self.endpoint.stop()
        else:
            self.endpoint.release_port()
