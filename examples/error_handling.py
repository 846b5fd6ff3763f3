"""Error handling patterns with recovery hints.

Every library error derives from CCExperimentError and most carry a
recovery_hint with actionable guidance.
"""

from ccexperiment import (
    AgencyAccess,
    BatchNotFoundError,
    CCExperimentError,
    Experiment,
    ExperimentStatus,
    ResourceExhaustedError,
    StartFailedError,
    StopFailedError,
    SubmissionFailedError,
    TransferEndpoint,
    TransportError,
)


# Pattern 1: A full port pool is not fatal; wait for another experiment instead
def lease_port_or_skip(endpoint: TransferEndpoint) -> int | None:
    try:
        return endpoint.acquire_port()
    except ResourceExhaustedError as e:
        print(f"{e}\nHint: {e.recovery_hint}")
        return None


# Pattern 2: Distinguish endpoint problems from agency problems on submit
def submit(experiment: Experiment) -> str | None:
    try:
        return experiment.submit()
    except StartFailedError as e:
        # Nothing was submitted and the port is still leased; submit() may be retried
        print(f"SSH endpoint did not start: {e}\nHint: {e.recovery_hint}")
    except SubmissionFailedError as e:
        # The endpoint has already been torn down
        print(f"Agency rejected the experiment: {e}")
    return None


# Pattern 3: Polling tolerates a flaky network
def poll_once(experiment: Experiment) -> ExperimentStatus:
    try:
        return experiment.poll_status()
    except TransportError as e:
        print(f"Poll failed, keeping {experiment.status.value}: {e.recovery_hint}")
        return experiment.status
    except StopFailedError as e:
        # The status is recorded; only the container cleanup needs attention
        print(f"Finished, but cleanup failed.\nHint: {e.recovery_hint}")
        return experiment.status


# Pattern 4: Catch everything from the library in one place
def print_logs(access: AgencyAccess, experiment_id: str) -> None:
    from ccexperiment import RequestsAgencyClient

    experiment = Experiment.existing(access, experiment_id, RequestsAgencyClient(access))
    try:
        print(experiment.stdout())
    except BatchNotFoundError as e:
        print(e.recovery_hint)
    except CCExperimentError as e:
        print(f"Error: {e}")
        if e.recovery_hint:
            print(f"Hint: {e.recovery_hint}")
