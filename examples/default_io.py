"""Run a script against a dataset through an SSH transfer endpoint.

The script, the dataset and the output directory live in one shared
directory on this machine. A short-lived SSH server container exposes that
directory to the agency while the experiment runs, and is removed again as
soon as the experiment finishes, fails or is cancelled.
"""

import time
from pathlib import Path

from ccexperiment import (
    Experiment,
    ExternalProcessRunner,
    PortPool,
    SubprocessExecutor,
    agency_settings_from_env,
    with_default_io,
)


HOST = "127.0.0.1"  # address under which the agency reaches this machine

# CC_AGENCY_URL, CC_AGENCY_USERNAME, CC_AGENCY_PASSWORD and optionally CC_AGENCY_TIMEOUT
settings = agency_settings_from_env()

# One pool per process; every endpoint leases its port from here
pool = PortPool(10410, 10439)
runner = ExternalProcessRunner(SubprocessExecutor())

experiment = Experiment.from_settings(
    settings,
    "python3",
    "dprobst/curious_containers:python",
    ram=256,
    timeout=60 * 48,  # minutes
)
with_default_io(
    experiment,
    pool,
    runner,
    shared_directory=str(Path("~/shared").expanduser()),
    script_file="input/workload.py",
    dataset_file="input/sleep.RData",
    output_dir=".",
    host=HOST,
)

experiment_id = experiment.submit()
print(f"Submitted {experiment_id}")

while not experiment.is_terminal:
    time.sleep(10)
    print(experiment.poll_status().value)

print("stdout:\n" + experiment.stdout())
print("stderr:\n" + experiment.stderr())
print(f"debugInfo: {experiment.debug_info}")
