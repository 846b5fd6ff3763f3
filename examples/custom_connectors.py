"""Declare inputs and outputs by hand, without a transfer endpoint.

Useful when the data already sits on an SSH server the agency can reach,
or when outputs should be posted to an HTTP endpoint.
"""

from ccexperiment import (
    AgencyAccess,
    ConnectorAuth,
    Experiment,
    HTTPConnector,
    Input,
    Output,
    SSHConnector,
)


host = "127.0.0.1"
auth = ConnectorAuth.with_password("testuser", "testpassword")

workload = SSHConnector(host, "~/input/workload.R", auth=auth)
dataset = SSHConnector(host, "~/input/sleep.RData", auth=auth)
results = SSHConnector(host, "~/output", is_directory=True, auth=auth)
collector = HTTPConnector("https://collector.example.org/", method="POST")

experiment = Experiment.create(
    AgencyAccess("http://127.0.0.1:8080/", "agency_user", "agency_password"),
    "Rscript",
    "dprobst/curious_containers:r_base",
    ram=256,
)
experiment.add_input(Input("script", "File", 0, workload))
experiment.add_input(Input("data", "File", 1, dataset))
experiment.add_output(Output("output_directory", "Directory", "outputs/", results))
experiment.add_output(Output("mystdout", "stdout", connector=collector))
experiment.add_output(Output("mystderr", "stderr", connector=collector))

# Two GPUs with at least 256 MB of VRAM each
# experiment.add_gpu(256, amount=2)

# Inspect the job description before sending it
print(experiment.build_job_description())

experiment_id = experiment.submit()
print(f"Submitted {experiment_id}")
