"""Unit tests for core domain models."""

import pytest


@pytest.mark.core
@pytest.mark.tra("Domain.ExperimentStatus")
@pytest.mark.tier(0)
class TestExperimentStatus:
    """Tests for mapping agency states onto client statuses."""

    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            ("registered", "submitted"),
            ("scheduled", "submitted"),
            ("processing", "running"),
            ("succeeded", "succeeded"),
            ("failed", "failed"),
            ("cancelled", "cancelled"),
            ("CANCELLED", "cancelled"),
            (None, "unknown"),
            ("", "unknown"),
        ],
    )
    def test_from_agency(self, state, expected: str) -> None:
        from ccexperiment.core.models import ExperimentStatus

        assert ExperimentStatus.from_agency(state).value == expected

    def test_terminal_statuses(self) -> None:
        from ccexperiment.core.models import ExperimentStatus

        terminal = {s for s in ExperimentStatus if s.is_terminal}

        assert terminal == {
            ExperimentStatus.SUCCEEDED,
            ExperimentStatus.FAILED,
            ExperimentStatus.CANCELLED,
        }


@pytest.mark.core
@pytest.mark.tra("Domain.AgencyAccess")
@pytest.mark.tier(0)
class TestAgencyAccess:
    """Tests for AgencyAccess."""

    def test_describe(self) -> None:
        from ccexperiment.core.models import AgencyAccess

        access = AgencyAccess("http://agency:8080/", "user", "pw")

        assert access.describe() == {
            "url": "http://agency:8080/",
            "auth": {"username": "user", "password": "pw"},
        }

    def test_repr_hides_password(self) -> None:
        from ccexperiment.core.models import AgencyAccess

        assert "pw" not in repr(AgencyAccess("http://agency/", "user", "pw"))

    def test_empty_url_raises(self) -> None:
        from ccexperiment.core.models import AgencyAccess

        with pytest.raises(ValueError, match="url"):
            AgencyAccess("", "user", "pw")


@pytest.mark.core
@pytest.mark.tra("Domain.Connector")
@pytest.mark.tier(0)
class TestConnectors:
    """Tests for the connector descriptions."""

    def test_ssh_file_connector(self) -> None:
        from ccexperiment.core.models import ConnectorAuth, SSHConnector

        connector = SSHConnector(
            "10.0.0.5", "/shared/run.py", port=5000, auth=ConnectorAuth.with_password("u", "p")
        )

        assert connector.describe() == {
            "command": "red-connector-ssh",
            "access": {
                "host": "10.0.0.5",
                "port": 5000,
                "auth": {"username": "u", "password": "p"},
                "filePath": "/shared/run.py",
            },
        }

    def test_ssh_mountable_directory_with_private_key(self) -> None:
        from ccexperiment.core.models import ConnectorAuth, SSHConnector

        connector = SSHConnector(
            "host", "/data", is_directory=True, is_mountable=True
        ).with_auth(ConnectorAuth.with_private_key("u", "KEY", passphrase="secret"))

        described = connector.describe()

        assert described["mount"] is True
        assert described["access"]["dirPath"] == "/data"
        assert described["access"]["port"] == 22
        assert described["access"]["auth"] == {
            "username": "u",
            "privateKey": "KEY",
            "passphrase": "secret",
        }

    def test_ssh_without_auth_raises(self) -> None:
        from ccexperiment.core.exceptions import JobDescriptionError
        from ccexperiment.core.models import SSHConnector

        with pytest.raises(JobDescriptionError, match="no auth"):
            SSHConnector("host", "/data").describe()

    def test_http_connector(self) -> None:
        from ccexperiment.core.models import HTTPConnector

        described = HTTPConnector("https://files/x.csv", disable_ssl_verification=True).describe()

        assert described == {
            "command": "red-connector-http",
            "access": {
                "url": "https://files/x.csv",
                "method": "GET",
                "disableSSLVerification": True,
            },
        }

    def test_ftp_connector(self) -> None:
        from ccexperiment.core.models import FTPConnector

        assert FTPConnector("ftp://files/x").describe() == {
            "command": "red-connector-ftp",
            "access": {"url": "ftp://files/x"},
        }

    def test_auth_repr_hides_secrets(self) -> None:
        from ccexperiment.core.models import ConnectorAuth

        assert "topsecret" not in repr(ConnectorAuth.with_password("u", "topsecret"))


@pytest.mark.core
@pytest.mark.tra("Domain.InputOutput")
@pytest.mark.tier(0)
class TestInputOutput:
    """Tests for experiment inputs and outputs."""

    def test_file_input(self) -> None:
        from ccexperiment.core.models import FTPConnector, Input

        data = Input("data", "File", 1, FTPConnector("ftp://x"))

        assert data.describe_cli() == {"type": "File", "inputBinding": {"position": 1}}
        assert data.describe() == {
            "class": "File",
            "connector": {"command": "red-connector-ftp", "access": {"url": "ftp://x"}},
        }

    def test_string_input_describes_its_value(self) -> None:
        from ccexperiment.core.models import Input

        assert Input("mode", "string", 2).with_value("fast").describe() == "fast"

    def test_input_without_connector_raises(self) -> None:
        from ccexperiment.core.exceptions import JobDescriptionError
        from ccexperiment.core.models import Input

        with pytest.raises(JobDescriptionError, match="data"):
            Input("data", "File", 1).describe()

    def test_empty_input_name_raises(self) -> None:
        from ccexperiment.core.models import Input

        with pytest.raises(ValueError):
            Input("", "File", 0)

    def test_output_glob(self) -> None:
        from ccexperiment.core.models import FTPConnector, Output

        output = Output("out", "Directory", "outputs/").with_connector(FTPConnector("ftp://x"))

        assert output.describe_cli() == {
            "type": "Directory",
            "outputBinding": {"glob": "outputs/"},
        }
        assert output.describe()["class"] == "Directory"

    def test_output_without_glob(self) -> None:
        from ccexperiment.core.models import Output

        assert Output("log", "stdout").describe_cli() == {"type": "stdout"}


@pytest.mark.core
@pytest.mark.tra("Domain.BatchSnapshot")
@pytest.mark.tier(0)
class TestBatchSnapshot:
    """Tests for parsing batch responses."""

    def test_from_response(self) -> None:
        from ccexperiment.core.models import BatchSnapshot, ExperimentStatus

        snapshot = BatchSnapshot.from_response(
            {
                "state": "processing",
                "history": [{"state": "registered"}, "garbage", {"state": "processing"}],
            }
        )

        assert snapshot.status is ExperimentStatus.RUNNING
        assert [h.state for h in snapshot.history] == ["registered", "processing"]
        assert snapshot.last_failure() is None

    def test_last_failure_is_the_most_recent(self) -> None:
        from ccexperiment.core.models import BatchSnapshot

        snapshot = BatchSnapshot.from_response(
            {
                "state": "failed",
                "history": [
                    {"state": "failed", "debugInfo": "old"},
                    {"state": "failed", "debugInfo": "new"},
                ],
            }
        )

        assert snapshot.last_failure().debug_info == "new"

    def test_missing_history(self) -> None:
        from ccexperiment.core.models import BatchSnapshot

        snapshot = BatchSnapshot.from_response({"state": "failed", "history": None})

        assert snapshot.history == ()
        assert snapshot.last_failure() is None
