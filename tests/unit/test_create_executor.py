"""Tests for the create command orchestration."""

import base64
import io
import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from rich.console import Console

from tailout.core.create_executor import CreateExecutor
from tailout.exceptions import ConfigurationError, NotFoundError, RemoteExecutionError
from tailout.tailscale.auth import AuthKeyIssuer
from tailout.tailscale.registry import NodeRegistry
from tests.unit.fakes import NOW, FakePrompter, device_json, devices_handler

NODE_NAME = "tailout-eu-west-1-i-0abc"


class FakeAWS:
    """Per-service mocked boto3 clients handed out by a client factory."""

    def __init__(self) -> None:
        self.ec2 = MagicMock()
        self.ec2.describe_images.return_value = {
            "Images": [
                {
                    "ImageId": "ami-1",
                    "Name": "al2023-ami-2023.4.20240401.0-kernel-6.1-x86_64",
                    "State": "available",
                    "Public": True,
                    "Architecture": "x86_64",
                    "ImageOwnerAlias": "amazon",
                    "CreationDate": "2024-04-01T00:00:00.000Z",
                }
            ]
        }
        self.ec2.describe_regions.return_value = {
            "Regions": [{"RegionName": "us-east-1"}, {"RegionName": "eu-west-1"}]
        }
        self.ec2.run_instances.return_value = {"Instances": [{"InstanceId": "i-0abc"}]}
        self.ec2.describe_instance_status.return_value = {
            "InstanceStatuses": [{"InstanceStatus": {"Status": "ok"}}]
        }
        self.ec2.describe_instances.return_value = {
            "Reservations": [
                {"Instances": [{"InstanceId": "i-0abc", "PublicIpAddress": "3.3.3.3"}]}
            ]
        }
        self.sts = MagicMock()
        self.sts.get_caller_identity.return_value = {"Account": "123456789012"}
        self.ssm = MagicMock()
        self.ssm.send_command.return_value = {"Command": {"CommandId": "cmd-1"}}
        self.ssm.get_command_invocation.return_value = {"Status": "Success"}
        self.created: list[tuple[str, str]] = []

    def client_factory(self, service_name, region):
        self.created.append((service_name, region))
        return getattr(self, service_name)


@pytest.fixture
def aws():
    """Return mocked AWS clients."""
    return FakeAWS()


@pytest.fixture
def api_calls():
    """Collect requests sent to the control API."""
    return []


def make_executor(
    make_api_client, aws, token, api_calls, devices=None, prompter=None, connect=None
):
    """Build a CreateExecutor over fakes."""
    if devices is None:
        devices = [device_json(NODE_NAME, node_id="nNEW")]
    api_client = make_api_client(devices_handler(devices, api_calls))
    return CreateExecutor(
        client_factory=aws.client_factory,
        issuer=AuthKeyIssuer(api_client),
        registry=NodeRegistry(api_client, now=lambda: NOW),
        prompter=prompter or FakePrompter(),
        token=token,
        connect=connect,
        console=Console(file=io.StringIO()),
        now=lambda: datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc),
    )


def test_create_runs_full_pipeline(make_api_client, aws, token, api_calls, caplog):
    """Test the create flow from key issuance to join verification."""
    executor = make_executor(make_api_client, aws, token, api_calls)

    with caplog.at_level(logging.INFO):
        instance = executor.execute(region="eu-west-1", shutdown="90m")

    assert instance.name == NODE_NAME
    assert instance.public_ip == "3.3.3.3"
    assert [request.url.path for request in api_calls] == [
        "/api/v2/tailnet/example.com/keys",
        "/api/v2/tailnet/example.com/devices",
    ]
    commands = aws.ssm.send_command.call_args.kwargs["Parameters"]["commands"]
    assert any(f"--hostname={NODE_NAME}" in command for command in commands)
    assert "Tailscale installed." in caplog.text
    assert f"Node {NODE_NAME} joined tailnet." in caplog.text
    assert "Public IP address: 3.3.3.3" in caplog.text
    assert "Planned termination time: 2024-05-01T13:30:00+00:00" in caplog.text


def test_create_schedules_shutdown_in_user_data(make_api_client, aws, token, api_calls):
    """Test that the lifetime reaches the instance as whole minutes."""
    executor = make_executor(make_api_client, aws, token, api_calls)

    executor.execute(region="eu-west-1", shutdown="1h30m")

    user_data = aws.ec2.run_instances.call_args.kwargs["UserData"]
    assert "at now + 90 minutes" in base64.b64decode(user_data).decode()


def test_create_rejects_duration_under_a_minute(make_api_client, aws, token, api_calls):
    """Test that a sub-minute lifetime is refused before any AWS call."""
    executor = make_executor(make_api_client, aws, token, api_calls)

    with pytest.raises(ConfigurationError, match="at least 1 minute"):
        executor.execute(region="eu-west-1", shutdown="45s")

    assert aws.created == []


def test_create_non_interactive_requires_region(make_api_client, aws, token, api_calls):
    """Test that non-interactive mode never prompts for a region."""
    prompter = FakePrompter()
    executor = make_executor(make_api_client, aws, token, api_calls, prompter=prompter)

    with pytest.raises(ConfigurationError, match="no region was explicitly specified"):
        executor.execute(non_interactive=True)

    assert prompter.region_choices == []


def test_create_prompts_for_region(make_api_client, aws, token, api_calls):
    """Test interactive region selection."""
    prompter = FakePrompter(region="eu-west-1")
    executor = make_executor(make_api_client, aws, token, api_calls, prompter=prompter)

    executor.execute()

    assert prompter.region_choices == [["eu-west-1", "us-east-1"]]
    assert ("ec2", "us-east-1") in aws.created
    assert ("ec2", "eu-west-1") in aws.created


def test_create_aborted_launches_nothing(make_api_client, aws, token, api_calls, caplog):
    """Test that declining the confirmation ends cleanly."""
    executor = make_executor(
        make_api_client, aws, token, api_calls, prompter=FakePrompter(confirm=False)
    )

    with caplog.at_level(logging.INFO):
        result = executor.execute(region="eu-west-1")

    assert result is None
    assert "Instance creation aborted." in caplog.text
    aws.ec2.run_instances.assert_not_called()
    aws.ssm.send_command.assert_not_called()


def test_create_dry_run_stops_after_validation(make_api_client, aws, token, api_calls, caplog):
    """Test that a dry run succeeds without tagging or installing."""
    aws.ec2.run_instances.side_effect = ClientError(
        {"Error": {"Code": "DryRunOperation", "Message": "would have succeeded"}},
        "RunInstances",
    )
    executor = make_executor(make_api_client, aws, token, api_calls)

    with caplog.at_level(logging.INFO):
        instance = executor.execute(region="eu-west-1", dry_run=True)

    assert instance.is_dry_run
    assert aws.ec2.run_instances.call_args.kwargs["DryRun"] is True
    assert "Dry run successful. Instance can be created." in caplog.text
    aws.ec2.create_tags.assert_not_called()
    aws.ssm.send_command.assert_not_called()


def test_create_fails_when_node_does_not_join(make_api_client, aws, token, api_calls):
    """Test that a node missing from the tailnet is an error."""
    executor = make_executor(make_api_client, aws, token, api_calls, devices=[])

    with pytest.raises(NotFoundError, match="failed to find the created node in tailnet"):
        executor.execute(region="eu-west-1")


def test_create_reports_failed_installation(make_api_client, aws, token, api_calls):
    """Test that a failed SSM command stops the flow before verification."""
    aws.ssm.get_command_invocation.return_value = {
        "Status": "Failed",
        "StandardErrorContent": "curl: (6) Could not resolve host",
    }
    executor = make_executor(make_api_client, aws, token, api_calls)

    with pytest.raises(RemoteExecutionError, match="Could not resolve host"):
        executor.execute(region="eu-west-1")

    assert not any(request.url.path.endswith("/devices") for request in api_calls)


def test_create_chains_into_connect(make_api_client, aws, token, api_calls):
    """Test that --connect hands the new hostname to connect."""
    connected = []
    executor = make_executor(
        make_api_client, aws, token, api_calls, connect=connected.append
    )

    executor.execute(region="eu-west-1", connect=True)

    assert connected == [NODE_NAME]


def test_create_does_not_connect_by_default(make_api_client, aws, token, api_calls):
    """Test that connect is only called when requested."""
    connected = []
    executor = make_executor(
        make_api_client, aws, token, api_calls, connect=connected.append
    )

    executor.execute(region="eu-west-1")

    assert connected == []
