"""AWS-specific utility functions for tailout."""

from __future__ import annotations

import base64
from typing import Any, Callable

import boto3
from botocore.config import Config

from tailout.providers.aws.constants import BOTO_RETRY_MAX_ATTEMPTS


def extract_instance_from_response(response: dict[str, Any]) -> dict[str, Any]:
    """Extract first instance from AWS describe_instances response.

    Parameters
    ----------
    response : dict[str, Any]
        Response from boto3 describe_instances call

    Returns
    -------
    dict[str, Any]
        The first instance dictionary

    Raises
    ------
    ValueError
        If response has no reservations or instances
    """
    if not response.get("Reservations"):
        raise ValueError("No reservations in response")
    if not response["Reservations"][0].get("Instances"):
        raise ValueError("No instances in reservation")
    return response["Reservations"][0]["Instances"][0]


def build_node_name(region: str, instance_id: str) -> str:
    """Return the Tailscale hostname and Name tag for an instance.

    Parameters
    ----------
    region : str
        AWS region the instance runs in
    instance_id : str
        EC2 instance ID

    Returns
    -------
    str
        Name of the form ``tailout-<region>-<instance id>``
    """
    return f"tailout-{region}-{instance_id}"


def build_user_data(shutdown_minutes: int) -> str:
    """Build the base64 encoded cloud-init script for an exit node.

    The script enables IP forwarding, which exit nodes need, and schedules
    the instance to shut itself down. Spot instances are launched with
    interruption behaviour ``terminate`` so shutdown also terminates them.

    Parameters
    ----------
    shutdown_minutes : int
        Minutes after boot at which the instance shuts down

    Returns
    -------
    str
        Base64 encoded user data script
    """
    script = (
        "#!/bin/bash\n"
        "# Allow ip forwarding\n"
        "echo 'net.ipv4.ip_forward = 1' | sudo tee -a /etc/sysctl.conf\n"
        "echo 'net.ipv6.conf.all.forwarding = 1' | sudo tee -a /etc/sysctl.conf\n"
        "sudo sysctl -p /etc/sysctl.conf\n"
        f'sudo echo "sudo shutdown" | at now + {shutdown_minutes} minutes'
    )
    return base64.b64encode(script.encode()).decode()


def make_client_factory(
    boto3_client_factory: Callable[..., Any] | None = None,
) -> Callable[[str, str], Any]:
    """Return a factory building boto3 clients with standard transport retries.

    Parameters
    ----------
    boto3_client_factory : Callable[..., Any] | None
        Underlying factory, ``boto3.client`` when None

    Returns
    -------
    Callable[[str, str], Any]
        Function taking ``(service_name, region)`` and returning a client
    """
    factory = boto3_client_factory or boto3.client
    retry_config = Config(
        retries={"max_attempts": BOTO_RETRY_MAX_ATTEMPTS, "mode": "standard"}
    )

    def create(service_name: str, region: str) -> Any:
        return factory(service_name, region_name=region, config=retry_config)

    return create


def get_aws_credentials_error_message() -> str:
    """Get standard AWS credentials error message.

    Returns
    -------
    str
        Formatted AWS credentials error message
    """
    return (
        "AWS credentials not found\n\n"
        "Configure your credentials:\n"
        "  aws configure\n\n"
        "Or set environment variables:\n"
        "  export AWS_ACCESS_KEY_ID=...\n"
        "  export AWS_SECRET_ACCESS_KEY=..."
    )
