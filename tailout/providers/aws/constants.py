"""AWS-specific constants for EC2 and SSM operations."""

AMI_NAME_PATTERN = "al2023-ami-*"
"""Name pattern of the Amazon Linux 2023 images used for exit nodes."""

AMI_OWNER = "amazon"
"""Owner alias of the platform vendor publishing the base images."""

AMI_ARCHITECTURE = "x86_64"
"""CPU architecture of the base image."""

RUN_SHELL_SCRIPT_DOCUMENT = "AWS-RunShellScript"
"""SSM document used to run shell commands on Linux instances."""

REGION_DISCOVERY_REGION = "us-east-1"
"""Region used to call DescribeRegions before a region has been chosen."""

INSTANCE_STATUS_OK = "ok"
"""Value of InstanceStatus.Status once both EC2 status checks passed."""

COMMAND_STATUS_SUCCESS = "Success"
"""Terminal SSM invocation status for a successful command."""

COMMAND_PENDING_STATUSES = frozenset(("Pending", "InProgress", "Delayed"))
"""SSM invocation statuses that are not terminal yet."""

DRY_RUN_ERROR_CODE = "DryRunOperation"
"""Error code returned by EC2 when a DryRun request would have succeeded."""

INVOCATION_NOT_FOUND_ERROR_CODE = "InvocationDoesNotExist"
"""Error code returned by SSM before an invocation becomes visible."""

BOTO_RETRY_MAX_ATTEMPTS = 5
"""Transport-level retry budget for every boto3 client."""

NETWORK_DESCRIPTION = "default VPC / Subnet / Security group of the region"
"""Human readable description of where exit nodes are launched."""
