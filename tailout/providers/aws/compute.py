"""EC2 spot instance provisioning for tailout exit nodes."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from tailout.constants import (
    INSTANCE_READY_TIMEOUT_SECONDS,
    WAITER_DELAY_SECONDS,
)
from tailout.core.signals import CancellationToken
from tailout.core.waiter import poll_until
from tailout.exceptions import ProvisioningError
from tailout.providers.aws.ami import ImageCandidate
from tailout.providers.aws.constants import (
    DRY_RUN_ERROR_CODE,
    INSTANCE_STATUS_OK,
    NETWORK_DESCRIPTION,
)
from tailout.providers.aws.errors import handle_aws_errors
from tailout.providers.aws.utils import build_node_name, extract_instance_from_response
from tailout.providers.exceptions import (
    ProviderAPIError,
    ProviderCredentialsError,
    ProviderError,
)

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_TAGS = {"App": "tailout"}


@dataclass(frozen=True)
class ProvisionedInstance:
    """Running exit node instance.

    An instance with an empty ``instance_id`` is the dry-run sentinel: the
    request was validated but nothing was launched.
    """

    instance_id: str
    name: str
    public_ip: str

    @classmethod
    def dry_run(cls) -> "ProvisionedInstance":
        """Return the sentinel for a successfully validated dry run."""
        return cls(instance_id="", name="", public_ip="")

    @property
    def is_dry_run(self) -> bool:
        """Return True for the dry-run sentinel."""
        return not self.instance_id


@dataclass(frozen=True)
class Proceed:
    """Confirmed launch request, ready for provision()."""

    request: dict[str, Any] = field(repr=False)
    dry_run: bool = False


@dataclass(frozen=True)
class Aborted:
    """The operator declined the launch at the confirmation gate."""

    reason: str = "user declined"


LaunchDecision = Union[Proceed, Aborted]


def list_regions(ec2_client: Any) -> list[str]:
    """Return the names of all regions enabled for the account, sorted.

    Parameters
    ----------
    ec2_client : Any
        Boto3 EC2 client in any region

    Returns
    -------
    list[str]
        Sorted region names
    """
    with handle_aws_errors():
        response = ec2_client.describe_regions()
    return sorted(region["RegionName"] for region in response["Regions"])


class InstanceProvisioner:
    """Launch, tag and wait for a single spot instance.

    Parameters
    ----------
    ec2_client : Any
        Boto3 EC2 client for the target region
    sts_client : Any
        Boto3 STS client, used to show the target account before launch
    region : str
        AWS region name
    confirm : Callable[[str], bool]
        Prompting collaborator asked before anything is launched
    poll_interval : float
        Seconds between instance status polls
    ready_timeout : float
        Budget in seconds for the instance status wait
    clock : Callable[[], float]
        Monotonic clock used by the status wait
    """

    def __init__(
        self,
        ec2_client: Any,
        sts_client: Any,
        region: str,
        confirm: Callable[[str], bool],
        poll_interval: float = WAITER_DELAY_SECONDS,
        ready_timeout: float = INSTANCE_READY_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ec2_client = ec2_client
        self.sts_client = sts_client
        self.region = region
        self.confirm = confirm
        self.poll_interval = poll_interval
        self.ready_timeout = ready_timeout
        self.clock = clock

    def get_account_id(self) -> str:
        """Return the AWS account ID of the current credentials."""
        with handle_aws_errors():
            identity = self.sts_client.get_caller_identity()
        return identity["Account"]

    def build_run_request(
        self,
        image: ImageCandidate,
        instance_type: str,
        user_data: str,
        tags: dict[str, str] | None = None,
        dry_run: bool = False,
    ) -> dict[str, Any]:
        """Build run_instances keyword arguments for a disposable spot node.

        Parameters
        ----------
        image : ImageCandidate
            Base image
        instance_type : str
            EC2 instance type
        user_data : str
            Base64 encoded user data script
        tags : dict[str, str] | None
            Instance tags applied at launch, ``App=tailout`` when None
        dry_run : bool
            Whether EC2 should only validate the request

        Returns
        -------
        dict[str, Any]
            Keyword arguments for run_instances
        """
        tags = tags if tags is not None else DEFAULT_INSTANCE_TAGS

        return {
            "ImageId": image.image_id,
            "InstanceType": instance_type,
            "MinCount": 1,
            "MaxCount": 1,
            "UserData": user_data,
            "TagSpecifications": [
                {
                    "ResourceType": "instance",
                    "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
                }
            ],
            "DryRun": dry_run,
            "InstanceMarketOptions": {
                "MarketType": "spot",
                "SpotOptions": {"InstanceInterruptionBehavior": "terminate"},
            },
        }

    def prepare(
        self,
        image: ImageCandidate,
        instance_type: str,
        user_data: str,
        shutdown: str,
        tags: dict[str, str] | None = None,
        dry_run: bool = False,
    ) -> LaunchDecision:
        """Show the launch parameters and ask for confirmation.

        No EC2 resources are touched until the operator confirms.

        Parameters
        ----------
        image : ImageCandidate
            Base image
        instance_type : str
            EC2 instance type
        user_data : str
            Base64 encoded user data script
        shutdown : str
            Human readable auto shutdown duration, for the summary
        tags : dict[str, str] | None
            Instance tags applied at launch
        dry_run : bool
            Whether EC2 should only validate the request

        Returns
        -------
        LaunchDecision
            Proceed with the request, or Aborted if the operator said no
        """
        request = self.build_run_request(image, instance_type, user_data, tags, dry_run)

        try:
            account_id = self.get_account_id()
        except ProviderCredentialsError:
            raise
        except ProviderError as e:
            raise ProvisioningError(f"failed to get account ID: {e}") from e

        logger.info(
            "Creating tailout node in AWS with the following parameters:\n"
            "- AWS Account ID: %s\n"
            "- AMI ID: %s (%s by %s)\n"
            "- AMI Architecture: %s\n"
            "- Instance Type: %s\n"
            "- Region: %s\n"
            "- Auto shutdown after: %s\n"
            "- Network: %s",
            account_id,
            image.image_id,
            image.name,
            image.owner,
            image.architecture,
            instance_type,
            self.region,
            shutdown,
            NETWORK_DESCRIPTION,
        )

        if not self.confirm("Do you want to create this instance?"):
            return Aborted()

        return Proceed(request=request, dry_run=dry_run)

    def provision(
        self,
        plan: Proceed,
        token: CancellationToken,
        progress: Callable[[str], None] | None = None,
    ) -> ProvisionedInstance:
        """Launch the instance, tag it and wait until it is healthy.

        Parameters
        ----------
        plan : Proceed
            Confirmed request from prepare()
        token : CancellationToken
            Cancellation token of the current invocation
        progress : Callable[[str], None] | None
            Receives short status titles while the call blocks

        Returns
        -------
        ProvisionedInstance
            The running instance, or the dry-run sentinel when the request
            was validated in dry-run mode

        Raises
        ------
        ProvisioningError
            If the launch, tagging or final describe fails, if no instance
            is returned or if it has no public IP address
        WaitTimeoutError
            If the instance does not pass status checks in time
        OperationCancelledError
            If the token fires while waiting
        """
        report = progress or (lambda title: None)
        token.raise_if_cancelled("instance creation")

        try:
            with handle_aws_errors():
                response = self.ec2_client.run_instances(**plan.request)
        except ProviderCredentialsError:
            raise
        except ProviderAPIError as e:
            if plan.dry_run and e.error_code == DRY_RUN_ERROR_CODE:
                logger.info("Dry run successful. Instance can be created.")
                return ProvisionedInstance.dry_run()
            raise ProvisioningError(f"failed to create EC2 instance: {e}") from e
        except ProviderError as e:
            raise ProvisioningError(f"failed to create EC2 instance: {e}") from e

        instances = response.get("Instances", [])
        if len(instances) != 1:
            raise ProvisioningError(
                f"no instance created (run_instances returned {len(instances)} instances)"
            )

        instance_id = instances[0]["InstanceId"]
        logger.info("Instance created: %s", instance_id)

        node_name = build_node_name(self.region, instance_id)
        try:
            with handle_aws_errors():
                self.ec2_client.create_tags(
                    Resources=[instance_id], Tags=[{"Key": "Name", "Value": node_name}]
                )
        except ProviderError as e:
            raise ProvisioningError(f"failed to add tags to the instance: {e}") from e

        report("Waiting for instance to be running...")
        self.wait_until_healthy(instance_id, token)

        public_ip = self._get_public_ip(instance_id)

        return ProvisionedInstance(instance_id=instance_id, name=node_name, public_ip=public_ip)

    def wait_until_healthy(self, instance_id: str, token: CancellationToken) -> None:
        """Block until the instance passes its EC2 status checks.

        Parameters
        ----------
        instance_id : str
            Instance to wait for
        token : CancellationToken
            Cancellation token of the current invocation
        """

        def check() -> bool | None:
            try:
                with handle_aws_errors():
                    response = self.ec2_client.describe_instance_status(
                        InstanceIds=[instance_id]
                    )
            except ProviderCredentialsError:
                raise
            except ProviderAPIError as e:
                if e.error_code == "InvalidInstanceID.NotFound":
                    return None
                raise ProvisioningError(f"failed to wait for instance to be created: {e}") from e
            except ProviderError as e:
                raise ProvisioningError(f"failed to wait for instance to be created: {e}") from e

            statuses = response.get("InstanceStatuses", [])
            if statuses and all(
                status.get("InstanceStatus", {}).get("Status") == INSTANCE_STATUS_OK
                for status in statuses
            ):
                return True
            return None

        poll_until(
            check,
            operation=f"instance {instance_id} to be running",
            timeout=self.ready_timeout,
            interval=self.poll_interval,
            token=token,
            clock=self.clock,
        )

    def _get_public_ip(self, instance_id: str) -> str:
        try:
            with handle_aws_errors():
                response = self.ec2_client.describe_instances(InstanceIds=[instance_id])
            instance = extract_instance_from_response(response)
        except (ProviderError, ValueError) as e:
            raise ProvisioningError(f"failed to describe EC2 instance: {e}") from e

        public_ip = instance.get("PublicIpAddress")
        if not public_ip:
            raise ProvisioningError(f"no public IP address found for {instance_id}")

        return public_ip
