"""AMI resolution for exit node instances."""

import fnmatch
import logging
from dataclasses import dataclass
from typing import Any

from tailout.exceptions import NotFoundError
from tailout.providers.aws.constants import (
    AMI_ARCHITECTURE,
    AMI_NAME_PATTERN,
    AMI_OWNER,
)
from tailout.providers.aws.errors import handle_aws_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageFilters:
    """Criteria an AMI must satisfy to be used for an exit node."""

    name_pattern: str = AMI_NAME_PATTERN
    owner: str = AMI_OWNER
    architecture: str = AMI_ARCHITECTURE
    state: str = "available"
    public: bool = True

    def to_request(self) -> dict[str, Any]:
        """Return describe_images keyword arguments for these filters."""
        return {
            "Filters": [
                {"Name": "name", "Values": [self.name_pattern]},
                {"Name": "state", "Values": [self.state]},
                {"Name": "is-public", "Values": ["true" if self.public else "false"]},
                {"Name": "architecture", "Values": [self.architecture]},
            ],
            "Owners": [self.owner],
        }

    def matches(self, image: dict[str, Any]) -> bool:
        """Return True if a describe_images entry satisfies every filter."""
        owner = image.get("ImageOwnerAlias") or image.get("OwnerId")
        return (
            fnmatch.fnmatchcase(image.get("Name", ""), self.name_pattern)
            and image.get("State") == self.state
            and bool(image.get("Public")) == self.public
            and image.get("Architecture") == self.architecture
            and owner == self.owner
            and bool(image.get("CreationDate"))
        )


@dataclass(frozen=True)
class ImageCandidate:
    """AMI selected as the base image of an exit node."""

    image_id: str
    name: str
    owner: str
    architecture: str
    creation_date: str

    @classmethod
    def from_response(cls, image: dict[str, Any]) -> "ImageCandidate":
        """Build a candidate from a describe_images entry."""
        return cls(
            image_id=image["ImageId"],
            name=image.get("Name", ""),
            owner=image.get("ImageOwnerAlias") or image.get("OwnerId", ""),
            architecture=image.get("Architecture", ""),
            creation_date=image["CreationDate"],
        )


class ImageResolver:
    """Resolve the newest AMI matching a set of filters."""

    def __init__(self, ec2_client: Any, region: str) -> None:
        """Initialize ImageResolver.

        Parameters
        ----------
        ec2_client : Any
            Boto3 EC2 client
        region : str
            AWS region name
        """
        self.ec2_client = ec2_client
        self.region = region

    def resolve_latest_image(self, filters: ImageFilters | None = None) -> ImageCandidate:
        """Query AWS for matching AMIs and return the newest by CreationDate.

        The filters are sent with the request and applied again to the
        response, so an image is only ever chosen if it passes all of them.

        Parameters
        ----------
        filters : ImageFilters | None
            Selection criteria, Amazon Linux 2023 x86_64 when None

        Returns
        -------
        ImageCandidate
            Newest matching image

        Raises
        ------
        NotFoundError
            If no image passes the filters
        ProviderAPIError
            If the DescribeImages call fails
        """
        filters = filters or ImageFilters()

        with handle_aws_errors():
            response = self.ec2_client.describe_images(**filters.to_request())

        images = [image for image in response.get("Images", []) if filters.matches(image)]

        if not images:
            raise NotFoundError(
                f"No Amazon Linux images found in {self.region} for "
                f"owner={filters.owner}, architecture={filters.architecture}, "
                f"name={filters.name_pattern}"
            )

        newest = max(images, key=lambda image: image["CreationDate"])
        candidate = ImageCandidate.from_response(newest)
        logger.debug("Resolved AMI %s (%s)", candidate.image_id, candidate.name)
        return candidate
