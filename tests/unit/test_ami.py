"""Tests for AMI resolution."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tailout.exceptions import NotFoundError
from tailout.providers.aws.ami import ImageFilters, ImageResolver
from tailout.providers.exceptions import ProviderAPIError


def make_image(image_id, creation_date, **overrides):
    """Build a describe_images entry that passes the default filters."""
    image = {
        "ImageId": image_id,
        "Name": f"al2023-ami-2023.4.{image_id}-kernel-6.1-x86_64",
        "State": "available",
        "Public": True,
        "Architecture": "x86_64",
        "ImageOwnerAlias": "amazon",
        "OwnerId": "137112412989",
        "CreationDate": creation_date,
    }
    image.update(overrides)
    return image


@pytest.fixture
def ec2_client():
    """Return a mocked EC2 client."""
    return MagicMock()


def test_resolve_latest_image_picks_newest_creation_date(ec2_client):
    """Test that the image with the greatest CreationDate wins."""
    ec2_client.describe_images.return_value = {
        "Images": [
            make_image("ami-old", "2024-01-01T00:00:00.000Z"),
            make_image("ami-new", "2024-03-01T00:00:00.000Z"),
            make_image("ami-mid", "2024-02-01T00:00:00.000Z"),
        ]
    }

    image = ImageResolver(ec2_client, "us-east-1").resolve_latest_image()

    assert image.image_id == "ami-new"
    assert image.owner == "amazon"
    assert image.architecture == "x86_64"


def test_resolve_latest_image_sends_filters(ec2_client):
    """Test that the selection criteria are sent with the request."""
    ec2_client.describe_images.return_value = {
        "Images": [make_image("ami-1", "2024-01-01T00:00:00.000Z")]
    }

    ImageResolver(ec2_client, "us-east-1").resolve_latest_image()

    kwargs = ec2_client.describe_images.call_args.kwargs
    filters = {f["Name"]: f["Values"] for f in kwargs["Filters"]}
    assert kwargs["Owners"] == ["amazon"]
    assert filters == {
        "name": ["al2023-ami-*"],
        "state": ["available"],
        "is-public": ["true"],
        "architecture": ["x86_64"],
    }


def test_resolve_latest_image_ignores_images_failing_filters(ec2_client):
    """Test that a newer image violating a filter is never chosen."""
    ec2_client.describe_images.return_value = {
        "Images": [
            make_image("ami-good", "2024-01-01T00:00:00.000Z"),
            make_image("ami-arm", "2024-05-01T00:00:00.000Z", Architecture="arm64"),
            make_image("ami-private", "2024-05-02T00:00:00.000Z", Public=False),
            make_image("ami-pending", "2024-05-03T00:00:00.000Z", State="pending"),
            make_image("ami-other", "2024-05-04T00:00:00.000Z", Name="ubuntu-22.04"),
            make_image(
                "ami-foreign",
                "2024-05-05T00:00:00.000Z",
                ImageOwnerAlias=None,
                OwnerId="123456789012",
            ),
        ]
    }

    image = ImageResolver(ec2_client, "us-east-1").resolve_latest_image()

    assert image.image_id == "ami-good"


def test_resolve_latest_image_raises_when_nothing_matches(ec2_client):
    """Test that an empty result raises NotFoundError."""
    ec2_client.describe_images.return_value = {"Images": []}

    with pytest.raises(NotFoundError, match="No Amazon Linux images found in eu-west-1"):
        ImageResolver(ec2_client, "eu-west-1").resolve_latest_image()


def test_resolve_latest_image_maps_client_errors(ec2_client):
    """Test that DescribeImages failures become ProviderAPIError."""
    ec2_client.describe_images.side_effect = ClientError(
        {"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}},
        "DescribeImages",
    )

    with pytest.raises(ProviderAPIError) as exc_info:
        ImageResolver(ec2_client, "us-east-1").resolve_latest_image()

    assert exc_info.value.error_code == "UnauthorizedOperation"


def test_image_filters_accept_custom_architecture():
    """Test that custom filters are honoured on both sides."""
    filters = ImageFilters(architecture="arm64")

    assert filters.matches(make_image("ami-arm", "2024-01-01", Architecture="arm64"))
    assert not filters.matches(make_image("ami-x86", "2024-01-01"))
    assert {"Name": "architecture", "Values": ["arm64"]} in filters.to_request()["Filters"]
