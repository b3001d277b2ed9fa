"""Pytest configuration and fixtures for tailout tests."""

import os
from collections.abc import Callable, Generator

import httpx
import pytest

from tailout.core.signals import CancellationToken
from tailout.tailscale.api import TailscaleClient
from tests.unit.fakes import FakeClock, FakePrompter, FakeTailscaled


@pytest.fixture(autouse=True)
def clean_tailout_env() -> Generator[None, None, None]:
    """Hide tailout settings of the developer's shell from the tests.

    Yields
    ------
    None
        Control back to test after clearing the environment
    """
    names = [name for name in os.environ if name.startswith("TAILOUT_")]
    names.append("TAILSCALE_API_KEY")
    saved = {name: os.environ.pop(name, None) for name in names}

    yield

    for name, value in saved.items():
        if value is not None:
            os.environ[name] = value


@pytest.fixture
def aws_credentials() -> Generator[None, None, None]:
    """Fixture to set AWS credentials for testing with proper cleanup.

    Sets mock AWS credentials in environment variables for the duration of the test,
    then restores the original environment state.

    Yields
    ------
    None
        Control back to test after setting credentials
    """
    names = (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SECURITY_TOKEN",
        "AWS_SESSION_TOKEN",
        "AWS_DEFAULT_REGION",
    )
    saved = {name: os.environ.get(name) for name in names}

    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield

    for name, value in saved.items():
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value


@pytest.fixture
def token() -> CancellationToken:
    """Return a fresh cancellation token."""
    return CancellationToken()


@pytest.fixture
def clock() -> FakeClock:
    """Return a fake monotonic clock starting at zero."""
    return FakeClock()


@pytest.fixture
def prompter() -> FakePrompter:
    """Return a prompter that confirms and picks the first option."""
    return FakePrompter()


@pytest.fixture
def tailscaled() -> FakeTailscaled:
    """Return a running fake tailscaled."""
    return FakeTailscaled()


@pytest.fixture
def make_api_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], TailscaleClient]:
    """Return a factory building a control API client over a mock transport."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> TailscaleClient:
        return TailscaleClient(
            api_key="tskey-api-test",
            tailnet="example.com",
            base_url="https://api.example.test",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

    return factory
