"""
Pytest Configuration and Shared Fixtures

Provides moto AWS mocking, a fake Discord API, sample emails and settings.
"""

import os
from typing import Generator

import boto3
import pytest
from moto import mock_aws

# Set test environment before importing application modules
os.environ["RELAY_DISCORD_API_URL"] = "https://discord.test/api/v10"
os.environ["RELAY_DISCORD_CDN_URL"] = "https://cdn.discord.test"
os.environ["RELAY_DISCORD_TOKEN"] = "test-token"
os.environ["RELAY_DISCORD_GUILD_ID"] = "guild-1"
os.environ["RELAY_ATTACHMENTS_CHANNEL_ID"] = "attachments-chan"
os.environ["RELAY_LOG_CHANNEL_ID"] = "log-chan"
os.environ["RELAY_CHANNEL_MAP"] = "support:support-chan,others:others-chan"
os.environ["RELAY_AWS_REGION"] = "us-west-2"
os.environ["AWS_DEFAULT_REGION"] = "us-west-2"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

TEST_BUCKET = "test-inbound-email"
RELAY_DOMAIN = "relay.example.com"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Reload settings from the environment for every test."""
    from relay.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# --- Settings Fixtures ---


@pytest.fixture
def settings():
    """Settings pointing at the fake Discord API."""
    from relay.config import Settings

    return Settings(_env_file=None)


@pytest.fixture
def limits(settings):
    return settings.delivery_limits


# --- Discord Fixtures ---


@pytest.fixture
def discord_api():
    """Fake Discord API with an empty member list."""
    from tests.mocks.mock_discord import MockDiscordAPI

    return MockDiscordAPI(guild_id="guild-1")


@pytest.fixture
def sleeps() -> list[float]:
    """Recorded backoff sleeps (seconds) instead of real waiting."""
    return []


@pytest.fixture
def discord_client(settings, discord_api, sleeps) -> Generator:
    """DiscordClient wired to the fake API."""
    from relay.tools.discord import DiscordClient

    client = DiscordClient(settings, transport=discord_api.transport, sleep=sleeps.append)
    yield client
    client.close()


@pytest.fixture
def invocation_log():
    from relay.log_buffer import InvocationLog

    return InvocationLog(request_id="test-request")


# --- Email Fixtures ---


@pytest.fixture
def event_generator():
    from tests.utils.event_generator import MockEventGenerator

    return MockEventGenerator(seed=42)


@pytest.fixture
def sample_email():
    """Parsed email addressed to the mapped 'support' user."""
    from relay.models.email import Address, ParsedEmail

    return ParsedEmail(
        subject="Question about my order",
        text="Hello, I have a question about my order.",
        sender=Address(address="jane@example.org", name="Jane Sender"),
        to=(Address(address=f"support@{RELAY_DOMAIN}"),),
        message_id="<abc123@mail.example.org>",
    )


# --- AWS Mocking Fixtures ---


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    return {
        "aws_access_key_id": "testing",
        "aws_secret_access_key": "testing",
        "region_name": "us-west-2",
    }


@pytest.fixture
def mock_s3(aws_credentials):
    """Create a mocked S3 bucket for stored inbound emails."""
    with mock_aws():
        s3 = boto3.client("s3", **aws_credentials)
        s3.create_bucket(
            Bucket=TEST_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
        )
        yield s3


@pytest.fixture
def mock_ses(aws_credentials):
    """Create a mocked SES client; relay domain verified for auto-replies."""
    with mock_aws():
        ses = boto3.client("ses", **aws_credentials)
        ses.verify_domain_identity(Domain=RELAY_DOMAIN)
        yield ses


@pytest.fixture
def mock_aws_all(aws_credentials):
    """Mock all AWS services used by the relay."""
    with mock_aws():
        s3 = boto3.client("s3", **aws_credentials)
        s3.create_bucket(
            Bucket=TEST_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
        )
        ses = boto3.client("ses", **aws_credentials)
        ses.verify_domain_identity(Domain=RELAY_DOMAIN)

        yield {"s3": s3, "ses": ses}
