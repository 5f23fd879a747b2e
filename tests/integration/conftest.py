"""
Integration test fixtures and configuration.

Integration tests run the Lambda handler end to end against moto-mocked
S3 and SES and the in-memory Discord API.
"""

import os
from typing import Any, Dict
from unittest.mock import MagicMock, patch

import boto3
import pytest
from moto import mock_aws

# Set integration test environment
os.environ["INTEGRATION_TEST"] = "true"

INBOUND_BUCKET = "relay-inbound-integration"


@pytest.fixture
def integration_aws_setup() -> Dict[str, Any]:
    """
    Mocked AWS environment for the relay.

    Provides the inbound email bucket and a verified relay domain so
    auto-replies are accepted by SES.
    """
    with mock_aws():
        s3 = boto3.client("s3", region_name="us-west-2")
        ses = boto3.client("ses", region_name="us-west-2")

        # Create S3 bucket (requires LocationConstraint for non us-east-1 regions)
        s3.create_bucket(
            Bucket=INBOUND_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
        )
        ses.verify_domain_identity(Domain="relay.example.com")

        yield {"s3": s3, "ses": ses, "bucket": INBOUND_BUCKET}


@pytest.fixture
def relay_discord(discord_client):
    """Handler wired to the in-memory Discord API."""
    with patch(
        "lambdas.process_inbound_email.handler._get_discord_client",
        return_value=discord_client,
    ):
        yield discord_client


@pytest.fixture
def store_email(integration_aws_setup):
    """Upload a raw email the way the SES S3 action does and return its key."""

    def _store(raw_email: bytes, key: str = "inbound/message-1") -> str:
        integration_aws_setup["s3"].put_object(
            Bucket=integration_aws_setup["bucket"],
            Key=key,
            Body=raw_email,
        )
        return key

    return _store


@pytest.fixture
def ses_spy(integration_aws_setup):
    """The mocked SES client, wrapped to record what the relay sends."""
    spy = MagicMock(wraps=integration_aws_setup["ses"])
    with patch("relay.tools.ses._get_client", return_value=spy):
        yield spy
