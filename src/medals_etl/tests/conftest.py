"""Shared test fixtures for the medals_etl test suite.

Provides moto-based AWS mocks and sample payloads matching the three upstream
shapes: the olympics.com medal feed, JSON embedded in scraped pages, and the
encyclopedia medal-winner tables.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict

import boto3
import pytest
from moto import mock_aws

from medals_etl.config import Config
from medals_etl.extractors.base import ExtractContext
from medals_etl.vocabulary import build_vocabulary


# ---------------------------------------------------------------------------
# AWS credential safety: prevent accidental real AWS calls
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True, scope="session")
def aws_credentials():
    """Set fake AWS credentials for the entire test session."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    yield
    for key in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SECURITY_TOKEN",
        "AWS_SESSION_TOKEN",
        "AWS_DEFAULT_REGION",
    ):
        os.environ.pop(key, None)


# ---------------------------------------------------------------------------
# Moto-based AWS service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def results_table():
    """Create a moto mock DynamoDB table 'medal_results' keyed by event_id.

    Yields the boto3 DynamoDB client.
    """
    with mock_aws():
        client = boto3.client("dynamodb", region_name="us-east-1")
        client.create_table(
            TableName="medal_results",
            KeySchema=[{"AttributeName": "event_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "event_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield client


@pytest.fixture()
def archive_bucket():
    """Create a moto mock S3 bucket named 'medals-archive'."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="medals-archive")
        yield client


# ---------------------------------------------------------------------------
# Vocabulary / extraction context
# ---------------------------------------------------------------------------

@pytest.fixture()
def vocab():
    return build_vocabulary()


@pytest.fixture()
def ctx(vocab) -> ExtractContext:
    return ExtractContext(
        vocabulary=vocab,
        scope="W2022",
        placeholder_timestamp="2022-02-01T00:00:00.000Z",
    )


# ---------------------------------------------------------------------------
# Configuration fixture
# ---------------------------------------------------------------------------

@pytest.fixture()
def sample_config() -> Config:
    return Config({
        "scope": "W2022",
        "placeholder_timestamp": "2022-02-01T00:00:00.000Z",
        "region": "us-east-1",
        "fetch": {"base_delay_seconds": 0.001, "max_delay_seconds": 0.01},
        "sink": {"table": "medal_results", "max_concurrency": 2},
        "archive": {"enabled": False},
        "jobs": {
            "feed": {
                "kind": "feed",
                "sources": [
                    {"url": "https://primary.test/medals", "max_attempts": 2},
                    {"url": "https://mirror.test/medals.json", "max_attempts": 2},
                ],
            },
            "pages": {
                "kind": "pages",
                "pages": [
                    {"name": "medals", "sources": [{"url": "https://site.test/medals", "max_attempts": 1}]},
                    {"name": "results", "sources": [{"url": "https://site.test/results", "max_attempts": 1}]},
                ],
            },
            "wikipedia": {
                "kind": "table",
                "sources": [{"url": "https://wiki.test/medal_winners", "max_attempts": 1}],
            },
        },
    })


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

@pytest.fixture()
def feed_payload() -> Dict[str, Any]:
    return {
        "medalSets": [
            {
                "id": "E1",
                "eventUnit": {"discipline": {"name": "Biathlon"}},
                "medalResults": {
                    "GOLD": {"countryCode": "nor"},
                    "SILVER": {"countryCode": "GER"},
                },
            },
            {
                "id": "E2",
                "lastUpdated": "2022-02-06T10:15:00Z",
                "eventUnit": {"discipline": {"description": "short track speed skating"}},
                "medalResults": {
                    "GOLD": {"countryCode": "CHN"},
                    "SILVER": {"countryCode": "ITA"},
                    "BRONZE": {"countryCode": "HUN"},
                },
            },
        ]
    }


def _flag_cell(name: str) -> str:
    return (
        f'<td><span class="flagicon"><img alt="{name}" src="x.png"></span> '
        f'<a href="/wiki/{name}" title="{name}">{name}</a></td>'
    )


@pytest.fixture()
def wiki_html() -> str:
    return f"""
    <html><body>
      <h1>List of 2022 Winter Olympics medal winners</h1>
      <h2><span class="mw-headline">Biathlon</span><span class="mw-editsection">[edit]</span></h2>
      <table class="wikitable">
        <tr><th>Event</th><th>Gold</th><th>Silver</th><th>Bronze</th></tr>
        <tr><td>Women's 10 km<sup>[a]</sup></td>{_flag_cell("Norway")}{_flag_cell("Sweden")}{_flag_cell("Finland")}</tr>
      </table>
      <h3>Relays</h3>
      <table class="wikitable">
        <tr><td>Mixed relay</td>{_flag_cell("Norway")}<td>France</td><td>Unknown Land</td></tr>
      </table>
      <h2>Curling</h2>
      <div><table class="wikitable">
        <tr><td>Men's</td>{_flag_cell("Sweden")}{_flag_cell("Great Britain")}{_flag_cell("Canada")}</tr>
      </table></div>
      <h2>See also</h2>
      <p>Nothing to see.</p>
    </body></html>
    """


@pytest.fixture()
def page_html() -> str:
    next_data = {
        "props": {
            "pageProps": {
                "results": [
                    {"discipline": {"name": "Luge"}, "noc": {"code": "GER"}, "medal": {"name": "Gold Medal"}, "date": "2022-02-05T12:00:00Z"},
                    {"discipline": {"name": "Luge"}, "noc": {"code": "AUT"}, "medal": {"name": "Silver Medal"}},
                    {"discipline": {"name": "Luge"}, "noc": {"code": "AUT"}, "medal": {"name": "4th place"}},
                ]
            }
        }
    }
    return (
        "<html><head>"
        f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(next_data)}</script>'
        '<script type="application/ld+json">{"@type": "SportsEvent", "name": "Beijing 2022"}</script>'
        "<script>{not valid json}</script>"
        "<script>window.dataLayer = [];</script>"
        "</head><body></body></html>"
    )
