"""pytest fixtures for testing."""

import threading

import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

import redis

from src.models.lookup_result import LookupResult, LookupStatus
from src.models.policy_session import PolicyRequest


class FakeRedisSet:
    """In-memory stand-in for the two Redis set commands the cache uses."""

    def __init__(self):
        self.sets = {}
        self.fail = False
        self.calls = []
        self._lock = threading.Lock()

    def _check(self, name):
        self.calls.append(name)
        if self.fail:
            raise redis.ConnectionError("Connection refused")

    def ping(self):
        self._check("ping")
        return True

    def sismember(self, key, member):
        self._check("sismember")
        return int(member in self.sets.get(key, set()))

    def sadd(self, key, member):
        self._check("sadd")
        with self._lock:
            members = self.sets.setdefault(key, set())
            if member in members:
                return 0
            members.add(member)
            return 1


def make_result(status, identifier="192.0.2.1", zone="authbl.mail.abusix.zone"):
    """Build a LookupResult with the given status."""
    response_data = {
        LookupStatus.LISTED: "127.0.0.2",
        LookupStatus.NOT_LISTED: "",
        LookupStatus.ERROR: "Timeout: timed out",
    }[status]
    return LookupResult(
        identifier=identifier,
        zone=zone,
        query_name=f"x.KEY.{zone}.",
        status=status,
        response_data=response_data,
        timestamp=datetime.now(timezone.utc),
        failure_type="timeout" if status == LookupStatus.ERROR else None,
    )


@pytest.fixture
def fake_redis():
    """Fake Redis client holding the compromised accounts set."""
    return FakeRedisSet()


@pytest.fixture
def mock_resolver():
    """Mock ReputationResolver that finds nothing by default."""
    mock = Mock()
    mock.lookup.side_effect = lambda identifier, zone: make_result(
        LookupStatus.NOT_LISTED, identifier, zone
    )
    return mock


@pytest.fixture
def mock_notifier():
    """Mock Notifier recording submitted attribute mappings."""
    mock = Mock()
    mock.submit.return_value = None
    return mock


@pytest.fixture
def auth_request():
    """Authenticated policy request as sent by Postfix."""
    return PolicyRequest(
        attrs={
            "request": "smtpd_access_policy",
            "protocol_state": "RCPT",
            "instance": "123.456.7",
            "client_address": "192.0.2.1",
            "sasl_method": "PLAIN",
            "sasl_username": "Bob@Example.com",
            "recipient": "Alice@Example.org",
        }
    )


@pytest.fixture
def lookup_result():
    """Factory for LookupResult instances."""
    return make_result
