"""DNS checker service for reputation zone queries."""

import ipaddress
import logging
from datetime import datetime, timezone
from typing import List, Optional

import dns.exception
import dns.resolver

from src.exceptions import ApiKeyError
from src.models.lookup_result import LookupResult, LookupStatus
from src.utils.ip_utils import build_query_name


logger = logging.getLogger(__name__)

AUTHBL_ZONE = "authbl.mail.abusix.zone"
AUTHBL_RCPT_ZONE = "authbl-rcpt.mail.abusix.zone"

# Test point published by the reputation service for key verification
TEST_POINT = "127.0.0.2"
TEST_POINT_ANSWER = "127.0.0.4"

_LOOPBACK = ipaddress.IPv4Network("127.0.0.0/8")


def categorize_failure(exception: Exception) -> str:
    """Categorize a DNS failure into a failure type for logging.

    Args:
        exception: The DNS exception that occurred.

    Returns:
        str: One of: timeout, invalid_response_type, no_nameservers,
             unknown_error.
    """
    if isinstance(exception, dns.exception.Timeout):
        return "timeout"
    elif isinstance(exception, dns.resolver.NoAnswer):
        return "invalid_response_type"
    elif isinstance(exception, dns.resolver.NoNameservers):
        return "no_nameservers"
    else:
        return "unknown_error"


def validate_response(response: str) -> bool:
    """Validate that a reputation answer is in the 127.0.0.0/8 range.

    Args:
        response: IP address string from the DNS answer.

    Returns:
        bool: True if the address is an encoded status code.
    """
    try:
        return ipaddress.IPv4Address(response) in _LOOPBACK
    except ValueError:
        return False


class ReputationResolver:
    """Looks up identifiers against reputation zones.

    Holds only read-only settings, so one instance is shared by every
    connection thread. Each lookup builds its own dnspython resolver.

    Attributes:
        api_key: Reputation service API key.
        timeout: Total lifetime of a single query in seconds.
        nameservers: Resolver addresses, or None for the system resolver.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 5,
        nameservers: Optional[List[str]] = None,
        zone: str = AUTHBL_ZONE,
    ):
        if not api_key:
            raise ValueError("api_key must not be empty")

        self.api_key = api_key
        self.timeout = timeout
        self.nameservers = nameservers
        self.zone = zone

    def _resolver(self) -> dns.resolver.Resolver:
        resolver = dns.resolver.Resolver()
        resolver.lifetime = self.timeout  # Total timeout for query
        if self.nameservers:
            resolver.nameservers = list(self.nameservers)
        return resolver

    def lookup(self, identifier: str, zone: str) -> LookupResult:
        """Check a single identifier against a single reputation zone.

        Args:
            identifier: IPv4/IPv6 address or opaque string.
            zone: Reputation zone domain.

        Returns:
            LookupResult: LISTED, NOT_LISTED or ERROR.
        """
        query_name = build_query_name(identifier, self.api_key, zone)

        def result(
            status: LookupStatus, response_data: str, failure_type: str | None = None
        ) -> LookupResult:
            return LookupResult(
                identifier=identifier,
                zone=zone,
                query_name=query_name,
                status=status,
                response_data=response_data,
                timestamp=datetime.now(timezone.utc),
                failure_type=failure_type,
            )

        try:
            answers = self._resolver().resolve(query_name, "A")
        except dns.resolver.NXDOMAIN:
            # Definitive "not listed" response
            return result(LookupStatus.NOT_LISTED, "")
        except dns.exception.DNSException as e:
            # Transient failures - cannot determine status
            return result(
                LookupStatus.ERROR,
                f"{type(e).__name__}: {e}",
                failure_type=categorize_failure(e),
            )

        responses = [str(answer) for answer in answers]
        if not responses:
            return result(
                LookupStatus.ERROR, "empty answer", failure_type="invalid_response_type"
            )

        invalid = [r for r in responses if not validate_response(r)]
        if invalid:
            logger.warning(
                "Reputation service returned non-loopback answer",
                extra={
                    "zone": zone,
                    "answers": responses,
                },
            )
            return result(
                LookupStatus.ERROR,
                f"invalid_response_range:{','.join(invalid)}",
                failure_type="invalid_response_range",
            )

        logger.debug(
            f"dns item={identifier} lookup={query_name} result={','.join(responses)}"
        )
        return result(LookupStatus.LISTED, ",".join(responses))

    def verify_api_key(self) -> None:
        """Check the API key against the reputation service's test point.

        Raises:
            ApiKeyError: If the test point is not answered with the expected
                status code.
        """
        test = self.lookup(TEST_POINT, self.zone)
        if not test.is_listed() or TEST_POINT_ANSWER not in test.response_data.split(","):
            raise ApiKeyError(
                f"test lookup failed, check your API key "
                f"({test.status.value}: {test.response_data or 'no answer'})"
            )
