"""Reputation lookup result models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LookupStatus(Enum):
    """Reputation query result classification."""

    LISTED = "LISTED"  # Every A record in 127.0.0.0/8
    NOT_LISTED = "NOT_LISTED"  # NXDOMAIN response
    ERROR = "ERROR"  # Timeout, SERVFAIL, anomalous answer or other failure


@dataclass
class LookupResult:
    """Result of a single reputation zone query.

    Attributes:
        identifier: Value that was looked up (client address, recipient).
        zone: Reputation zone that was queried.
        query_name: Fully qualified name sent to the resolver.
        status: Classification of the query result.
        response_data: Returned addresses or error description.
        timestamp: When the query completed.
        failure_type: Category of failure for ERROR results, else None.
    """

    identifier: str
    zone: str
    query_name: str
    status: LookupStatus
    response_data: str
    timestamp: datetime
    failure_type: str | None = None

    def is_listed(self) -> bool:
        """Check if the identifier is listed on this zone.

        Returns:
            bool: True if status is LISTED, False otherwise.
        """
        return self.status == LookupStatus.LISTED

    def is_error(self) -> bool:
        """Check if the lookup failed without a definitive answer.

        Returns:
            bool: True if status is ERROR, False otherwise.
        """
        return self.status == LookupStatus.ERROR
