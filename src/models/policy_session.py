"""Policy request model and per-connection session state machine.

A connection carries many requests. Each request is a run of ``name=value``
lines closed by a blank line:

    COLLECTING --(name=value)--> COLLECTING
    COLLECTING --(blank line, >=1 attribute)--> COMPLETE --> COLLECTING
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class SessionState(Enum):
    """Protocol state of a single connection."""

    COLLECTING = "COLLECTING"
    COMPLETE = "COMPLETE"


@dataclass
class PolicyRequest:
    """One complete set of attributes submitted for a policy decision.

    Attributes:
        attrs: Attribute name to value, as sent by the mail server.
    """

    attrs: Dict[str, str] = field(default_factory=dict)

    @property
    def instance(self) -> str | None:
        return self.attrs.get("instance")

    @property
    def client_address(self) -> str | None:
        return self.attrs.get("client_address")

    @property
    def recipient(self) -> str | None:
        return self.attrs.get("recipient")

    @property
    def username(self) -> str | None:
        return self.attrs.get("sasl_username")

    def is_authenticated(self) -> bool:
        """Check if the session used SMTP AUTH.

        Returns:
            bool: True if both sasl_method and sasl_username are non-empty.
        """
        return bool(self.attrs.get("sasl_method") and self.attrs.get("sasl_username"))

    def normalize_username(self) -> str:
        """Lowercase sasl_username in place and return it."""
        username = (self.attrs.get("sasl_username") or "").lower()
        self.attrs["sasl_username"] = username
        return username


def parse_attribute_line(line: str) -> tuple[str, str]:
    """Split an attribute line at the first ``=``.

    A line without ``=`` is kept as a key with an empty value.

    Examples:
        >>> parse_attribute_line("recipient=a=b@example.com")
        ('recipient', 'a=b@example.com')
        >>> parse_attribute_line("garbage")
        ('garbage', '')
    """
    key, _, value = line.partition("=")
    return key, value


class PolicySession:
    """Accumulates attribute lines for one connection.

    Example:
        >>> session = PolicySession()
        >>> session.feed_line("a=1")
        >>> session.feed_line("b=2")
        >>> session.feed_line("").attrs
        {'a': '1', 'b': '2'}
        >>> session.state
        <SessionState.COMPLETE: 'COMPLETE'>
    """

    def __init__(self) -> None:
        self._attrs: Dict[str, str] = {}
        self.state = SessionState.COLLECTING

    @property
    def pending_attributes(self) -> int:
        return len(self._attrs)

    def feed_line(self, line: str) -> Optional[PolicyRequest]:
        """Consume one input line with its line terminator removed.

        Args:
            line: Raw protocol line.

        Returns:
            Optional[PolicyRequest]: Completed request when the line closed
            one, None otherwise.
        """
        if self.state is SessionState.COMPLETE:
            self.reset()

        if line:
            key, value = parse_attribute_line(line)
            self._attrs[key] = value
            return None

        # Blank line before any attribute is a teardown artifact
        if not self._attrs:
            return None

        self.state = SessionState.COMPLETE
        return PolicyRequest(attrs=dict(self._attrs))

    def reset(self) -> None:
        """Discard collected attributes and return to COLLECTING.

        Called once the verdict for a completed request has been written.
        """
        self._attrs = {}
        self.state = SessionState.COLLECTING
