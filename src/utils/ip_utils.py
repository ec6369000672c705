"""Identifier utilities for reputation DNS queries."""

import hashlib
import ipaddress
from enum import Enum


class IdentifierKind(Enum):
    """Classification of a value looked up against a reputation zone."""

    IPV4 = "IPV4"
    IPV6 = "IPV6"
    OPAQUE = "OPAQUE"  # Anything else, looked up by SHA-1 digest


def classify_identifier(value: str) -> IdentifierKind:
    """Classify a lookup identifier as IPv4, IPv6 or opaque string.

    Args:
        value: Client address, recipient or any other string.

    Returns:
        IdentifierKind: Tagged kind of the identifier.

    Examples:
        >>> classify_identifier("203.0.113.45")
        <IdentifierKind.IPV4: 'IPV4'>
        >>> classify_identifier("2001:db8::1")
        <IdentifierKind.IPV6: 'IPV6'>
        >>> classify_identifier("bob@example.com")
        <IdentifierKind.OPAQUE: 'OPAQUE'>
    """
    try:
        addr = ipaddress.ip_address(value)
    except ValueError:
        return IdentifierKind.OPAQUE

    if isinstance(addr, ipaddress.IPv4Address):
        return IdentifierKind.IPV4
    # Scoped addresses (fe80::1%eth0) have no nibble form
    if addr.scope_id:
        return IdentifierKind.OPAQUE
    return IdentifierKind.IPV6


def is_valid_ipv4(ip: str) -> bool:
    """Validate if string is a valid IPv4 address.

    Examples:
        >>> is_valid_ipv4("203.0.113.45")
        True
        >>> is_valid_ipv4("::1")
        False
    """
    return classify_identifier(ip) is IdentifierKind.IPV4


def reverse_ip(ip: str) -> str:
    """Convert IPv4 address to reverse DNS format.

    Args:
        ip: IPv4 address in dotted-quad format.

    Returns:
        str: Reversed IP address.

    Raises:
        ValueError: If IP is not a valid IPv4 address.

    Examples:
        >>> reverse_ip("203.0.113.45")
        '45.113.0.203'
    """
    if not is_valid_ipv4(ip):
        raise ValueError(f"Invalid IPv4 address: {ip}")

    octets = ip.split(".")
    return ".".join(reversed(octets))


def ipv6_to_nibbles(ip: str) -> str:
    """Convert IPv6 address to reversed dotted nibble format.

    The address is expanded to all 32 hex digits before reversal, so
    ``::1`` and ``0:0:0:0:0:0:0:1`` produce the same name.

    Raises:
        ValueError: If IP is not a valid IPv6 address.

    Examples:
        >>> ipv6_to_nibbles("2001:db8::1")[:9]
        '1.0.0.0.0'
    """
    if classify_identifier(ip) is not IdentifierKind.IPV6:
        raise ValueError(f"Invalid IPv6 address: {ip}")

    digits = ipaddress.IPv6Address(ip).exploded.replace(":", "")
    return ".".join(reversed(digits))


def hash_identifier(value: str) -> str:
    """Return the lowercase hex SHA-1 digest of a raw identifier."""
    return hashlib.sha1(value.encode("utf-8")).hexdigest()


def build_query_name(identifier: str, api_key: str, zone: str) -> str:
    """Build the reputation query name for an identifier.

    Args:
        identifier: IPv4 address, IPv6 address or opaque string.
        api_key: Reputation service API key, inserted before the zone.
        zone: Reputation zone domain (e.g., "authbl.mail.abusix.zone").

    Returns:
        str: Fully qualified query name with trailing dot.

    Raises:
        ValueError: If zone is empty.

    Examples:
        >>> build_query_name("1.2.3.4", "K", "z")
        '4.3.2.1.K.z.'
    """
    if not zone:
        raise ValueError("Reputation zone cannot be empty")

    kind = classify_identifier(identifier)
    if kind is IdentifierKind.IPV4:
        label = reverse_ip(identifier)
    elif kind is IdentifierKind.IPV6:
        label = ipv6_to_nibbles(identifier)
    elif kind is IdentifierKind.OPAQUE:
        label = hash_identifier(identifier)
    else:
        raise ValueError(f"Unhandled identifier kind: {kind}")

    return f"{label}.{api_key}.{zone}."
