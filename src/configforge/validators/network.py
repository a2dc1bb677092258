"""Format validators for network-facing values."""

import ipaddress
import re
from typing import Any

from configforge.validators.base import Validator


# =============================================================================
# Format Patterns
# =============================================================================

HOSTNAME_LABEL_PATTERN = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")

MAC_ADDRESS_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$")

# Email: Basic RFC 5322 compliant pattern
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

# URL: Basic URL pattern
URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)


def is_hostname(value: str) -> bool:
    """A single DNS label."""
    return bool(HOSTNAME_LABEL_PATTERN.match(value))


def is_fqdn(value: str) -> bool:
    """Two or more DNS labels separated by dots, with an optional trailing dot."""
    value = value[:-1] if value.endswith(".") else value
    if not value or len(value) > 253:
        return False
    labels = value.split(".")
    return len(labels) > 1 and all(is_hostname(label) for label in labels)


def is_ip_address(value: str, version: int | None = None) -> bool:
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return False
    return version is None or address.version == version


# =============================================================================
# Validators
# =============================================================================


class IPAddressValidator(Validator):
    """Accepts IPv4/IPv6 addresses and, optionally, FQDNs or keywords."""

    def __init__(
        self,
        allow_ipv4: bool = True,
        allow_ipv6: bool = True,
        allow_fqdn: bool = False,
        allow_keywords: tuple[str, ...] | list[str] = (),
    ):
        self.allow_ipv4 = allow_ipv4
        self.allow_ipv6 = allow_ipv6
        self.allow_fqdn = allow_fqdn
        self.allow_keywords = tuple(allow_keywords)

    def validate(self, value: Any, field_name: str) -> None:
        value_str = str(value)
        if value_str in self.allow_keywords:
            return
        if self.allow_ipv4 and is_ip_address(value_str, 4):
            return
        if self.allow_ipv6 and is_ip_address(value_str, 6):
            return
        if self.allow_fqdn and is_fqdn(value_str):
            return

        accepted = [
            label
            for label, allowed in (
                ("IPv4 address", self.allow_ipv4),
                ("IPv6 address", self.allow_ipv6),
                ("FQDN", self.allow_fqdn),
            )
            if allowed
        ]
        if self.allow_keywords:
            accepted.append("one of " + ", ".join(self.allow_keywords))
        self.fail(
            f"Field '{field_name}' must be a valid {' or '.join(accepted)}, received '{value_str}'.",
            "IP_ADDRESS_VALIDATOR_FAILED",
            field_name,
            value,
        )


class HostnameValidator(Validator):
    """Accepts a bare hostname and/or an FQDN."""

    def __init__(self, allow_hostname: bool = True, allow_fqdn: bool = True):
        self.allow_hostname = allow_hostname
        self.allow_fqdn = allow_fqdn

    def validate(self, value: Any, field_name: str) -> None:
        value_str = str(value)
        if self.allow_hostname and is_hostname(value_str):
            return
        if self.allow_fqdn and is_fqdn(value_str):
            return
        self.fail(
            f"Field '{field_name}' must be a valid hostname, received '{value_str}'.",
            "HOSTNAME_VALIDATOR_FAILED",
            field_name,
            value,
        )


class MACAddressValidator(Validator):
    def validate(self, value: Any, field_name: str) -> None:
        if not MAC_ADDRESS_PATTERN.match(str(value)):
            self.fail(
                f"Field '{field_name}' must be a valid MAC address, received '{value}'.",
                "MAC_ADDRESS_VALIDATOR_FAILED",
                field_name,
                value,
            )


class URLValidator(Validator):
    def validate(self, value: Any, field_name: str) -> None:
        if not URL_PATTERN.match(str(value)):
            self.fail(
                f"Field '{field_name}' must be a valid URL.",
                "URL_VALIDATOR_FAILED",
                field_name,
                value,
            )


class EmailAddressValidator(Validator):
    def validate(self, value: Any, field_name: str) -> None:
        if not EMAIL_PATTERN.match(str(value)):
            self.fail(
                f"Field '{field_name}' must be a valid email address.",
                "EMAIL_ADDRESS_VALIDATOR_FAILED",
                field_name,
                value,
            )
