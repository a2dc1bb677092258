"""Validators that can be attached to any Field."""

from configforge.validators.base import Validator
from configforge.validators.canned import (
    LengthValidator,
    NumericRangeValidator,
    RegexValidator,
)
from configforge.validators.network import (
    EmailAddressValidator,
    HostnameValidator,
    IPAddressValidator,
    MACAddressValidator,
    URLValidator,
)

__all__ = [
    "EmailAddressValidator",
    "HostnameValidator",
    "IPAddressValidator",
    "LengthValidator",
    "MACAddressValidator",
    "NumericRangeValidator",
    "RegexValidator",
    "URLValidator",
    "Validator",
]
