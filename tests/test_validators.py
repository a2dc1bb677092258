"""Tests for validators and the error payload."""

import pytest

from configforge.errors import (
    ConflictError,
    FailedDependencyError,
    LockTimeoutError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from configforge.validators import (
    EmailAddressValidator,
    HostnameValidator,
    IPAddressValidator,
    LengthValidator,
    MACAddressValidator,
    NumericRangeValidator,
    RegexValidator,
    URLValidator,
    Validator,
)


def _rejects(validator, value, response_id):
    with pytest.raises(ValidationError) as exc_info:
        validator.validate(value, "field")
    assert exc_info.value.response_id == response_id
    return exc_info.value


class TestErrorPayload:
    def test_validation_error_payload(self):
        error = ValidationError(message="Bad value.", response_id="FIELD_REQUIRED", data={"field": "name"})
        assert error.to_dict() == {
            "code": 400,
            "status": "bad request",
            "response_id": "FIELD_REQUIRED",
            "message": "Bad value.",
            "data": {"field": "name"},
        }

    @pytest.mark.parametrize(
        "error_class,code,status",
        [
            (NotFoundError, 404, "not found"),
            (ConflictError, 409, "conflict"),
            (FailedDependencyError, 424, "failed dependency"),
            (ServerError, 500, "internal server error"),
            (LockTimeoutError, 500, "internal server error"),
        ],
    )
    def test_codes_and_statuses(self, error_class, code, status):
        error = error_class(message="m", response_id="X")
        assert error.code == code
        assert error.status == status
        assert error.data == {}

    def test_lock_timeout_is_server_error(self):
        assert issubclass(LockTimeoutError, ServerError)


class TestBaseValidator:
    def test_validate_must_be_overridden(self):
        with pytest.raises(NotImplementedError):
            Validator().validate("x", "field")


class TestNumericRangeValidator:
    def test_within_range(self):
        NumericRangeValidator(300, 86400).validate(3600, "timeout")

    def test_bounds_are_inclusive(self):
        validator = NumericRangeValidator(300, 86400)
        validator.validate(300, "timeout")
        validator.validate(86400, "timeout")

    def test_below_minimum(self):
        error = _rejects(NumericRangeValidator(300, 86400), 100, "NUMERIC_RANGE_VALIDATOR_MINIMUM_CONSTRAINT")
        assert error.data == {"field": "field", "value": 100}

    def test_above_maximum(self):
        _rejects(NumericRangeValidator(300, 86400), 90000, "NUMERIC_RANGE_VALIDATOR_MAXIMUM_CONSTRAINT")

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValueError):
            NumericRangeValidator(10, 1)


class TestLengthValidator:
    def test_too_short(self):
        _rejects(LengthValidator(minimum=3), "ab", "LENGTH_VALIDATOR_MINIMUM_CONSTRAINT")

    def test_too_long(self):
        _rejects(LengthValidator(maximum=3), "abcd", "LENGTH_VALIDATOR_MAXIMUM_CONSTRAINT")

    def test_within_bounds(self):
        LengthValidator(minimum=1, maximum=3).validate("abc", "name")


class TestRegexValidator:
    def test_match(self):
        RegexValidator(r"^[a-z]+$").validate("abc", "name")

    def test_no_match_uses_custom_message(self):
        error = _rejects(RegexValidator(r"^[a-z]+$", error_message="lowercase only"), "ABC", "REGEX_VALIDATOR_FAILED")
        assert error.message == "lowercase only"

    def test_inverted(self):
        validator = RegexValidator(r"\s", invert=True)
        validator.validate("nospace", "name")
        _rejects(validator, "has space", "REGEX_VALIDATOR_FAILED")


class TestIPAddressValidator:
    @pytest.mark.parametrize("value", ["10.0.0.1", "192.168.1.254", "::1", "fe80::1"])
    def test_accepts_addresses(self, value):
        IPAddressValidator().validate(value, "address")

    def test_rejects_ipv6_when_disabled(self):
        _rejects(IPAddressValidator(allow_ipv6=False), "::1", "IP_ADDRESS_VALIDATOR_FAILED")

    def test_rejects_ipv4_when_disabled(self):
        _rejects(IPAddressValidator(allow_ipv4=False), "10.0.0.1", "IP_ADDRESS_VALIDATOR_FAILED")

    def test_fqdn_only_when_allowed(self):
        _rejects(IPAddressValidator(), "ntp.example.com", "IP_ADDRESS_VALIDATOR_FAILED")
        IPAddressValidator(allow_fqdn=True).validate("ntp.example.com", "address")

    def test_keywords(self):
        IPAddressValidator(allow_keywords=["dynamic"]).validate("dynamic", "address")

    def test_rejects_garbage(self):
        error = _rejects(IPAddressValidator(), "300.1.1.1", "IP_ADDRESS_VALIDATOR_FAILED")
        assert "IPv4 address" in error.message


class TestHostnameValidator:
    @pytest.mark.parametrize("value", ["fw1", "fw-1", "fw1.example.com", "example.com."])
    def test_accepts(self, value):
        HostnameValidator().validate(value, "hostname")

    @pytest.mark.parametrize("value", ["-bad", "bad-", "under_score", "", "a" * 64])
    def test_rejects(self, value):
        _rejects(HostnameValidator(), value, "HOSTNAME_VALIDATOR_FAILED")

    def test_fqdn_disallowed(self):
        _rejects(HostnameValidator(allow_fqdn=False), "fw1.example.com", "HOSTNAME_VALIDATOR_FAILED")

    def test_bare_hostname_disallowed(self):
        _rejects(HostnameValidator(allow_hostname=False), "fw1", "HOSTNAME_VALIDATOR_FAILED")


class TestFormatValidators:
    def test_mac_address(self):
        MACAddressValidator().validate("00:11:22:aa:bb:cc", "mac")
        MACAddressValidator().validate("00-11-22-AA-BB-CC", "mac")
        _rejects(MACAddressValidator(), "00:11:22", "MAC_ADDRESS_VALIDATOR_FAILED")

    def test_url(self):
        URLValidator().validate("https://example.com/path", "url")
        _rejects(URLValidator(), "ftp://example.com", "URL_VALIDATOR_FAILED")

    def test_email(self):
        EmailAddressValidator().validate("admin@example.com", "email")
        _rejects(EmailAddressValidator(), "admin@", "EMAIL_ADDRESS_VALIDATOR_FAILED")
