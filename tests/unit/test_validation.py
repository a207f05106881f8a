"""Tests for shared input validation."""

import pytest

from staffauth.domain.validation import (
    is_valid_email,
    normalize_email,
    validate_email,
    validate_name,
    validate_password,
)


class TestEmail:
    @pytest.mark.parametrize(
        "email",
        ["test@example.com", "first.last+tag@sub.example.org", "  Mixed@Example.COM  "],
    )
    def test_valid(self, email: str) -> None:
        assert is_valid_email(email)
        assert validate_email(email) == ()

    @pytest.mark.parametrize(
        "email", ["invalidemail", "a@b", "@example.com", "user@", "user@@example.com"]
    )
    def test_invalid_format(self, email: str) -> None:
        errors = validate_email(email)
        assert len(errors) == 1
        assert errors[0].code == "invalid_format"
        assert errors[0].field == "email"

    def test_missing(self) -> None:
        assert validate_email("   ")[0].code == "required"
        assert validate_email(None)[0].code == "required"

    def test_too_long(self) -> None:
        assert not is_valid_email("a" * 250 + "@example.com")

    def test_normalize(self) -> None:
        assert normalize_email("  Jane@Example.COM ") == "jane@example.com"
        assert normalize_email(None) == ""


class TestName:
    def test_valid(self) -> None:
        assert validate_name("Jane Doe") == ()

    def test_blank(self) -> None:
        assert validate_name("  ")[0].code == "required"

    def test_too_long(self) -> None:
        errors = validate_name("x" * 192)
        assert errors[0].code == "max_length"


class TestPassword:
    def test_valid(self) -> None:
        assert validate_password("thisissupersafe", "test@example.com", 10) == ()

    def test_too_short(self) -> None:
        errors = validate_password("short", None, 10)
        assert [e.code for e in errors] == ["min_length"]
        assert "10" in errors[0].message

    def test_repeated_character(self) -> None:
        codes = [e.code for e in validate_password("aaaaaaaaaaaa", None, 10)]
        assert codes == ["too_simple"]

    def test_matches_email(self) -> None:
        errors = validate_password("Long@Example.com", "long@example.com", 10)
        assert [e.code for e in errors] == ["matches_email"]

    def test_missing(self) -> None:
        assert validate_password("", None, 10)[0].code == "required"

    def test_custom_field(self) -> None:
        errors = validate_password("x", None, 10, field="newPassword")
        assert errors[0].field == "newPassword"
