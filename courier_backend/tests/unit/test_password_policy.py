import pytest

from app.core.password_policy import PasswordPolicy


def test_valid_password():
    is_valid, errors = PasswordPolicy.validate("Sup3rSecret")
    assert is_valid
    assert errors == []


@pytest.mark.parametrize(
    "password,expected",
    [
        ("Ab1", "at least 8 characters"),
        ("alllowercase1", "one uppercase letter"),
        ("ALLUPPERCASE1", "one uppercase letter"),
        ("NoDigitsHere", "one uppercase letter"),
        ("A1" + "a" * 127, "at most 128 characters"),
    ],
)
def test_policy_violations(password, expected):
    is_valid, errors = PasswordPolicy.validate(password)
    assert not is_valid
    assert any(expected in e for e in errors)


def test_password_containing_email_name_is_allowed():
    is_valid, errors = PasswordPolicy.validate("Dispatch2024")
    assert is_valid
    assert errors == []


@pytest.mark.parametrize(
    "password",
    [
        "Ääbcdefg1",  # only non-ASCII uppercase
        "ABCDEFGé1",  # only non-ASCII lowercase
        "Abcdefgh٣",  # only a non-ASCII digit
    ],
)
def test_complexity_requires_ascii_classes(password):
    is_valid, errors = PasswordPolicy.validate(password)
    assert not is_valid
    assert any("one uppercase letter" in e for e in errors)
