import pytest

from app.services.tracking_code import (
    TRACKING_CODE_PATTERN,
    generate_tracking_code,
    is_valid_tracking_code,
    normalize_tracking_code,
)


def test_generated_codes_match_format():
    for _ in range(50):
        assert TRACKING_CODE_PATTERN.match(generate_tracking_code())


def test_generated_codes_are_distinct():
    codes = {generate_tracking_code() for _ in range(500)}
    assert len(codes) == 500


def test_normalize_strips_and_uppercases():
    assert normalize_tracking_code("  crr-1a2b3c4d-x9 ") == "CRR-1A2B3C4D-X9"


@pytest.mark.parametrize(
    "code,valid",
    [
        ("CRR-1A2B3C4D-X9", True),
        ("crr-1a2b3c4d-x9", True),
        ("CRR-1A2B3C4-X9", False),
        ("ABC-1A2B3C4D-X9", False),
        ("CRR-1A2B3C4D-X", False),
        ("", False),
    ],
)
def test_is_valid_tracking_code(code, valid):
    assert is_valid_tracking_code(code) is valid
