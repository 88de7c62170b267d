# backend/tests/test_verification.py
"""
Tests for the Verification Method Selector.
"""

import pytest

from app.services import verification
from app.services.catalog import get_template
from app.services.verification import CheckInMethod, VerificationMethodError


@pytest.fixture
def check_in():
    return get_template("VISIT_CHECKIN")


@pytest.fixture
def follow():
    return get_template("INSTAGRAM_FOLLOW")


def test_presence_template_without_method_requires_selection(check_in):
    assert verification.requires_selection(check_in, {"reward": 50}) is True
    assert verification.requires_selection(check_in, {"check_in_method": None}) is True


def test_presence_template_with_method_does_not_require_selection(check_in):
    assert verification.requires_selection(check_in, {"check_in_method": "GPS"}) is False


def test_other_templates_never_require_selection(follow):
    assert verification.requires_selection(follow, {}) is False


@pytest.mark.parametrize("method", ["QR_ONLY", "GPS", "BOTH"])
def test_apply_records_method_verbatim(check_in, method):
    config = {"reward": 50, "max_participants": 10}

    applied = verification.apply(check_in, config, method)

    assert applied["check_in_method"] == method
    assert applied["reward"] == 50
    assert "check_in_method" not in config  # input untouched


def test_apply_accepts_enum(check_in):
    applied = verification.apply(check_in, {}, CheckInMethod.BOTH)
    assert applied["check_in_method"] == "BOTH"


def test_apply_rejects_unknown_method(check_in):
    with pytest.raises(VerificationMethodError):
        verification.apply(check_in, {}, "BLUETOOTH")


def test_apply_rejects_non_presence_template(follow):
    with pytest.raises(ValueError):
        verification.apply(follow, {}, "GPS")


def test_parse_method():
    assert verification.parse_method(None) is None
    assert verification.parse_method("QR_ONLY") is CheckInMethod.QR_ONLY
    with pytest.raises(VerificationMethodError):
        verification.parse_method("qr")


def test_accepted_evidence():
    assert verification.accepted_evidence("QR_ONLY") == {"qr"}
    assert verification.accepted_evidence("GPS") == {"gps"}
    assert verification.accepted_evidence(CheckInMethod.BOTH) == {"qr", "gps"}


def test_badge_label():
    assert verification.badge_label("QR_ONLY") == "QR Only"
    assert verification.badge_label("BOTH") == "QR or GPS"
    assert verification.badge_label(None) is None
