# app/services/verification.py
"""
Verification Method Selector.

Presence-verified missions (Visit & Check-In) need the business to pick how
a customer proves they were there. The choice is recorded verbatim in the
activation config; customer check-ins are verified elsewhere.
"""

from enum import Enum
from typing import FrozenSet, Optional, Union

from app.services.catalog import CampaignTemplate

GPS_RADIUS_METERS = 100


class CheckInMethod(str, Enum):
    QR_ONLY = "QR_ONLY"   # Scan the location-bound code; no geolocation
    GPS = "GPS"           # Within GPS_RADIUS_METERS of the registered location
    BOTH = "BOTH"         # Either one is enough


class VerificationMethodError(ValueError):
    """Raised for a method string that is not one of QR_ONLY, GPS, BOTH."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"checkInMethod must be one of QR_ONLY, GPS, BOTH (got {value!r})")


_EVIDENCE = {
    CheckInMethod.QR_ONLY: frozenset({"qr"}),
    CheckInMethod.GPS: frozenset({"gps"}),
    CheckInMethod.BOTH: frozenset({"qr", "gps"}),
}

_BADGES = {
    CheckInMethod.QR_ONLY: "QR Only",
    CheckInMethod.GPS: "GPS",
    CheckInMethod.BOTH: "QR or GPS",
}


def parse_method(value: Union[CheckInMethod, str, None]) -> Optional[CheckInMethod]:
    if value is None or isinstance(value, CheckInMethod):
        return value
    try:
        return CheckInMethod(value)
    except ValueError:
        raise VerificationMethodError(value)


def requires_selection(template: CampaignTemplate, config: dict) -> bool:
    """True when activation must stop and ask for a check-in method."""
    return template.is_presence_verified and not config.get("check_in_method")


def apply(template: CampaignTemplate, config: dict, method: Union[CheckInMethod, str]) -> dict:
    """Return a copy of `config` carrying the selected method."""
    if not template.is_presence_verified:
        raise ValueError(f"{template.template_id} does not use presence verification")
    selected = parse_method(method)
    if selected is None:
        raise VerificationMethodError(method)
    return {**config, "check_in_method": selected.value}


def accepted_evidence(method: Union[CheckInMethod, str]) -> FrozenSet[str]:
    """Which kinds of customer proof the policy accepts."""
    return _EVIDENCE[parse_method(method)]


def badge_label(method: Union[CheckInMethod, str, None]) -> Optional[str]:
    """Short label for an "active - QR Only" style badge."""
    if method is None:
        return None
    return _BADGES[parse_method(method)]
