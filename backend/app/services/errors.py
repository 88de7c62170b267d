"""
Domain exceptions.

Expected business outcomes (already active, missing connection, quota) are
returned as values, not raised. These cover the genuinely unexpected.
"""

from typing import Optional


class EntitlementError(Exception):
    """Base class for entitlement service errors."""
    code = "ENTITLEMENT_ERROR"


class AccountNotFoundError(EntitlementError):
    """Raised when the account behind a request does not exist."""
    code = "BUSINESS_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class TemplateNotFoundError(EntitlementError):
    """Raised when a template id is not in the catalog."""
    code = "MISSION_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f'Template "{template_id}" not found in catalog')


class PublicationError(EntitlementError):
    """
    Raised when the activation record committed but the published campaign
    could not be written. The record stays ACTIVE and is healed by reconcile.
    """
    code = "PUBLICATION_PENDING"

    def __init__(self, account_id: str, template_id: str, record_id: Optional[str] = None):
        self.account_id = account_id
        self.template_id = template_id
        self.record_id = record_id
        super().__init__(
            f"Activation {account_id}/{template_id} is active but its campaign is not published yet"
        )


class InvalidTransitionError(EntitlementError):
    """Raised on an illegal published-campaign status change."""
    code = "INVALID_TRANSITION"

    def __init__(self, campaign_id: str, current: str, requested: str):
        self.campaign_id = campaign_id
        self.current = current
        self.requested = requested
        super().__init__(f"Campaign is {current}, cannot move to {requested}")


class ConcurrencyConflictError(EntitlementError):
    """
    Raised when the usage compare-and-set keeps losing to concurrent writers.
    Transient: the whole call can be retried safely.
    """
    code = "CONCURRENT_UPDATE"

    def __init__(self, account_id: str, attempts: int):
        self.account_id = account_id
        self.attempts = attempts
        super().__init__(f"Usage for account {account_id} changed concurrently {attempts} times, retry")
