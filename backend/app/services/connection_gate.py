# app/services/connection_gate.py
"""
Connection Gate.

Checks whether a business has linked the external accounts a template
needs. A missing connection is an ordinary, user-actionable answer and is
returned as data; only an unknown template raises.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Account, AccountConnection
from app.services.catalog import CampaignTemplate, ConnectionRequirement, get_template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    satisfied: bool
    missing: Optional[ConnectionRequirement] = None

    def to_payload(self) -> dict:
        if self.satisfied:
            return {"satisfied": True}
        return {"satisfied": False, "missing": self.missing.to_payload()}


SATISFIED = GateResult(satisfied=True)


class ConnectionGate:
    """Per-template connection check against AccountConnection rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check(self, account: Account, template: CampaignTemplate) -> GateResult:
        """
        Report the first missing requirement in template order.

        Templates with no requirements are satisfied without touching the
        database.
        """
        requirements = template.connection_requirements
        if not requirements:
            return SATISFIED

        connected = await self._connected_tags(account.id)
        for requirement in requirements:
            if requirement.tag not in connected:
                logger.info(
                    f"Account {account.id} missing {requirement.tag} for {template.template_id}"
                )
                return GateResult(satisfied=False, missing=requirement)

        return SATISFIED

    async def check_template_id(self, account: Account, template_id: str) -> GateResult:
        """Same as check(); raises TemplateNotFoundError for unknown ids."""
        return await self.check(account, get_template(template_id))

    async def _connected_tags(self, account_id: str) -> Set[str]:
        result = await self.session.execute(
            select(AccountConnection.tag).where(
                AccountConnection.account_id == account_id,
                AccountConnection.connected.is_(True),
            )
        )
        return set(result.scalars().all())
