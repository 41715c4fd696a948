from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.repositories import OrganizationRepository, UserRepository
from formlytics.models.user import User

logger = logging.getLogger(__name__)


def default_organization_name(email: str, name: str | None) -> str:
    owner = (name or "").strip() or email.split("@", 1)[0]
    return f"{owner}'s Organization"


async def provision_user(
    session: AsyncSession,
    *,
    subject: str,
    email: str,
    name: str | None = None,
) -> User:
    """Create a user together with the organization they own.

    The caller owns the transaction and commits it.
    """
    organization = await OrganizationRepository(session).create(
        name=default_organization_name(email, name),
    )
    user = await UserRepository(session).create(
        id=subject,
        email=email,
        name=name,
        organization_id=organization.id,
    )
    logger.info("Provisioned user=%s organization=%s", user.id, organization.id)
    return user
