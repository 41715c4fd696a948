from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from paddle_billing.Entities.Shared import Status
from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.paddle import PaddleClient
from formlytics.core.repositories import CustomerRepository, OrganizationRepository
from formlytics.models.user import User

if TYPE_CHECKING:
    from paddle_billing.Entities.Customer import Customer as ProviderCustomer

logger = logging.getLogger(__name__)


class CheckoutError(RuntimeError):
    pass


async def _find_or_create_provider_customer(
    client: PaddleClient,
    user: User,
    billing_customer_id: str | None,
) -> ProviderCustomer:
    if billing_customer_id:
        return await asyncio.to_thread(client.get_customer, billing_customer_id)

    existing = await asyncio.to_thread(client.find_customer_by_email, user.email)
    if existing is not None:
        return existing

    return await asyncio.to_thread(
        client.create_customer,
        email=user.email,
        name=user.name,
        custom_data={"userId": user.id},
    )


async def ensure_billing_customer(
    session: AsyncSession,
    user: User,
    client: PaddleClient,
) -> str:
    """Return the provider customer id for the user's organization.

    Creates or reactivates the provider customer as needed, then links it
    to the organization and to a local customer row keyed by the same id.
    """
    if user.organization_id is None:
        raise CheckoutError("Organization required")

    organization = await OrganizationRepository(session).get(user.organization_id)
    if organization is None:
        raise CheckoutError("Organization required")

    provider_customer = await _find_or_create_provider_customer(
        client, user, organization.billing_customer_id
    )
    customer_id: str = provider_customer.id

    if provider_customer.status == Status.Archived:
        await asyncio.to_thread(client.reactivate_customer, customer_id)
        logger.info("Reactivated archived billing customer=%s", customer_id)

    if organization.billing_customer_id != customer_id:
        organization.billing_customer_id = customer_id

    customers = CustomerRepository(session)
    if await customers.get_by_user_id(user.id) is None:
        await customers.create(
            customer_id=customer_id,
            user_id=user.id,
            email=user.email,
            status="active",
        )

    await session.commit()
    return customer_id
