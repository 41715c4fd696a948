from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.reconciliation import (
    CustomerReconciler,
    ReconcileOutcome,
    ReconcileResult,
    SubscriptionReconciler,
)
from formlytics.schemas.paddle import WebhookEvent

logger = logging.getLogger(__name__)

Handler = Callable[[WebhookEvent], Awaitable[ReconcileResult]]


class EventName(str, Enum):
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    CUSTOMER_UPDATED = "customer.updated"


class WebhookDispatcher:
    def __init__(self, session: AsyncSession) -> None:
        subscriptions = SubscriptionReconciler(session)
        customers = CustomerReconciler(session)
        self._routes: dict[str, Handler] = {
            EventName.SUBSCRIPTION_CREATED.value: subscriptions.on_created,
            EventName.SUBSCRIPTION_UPDATED.value: subscriptions.on_updated,
            EventName.CUSTOMER_UPDATED.value: customers.on_changed,
        }

    async def dispatch(self, event: WebhookEvent) -> ReconcileResult:
        handler = self._routes.get(event.event_type)
        if handler is None:
            # The provider's catalog grows on its own schedule; unknown kinds are fine.
            logger.debug("Ignoring webhook event type=%s id=%s", event.event_type, event.event_id)
            return ReconcileResult(outcome=ReconcileOutcome.IGNORED, event_type=event.event_type)

        result = await handler(event)
        logger.info(
            "Webhook event type=%s id=%s outcome=%s",
            event.event_type,
            event.event_id,
            result.outcome.value,
        )
        return result
