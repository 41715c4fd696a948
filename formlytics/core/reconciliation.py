from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.repositories import CustomerRepository, SubscriptionRepository, UserRepository
from formlytics.models.customer import Customer
from formlytics.models.user import User
from formlytics.schemas.paddle import SubscriptionData, WebhookEvent, custom_user_id

logger = logging.getLogger(__name__)


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"
    FAILED = "failed"
    IGNORED = "ignored"


@dataclass(slots=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    event_type: str
    entity_id: str | None = None
    user_id: str | None = None
    status: str | None = None
    detail: str | None = None

    @property
    def applied(self) -> bool:
        return self.outcome is ReconcileOutcome.APPLIED


class ReconciliationError(RuntimeError):
    def __init__(self, message: str, *, recoverable: bool = True) -> None:
        super().__init__(message)
        self.recoverable = recoverable


@dataclass(slots=True)
class SubscriptionFields:
    subscription_id: str
    status: str
    price_id: str
    product_id: str
    scheduled_change: str
    customer_id: str
    user_id: str | None


def extract_subscription_fields(data: SubscriptionData) -> SubscriptionFields:
    price = data.items[0].price if data.items else None
    return SubscriptionFields(
        subscription_id=data.id,
        status=data.status,
        price_id=(price.id if price else None) or "",
        product_id=(price.product_id if price else None) or "",
        scheduled_change=(data.scheduled_change.effective_at if data.scheduled_change else None) or "",
        customer_id=data.customer_id,
        user_id=custom_user_id(data.custom_data),
    )


class _Reconciler:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.customers = CustomerRepository(session)
        self.users = UserRepository(session)

    async def _guarded(
        self,
        event: WebhookEvent,
        operation: Callable[[], Awaitable[ReconcileResult]],
    ) -> ReconcileResult:
        """Run one write and turn any storage or payload failure into a result.

        Nothing is re-raised: the provider must always get an acknowledgement.
        """
        try:
            result = await operation()
            await self.session.commit()
        except ReconciliationError as exc:
            await self.session.rollback()
            outcome = ReconcileOutcome.CONFLICT if exc.recoverable else ReconcileOutcome.FAILED
            return self._failure(event, outcome, str(exc))
        except IntegrityError as exc:
            await self.session.rollback()
            return self._failure(event, ReconcileOutcome.CONFLICT, str(exc.orig))
        except (SQLAlchemyError, ValidationError) as exc:
            await self.session.rollback()
            return self._failure(event, ReconcileOutcome.FAILED, str(exc))

        logger.info(
            "Reconciled %s entity=%s status=%s", event.event_type, result.entity_id, result.status
        )
        return result

    def _failure(
        self, event: WebhookEvent, outcome: ReconcileOutcome, detail: str
    ) -> ReconcileResult:
        entity_id = event.data.get("id")
        if outcome is ReconcileOutcome.CONFLICT:
            logger.warning(
                "Skipped %s event=%s entity=%s: %s", event.event_type, event.event_id, entity_id, detail
            )
        else:
            logger.error(
                "Failed %s event=%s entity=%s: %s", event.event_type, event.event_id, entity_id, detail
            )
        return ReconcileResult(
            outcome=outcome,
            event_type=event.event_type,
            entity_id=str(entity_id) if entity_id else None,
            detail=detail,
        )

    async def _require_customer(self, customer_id: str) -> Customer:
        customer = await self.customers.get_by_customer_id(customer_id)
        if customer is None:
            raise ReconciliationError(f"Customer not found for customer_id={customer_id}")
        return customer

    async def _require_user(self, user_id: str | None) -> User:
        if not user_id:
            raise ReconciliationError("Event custom_data has no userId")
        user = await self.users.get(user_id)
        if user is None:
            raise ReconciliationError(f"User not found for user_id={user_id}")
        return user


class SubscriptionReconciler(_Reconciler):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.subscriptions = SubscriptionRepository(session)

    async def on_created(self, event: WebhookEvent) -> ReconcileResult:
        async def _create() -> ReconcileResult:
            fields = extract_subscription_fields(event.subscription())
            customer = await self._require_customer(fields.customer_id)
            user = await self._require_user(fields.user_id)
            await self.subscriptions.create(
                subscription_id=fields.subscription_id,
                status=fields.status,
                price_id=fields.price_id,
                product_id=fields.product_id,
                scheduled_change=fields.scheduled_change,
                customer_id=customer.id,
                user_id=user.id,
            )
            return self._applied(event, fields, user.id)

        return await self._guarded(event, _create)

    async def on_updated(self, event: WebhookEvent) -> ReconcileResult:
        async def _update() -> ReconcileResult:
            fields = extract_subscription_fields(event.subscription())
            customer = await self._require_customer(fields.customer_id)
            subscription = await self.subscriptions.get_by_subscription_id(fields.subscription_id)
            if subscription is None:
                raise ReconciliationError(
                    f"No subscription to update for subscription_id={fields.subscription_id}"
                )

            values: dict[str, object] = {
                "status": fields.status,
                "price_id": fields.price_id,
                "product_id": fields.product_id,
                "scheduled_change": fields.scheduled_change,
                "customer_id": customer.id,
            }
            # Without custom_data the stored owner is kept.
            if fields.user_id:
                values["user_id"] = (await self._require_user(fields.user_id)).id

            # Last write wins: no version check against concurrent deliveries.
            await self.subscriptions.update(subscription, **values)
            return self._applied(event, fields, subscription.user_id)

        return await self._guarded(event, _update)

    @staticmethod
    def _applied(event: WebhookEvent, fields: SubscriptionFields, user_id: str) -> ReconcileResult:
        return ReconcileResult(
            outcome=ReconcileOutcome.APPLIED,
            event_type=event.event_type,
            entity_id=fields.subscription_id,
            user_id=user_id,
            status=fields.status,
        )


class CustomerReconciler(_Reconciler):
    async def on_changed(self, event: WebhookEvent) -> ReconcileResult:
        async def _update() -> ReconcileResult:
            data = event.customer()
            customer = await self._require_customer(data.id)

            values: dict[str, object] = {}
            if data.email:
                values["email"] = data.email
            if data.status:
                values["status"] = data.status
            user_id = custom_user_id(data.custom_data)
            if user_id:
                values["user_id"] = (await self._require_user(user_id)).id

            await self.customers.update(customer, **values)
            return ReconcileResult(
                outcome=ReconcileOutcome.APPLIED,
                event_type=event.event_type,
                entity_id=data.id,
                user_id=customer.user_id,
                status=customer.status,
            )

        return await self._guarded(event, _update)
