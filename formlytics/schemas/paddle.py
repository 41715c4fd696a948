from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PaddleModel(BaseModel):
    # Paddle sends snake_case; the camelCase aliases match the JS SDK's shape.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PriceRef(PaddleModel):
    id: str | None = None
    product_id: str | None = None


class SubscriptionItem(PaddleModel):
    price: PriceRef | None = None


class ScheduledChange(PaddleModel):
    action: str | None = None
    effective_at: str | None = None


class SubscriptionData(PaddleModel):
    id: str
    status: str
    customer_id: str
    items: list[SubscriptionItem] = Field(default_factory=list)
    scheduled_change: ScheduledChange | None = None
    custom_data: dict[str, Any] | None = None


class CustomerData(PaddleModel):
    id: str
    email: str | None = None
    name: str | None = None
    status: str | None = None
    custom_data: dict[str, Any] | None = None


class WebhookEvent(PaddleModel):
    event_id: str | None = None
    event_type: str
    occurred_at: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    def subscription(self) -> SubscriptionData:
        return SubscriptionData.model_validate(self.data)

    def customer(self) -> CustomerData:
        return CustomerData.model_validate(self.data)


def custom_user_id(custom_data: dict[str, Any] | None) -> str | None:
    if not custom_data:
        return None
    value = custom_data.get("userId") or custom_data.get("user_id")
    return str(value) if value else None
