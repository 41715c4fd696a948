from __future__ import annotations

from pydantic import BaseModel


class TierPricingResponse(BaseModel):
    monthly: int
    yearly: int


class TierResponse(BaseModel):
    id: str
    name: str
    description: str
    features: list[str]
    featured: bool
    price_ids: dict[str, str]
    pricing: TierPricingResponse


class EntitlementResponse(BaseModel):
    active: bool
    tier_id: str | None = None
    name: str | None = None
    is_yearly: bool = False
    price: int | None = None
    subscription_status: str | None = None


class BillingCustomerResponse(BaseModel):
    customer_id: str
