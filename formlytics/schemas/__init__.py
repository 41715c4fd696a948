from formlytics.schemas.billing import (
    BillingCustomerResponse,
    EntitlementResponse,
    TierPricingResponse,
    TierResponse,
)
from formlytics.schemas.paddle import CustomerData, SubscriptionData, WebhookEvent

__all__ = [
    "BillingCustomerResponse",
    "EntitlementResponse",
    "TierPricingResponse",
    "TierResponse",
    "CustomerData",
    "SubscriptionData",
    "WebhookEvent",
]
