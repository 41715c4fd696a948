from __future__ import annotations

import requests
from fastapi import APIRouter, Depends, HTTPException, status
from paddle_billing.Exceptions.ApiError import ApiError
from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.auth import get_current_user
from formlytics.core.checkout import CheckoutError, ensure_billing_customer
from formlytics.core.db import get_db_session
from formlytics.core.entitlements import resolve_entitlement
from formlytics.core.paddle import PaddleClient, get_paddle_client
from formlytics.core.tiers import PRICING_TIERS
from formlytics.models.user import User
from formlytics.schemas.billing import (
    BillingCustomerResponse,
    EntitlementResponse,
    TierPricingResponse,
    TierResponse,
)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.get("/tiers", response_model=list[TierResponse])
async def list_tiers() -> list[TierResponse]:
    return [
        TierResponse(
            id=tier.id,
            name=tier.name,
            description=tier.description,
            features=list(tier.features),
            featured=tier.featured,
            price_ids={"month": tier.price_ids.month, "year": tier.price_ids.year},
            pricing=TierPricingResponse(monthly=tier.pricing.monthly, yearly=tier.pricing.yearly),
        )
        for tier in PRICING_TIERS
    ]


@router.get("/entitlement", response_model=EntitlementResponse)
async def get_entitlement(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> EntitlementResponse:
    entitlement = await resolve_entitlement(session, user)
    if entitlement is None:
        return EntitlementResponse(active=False)

    return EntitlementResponse(
        active=True,
        tier_id=entitlement.tier.id,
        name=entitlement.tier.name,
        is_yearly=entitlement.is_yearly,
        price=entitlement.price,
        subscription_status=entitlement.subscription.status,
    )


@router.post("/customer", response_model=BillingCustomerResponse)
async def link_billing_customer(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    paddle: PaddleClient = Depends(get_paddle_client),
) -> BillingCustomerResponse:
    try:
        customer_id = await ensure_billing_customer(session, user, paddle)
    except CheckoutError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except (ApiError, requests.RequestException) as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Billing provider request failed: {exc}",
        ) from exc

    return BillingCustomerResponse(customer_id=customer_id)
