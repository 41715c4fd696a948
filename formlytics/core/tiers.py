from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

TierId = Literal["basic", "pro", "advanced"]


@dataclass(frozen=True, slots=True)
class TierPrices:
    month: str
    year: str


@dataclass(frozen=True, slots=True)
class TierPricing:
    monthly: int
    yearly: int


@dataclass(frozen=True, slots=True)
class Tier:
    id: TierId
    name: str
    description: str
    features: tuple[str, ...]
    featured: bool
    price_ids: TierPrices
    pricing: TierPricing

    def is_yearly_price(self, price_id: str) -> bool:
        return self.price_ids.year == price_id


PRICING_TIERS: tuple[Tier, ...] = (
    Tier(
        id="basic",
        name="Basic",
        description="Ideal for individuals who want to get started with Formlytics.",
        features=("1 workspace", "Limited collaboration", "Export to PNG and SVG", "Basic analytics"),
        featured=False,
        price_ids=TierPrices(month="pri_basic_month", year="pri_basic_year"),
        pricing=TierPricing(monthly=10, yearly=100),
    ),
    Tier(
        id="pro",
        name="Pro",
        description="Perfect for growing teams and businesses.",
        features=(
            "5 workspaces",
            "Advanced collaboration",
            "Export to PNG, SVG, PDF",
            "Advanced analytics",
            "Custom branding",
            "Priority support",
        ),
        featured=True,
        price_ids=TierPrices(month="pri_pro_month", year="pri_pro_year"),
        pricing=TierPricing(monthly=15, yearly=150),
    ),
    Tier(
        id="advanced",
        name="Advanced",
        description="For enterprise teams with advanced needs.",
        features=(
            "Unlimited workspaces",
            "Full collaboration suite",
            "All export formats",
            "Enterprise analytics",
            "White-label solution",
            "24/7 dedicated support",
            "Custom integrations",
            "SSO",
        ),
        featured=False,
        price_ids=TierPrices(month="pri_advanced_month", year="pri_advanced_year"),
        pricing=TierPricing(monthly=19, yearly=190),
    ),
)


def build_price_index(tiers: Iterable[Tier]) -> dict[str, Tier]:
    """Map every monthly and yearly price id to its tier.

    A price id may belong to one tier only; a duplicate raises ``ValueError``.
    """
    index: dict[str, Tier] = {}
    for tier in tiers:
        for price_id in (tier.price_ids.month, tier.price_ids.year):
            owner = index.get(price_id)
            if owner is not None:
                raise ValueError(
                    f"Price id {price_id!r} is assigned to both {owner.id!r} and {tier.id!r}"
                )
            index[price_id] = tier
    return index


_PRICE_INDEX = build_price_index(PRICING_TIERS)


def find_tier_by_price_id(price_id: str | None) -> Tier | None:
    if not price_id:
        return None
    return _PRICE_INDEX.get(price_id)
