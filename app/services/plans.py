"""Subscription tiers and the catalog growth limits attached to them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from app.models import SubscriptionTier

CatalogResource = Literal["menu_items", "categories"]

DEFAULT_TIER = SubscriptionTier.STARTER

# ``None`` means unlimited.
PLAN_LIMITS: Dict[SubscriptionTier, Dict[str, Optional[int]]] = {
    SubscriptionTier.STARTER: {"menu_items": 10, "categories": 3},
    SubscriptionTier.GROWTH: {"menu_items": 100, "categories": 20},
    SubscriptionTier.PROFESSIONAL: {"menu_items": None, "categories": None},
}

PLAN_PRESETS: Dict[SubscriptionTier, Dict[str, Any]] = {
    SubscriptionTier.STARTER: {"label": "Starter", "upgrade_to": SubscriptionTier.GROWTH},
    SubscriptionTier.GROWTH: {"label": "Growth", "upgrade_to": SubscriptionTier.PROFESSIONAL},
    SubscriptionTier.PROFESSIONAL: {"label": "Professional", "upgrade_to": None},
}

RESOURCE_LABELS: Dict[str, str] = {
    "menu_items": "menu items",
    "categories": "menu categories",
}


@dataclass(frozen=True)
class PlanCheck:
    allowed: bool
    message: Optional[str] = None
    limit: Optional[int] = None


def resolve_tier(value: Any) -> SubscriptionTier:
    """Map a stored tier value to the enum, falling back to the default tier."""

    if isinstance(value, SubscriptionTier):
        return value
    if isinstance(value, str):
        try:
            return SubscriptionTier(value.strip().upper())
        except ValueError:
            return DEFAULT_TIER
    return DEFAULT_TIER


def get_limit(tier: Any, resource: CatalogResource) -> Optional[int]:
    return PLAN_LIMITS[resolve_tier(tier)][resource]


def can_add(tier: Any, resource: CatalogResource, current_count: int) -> PlanCheck:
    """Decide whether one more ``resource`` fits in ``tier``.

    ``current_count`` must be read inside the same operation as the insert
    that follows; it is never cached across calls.
    """

    resolved = resolve_tier(tier)
    limit = PLAN_LIMITS[resolved][resource]
    if limit is None or current_count < limit:
        return PlanCheck(allowed=True, limit=limit)
    return PlanCheck(allowed=False, message=_upgrade_message(resolved, resource, limit), limit=limit)


def can_add_menu_item(tier: Any, current_count: int) -> PlanCheck:
    return can_add(tier, "menu_items", current_count)


def can_add_category(tier: Any, current_count: int) -> PlanCheck:
    return can_add(tier, "categories", current_count)


def _upgrade_message(tier: SubscriptionTier, resource: CatalogResource, limit: int) -> str:
    preset = PLAN_PRESETS[tier]
    label = RESOURCE_LABELS[resource]
    message = f"Your {preset['label']} plan allows up to {limit} {label}."
    upgrade_to = preset["upgrade_to"]
    if upgrade_to is None:
        return message
    next_limit = PLAN_LIMITS[upgrade_to][resource]
    next_label = PLAN_PRESETS[upgrade_to]["label"]
    if next_limit is None:
        return f"{message} Upgrade to {next_label} for unlimited {label}."
    return f"{message} Upgrade to {next_label} to add up to {next_limit} {label}."


__all__ = [
    "DEFAULT_TIER",
    "PLAN_LIMITS",
    "PlanCheck",
    "can_add",
    "can_add_category",
    "can_add_menu_item",
    "get_limit",
    "resolve_tier",
]
