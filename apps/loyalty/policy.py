"""
Tier policy table

Every tier-dependent constant lives here so the rule set can be audited
in one place instead of being spread over conditional branches.
"""
from dataclasses import dataclass
from typing import Dict

from apps.shopcore.models import Tier


@dataclass(frozen=True)
class TierPolicy:
    """Welcome coupon terms and VIP discount terms for one tier"""
    welcome_coupon_name: str
    welcome_amount: int
    welcome_validity_days: int
    vip_discount_rate: int  # percent
    vip_discount_cap: int


TIER_POLICIES: Dict[str, TierPolicy] = {
    Tier.USER: TierPolicy(
        welcome_coupon_name="Welcome Coupon",
        welcome_amount=5000,
        welcome_validity_days=30,
        vip_discount_rate=0,
        vip_discount_cap=0,
    ),
    Tier.VIP: TierPolicy(
        welcome_coupon_name="VIP Welcome Coupon",
        welcome_amount=10000,
        welcome_validity_days=60,
        vip_discount_rate=5,
        vip_discount_cap=5000,
    ),
    Tier.ADMIN: TierPolicy(
        welcome_coupon_name="Admin Welcome Coupon",
        welcome_amount=15000,
        welcome_validity_days=90,
        vip_discount_rate=5,
        vip_discount_cap=5000,
    ),
}

# VIP promotion and VIP-only coupons
VIP_MEMBERSHIP_DAYS = 365
VIP_PROMOTION_COUPON_NAME = "VIP Promotion Coupon"
VIP_SPECIAL_COUPON_AMOUNT = 20000
VIP_SPECIAL_COUPON_VALIDITY_DAYS = 90
VIP_BIRTHDAY_COUPON_NAME = "VIP Birthday Coupon"
VIP_BIRTHDAY_COUPON_AMOUNT = 30000
VIP_BIRTHDAY_COUPON_VALIDITY_DAYS = 30


def policy_for(tier: str) -> TierPolicy:
    """Look up the policy for a tier; the tier set is closed."""
    return TIER_POLICIES[Tier(tier)]
