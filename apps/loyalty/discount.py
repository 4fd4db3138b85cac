"""
Discount Calculator

Coupon and VIP discounts are computed independently against the original
amount and summed; they never compound.
"""
from dataclasses import dataclass
from typing import Optional

from .policy import policy_for


@dataclass(frozen=True)
class DiscountBreakdown:
    original_amount: int
    coupon_discount: int
    vip_discount: int

    @property
    def final_amount(self) -> int:
        return compute_final_amount(self.original_amount, self.coupon_discount, self.vip_discount)


def compute_final_amount(original_amount: int, coupon_discount: int, vip_discount: int) -> int:
    return max(0, original_amount - coupon_discount - vip_discount)


def vip_discount_for(tier: str, original_amount: int) -> int:
    """``min(original * rate / 100, cap)`` in integer units; 0 for tiers without a rate."""
    policy = policy_for(tier)
    if policy.vip_discount_rate <= 0:
        return 0
    return min(original_amount * policy.vip_discount_rate // 100, policy.vip_discount_cap)


def coupon_discount_for(coupon: Optional[object], original_amount: int) -> int:
    if coupon is None:
        return 0
    return coupon.discount_for(original_amount)
