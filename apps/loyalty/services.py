"""
VIP Loyalty services

Handles:
- VIP discount computation for carts and checkout
- VIP promotion eligibility and promotion
- VIP-only coupons (promotion, birthday)
"""
import logging
from datetime import timedelta
from typing import Any, Dict

from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import ForbiddenException, ValidationException
from apps.coupons.models import Coupon, CouponType
from apps.coupons.services import CouponService
from apps.shopcore.models import Tier, User
from .discount import vip_discount_for
from .policy import (
    VIP_BIRTHDAY_COUPON_AMOUNT,
    VIP_BIRTHDAY_COUPON_NAME,
    VIP_BIRTHDAY_COUPON_VALIDITY_DAYS,
    VIP_MEMBERSHIP_DAYS,
    VIP_PROMOTION_COUPON_NAME,
    VIP_SPECIAL_COUPON_AMOUNT,
    VIP_SPECIAL_COUPON_VALIDITY_DAYS,
    policy_for,
)

logger = logging.getLogger(__name__)


class VipService:
    """
    Loyalty tier operations.
    """

    def __init__(self, coupon_service: CouponService = None):
        self.coupon_service = coupon_service or CouponService()

    def is_vip_member(self, user: User) -> bool:
        return user.is_vip

    def calculate_vip_discount(self, user: User, original_amount: int) -> int:
        """
        VIP discount for ``original_amount``. Never raises: a failure here
        must not block checkout, so it degrades to no discount.
        """
        try:
            discount = vip_discount_for(user.tier, original_amount)
        except Exception as e:
            logger.error(f"VIP discount calculation failed, applying none: user={user.pk}, error={e}")
            return 0

        if discount:
            logger.info(f"VIP discount: user={user.pk}, original={original_amount}, discount={discount}")
        return discount

    def check_eligibility(self, user: User) -> bool:
        """Only USER-tier members with at least a year of membership qualify."""
        if user.tier != Tier.USER:
            logger.info(f"Not eligible for VIP promotion: user={user.id}, tier={user.tier}")
            return False

        eligible_from = user.created_at + timedelta(days=VIP_MEMBERSHIP_DAYS)
        eligible = timezone.now() > eligible_from
        logger.info(f"VIP eligibility: user={user.id}, eligible={eligible}")
        return eligible

    @transaction.atomic
    def promote_to_vip(self, user: User) -> Coupon:
        """Raise the tier to VIP and grant the promotion coupon."""
        if user.tier != Tier.USER:
            raise ValidationException("Only regular members can be promoted to VIP", field="tier")
        if not self.check_eligibility(user):
            raise ValidationException("Membership requirements for VIP are not met", field="created_at")

        user.tier = Tier.VIP
        user.save(update_fields=['tier', 'updated_at'])
        logger.info(f"User promoted to VIP: user={user.id}")

        return self.coupon_service.issue_vip_coupon(
            user.id,
            VIP_PROMOTION_COUPON_NAME,
            VIP_SPECIAL_COUPON_AMOUNT,
            VIP_SPECIAL_COUPON_VALIDITY_DAYS,
            coupon_type=CouponType.SPECIAL,
        )

    def get_benefit_info(self, user: User) -> Dict[str, Any]:
        if not self.is_vip_member(user):
            raise ForbiddenException("VIP benefits are only available to VIP members")

        policy = policy_for(user.tier)
        return {
            "discount_rate": policy.vip_discount_rate,
            "max_discount_amount": policy.vip_discount_cap,
            "special_coupon_amount": VIP_SPECIAL_COUPON_AMOUNT,
            "birthday_coupon_amount": VIP_BIRTHDAY_COUPON_AMOUNT,
            "has_vip_status": True,
            "member_since": user.created_at.isoformat(),
        }

    @transaction.atomic
    def issue_birthday_coupon(self, user: User) -> Coupon:
        if not self.is_vip_member(user):
            logger.warning(f"Birthday coupon refused: user={user.id}, tier={user.tier}")
            raise ForbiddenException("Only VIP members can receive the birthday coupon")

        return self.coupon_service.issue_vip_coupon(
            user.id,
            VIP_BIRTHDAY_COUPON_NAME,
            VIP_BIRTHDAY_COUPON_AMOUNT,
            VIP_BIRTHDAY_COUPON_VALIDITY_DAYS,
            coupon_type=CouponType.BIRTHDAY,
        )
