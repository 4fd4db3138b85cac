"""
Coupon Lifecycle - issuance, validation, consumption and release
"""
import logging
from datetime import timedelta
from typing import Dict, List

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.exceptions import (
    CouponUnusableException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from apps.loyalty.policy import policy_for
from apps.shopcore.models import User
from .models import Coupon, CouponType

logger = logging.getLogger(__name__)


def coupon_to_dict(coupon: Coupon) -> Dict:
    return {
        "id": str(coupon.id),
        "name": coupon.name,
        "coupon_type": coupon.coupon_type,
        "discount_amount": coupon.discount_amount,
        "discount_percent": coupon.discount_percent,
        "expiry_date": coupon.expiry_date.isoformat(),
        "is_used": coupon.is_used,
        "created_at": coupon.created_at.isoformat() if coupon.created_at else None,
    }


class CouponService:
    """
    Issues coupons and guards their single use.
    """

    def issue_welcome_coupon(self, user: User) -> Coupon:
        """
        Issue the tier-dependent welcome coupon. Issuing twice is a no-op
        that returns the coupon already on file.
        """
        if user is None or user.pk is None:
            raise ValidationException("Cannot issue a welcome coupon to an unsaved user", field="user")

        existing = Coupon.objects.filter(user=user, coupon_type=CouponType.WELCOME).first()
        if existing is not None:
            logger.warning(f"Welcome coupon already issued: user={user.id}")
            return existing

        policy = policy_for(user.tier)
        try:
            with transaction.atomic():
                coupon = Coupon.objects.create(
                    name=policy.welcome_coupon_name,
                    coupon_type=CouponType.WELCOME,
                    discount_amount=policy.welcome_amount,
                    expiry_date=timezone.now() + timedelta(days=policy.welcome_validity_days),
                    user=user,
                )
        except IntegrityError:
            # Lost a race with a concurrent issuance
            return Coupon.objects.get(user=user, coupon_type=CouponType.WELCOME)

        logger.info(
            f"Welcome coupon issued: coupon={coupon.id}, user={user.id}, "
            f"tier={user.tier}, amount={coupon.discount_amount}"
        )
        return coupon

    def issue_vip_coupon(
        self,
        user_id,
        name: str,
        discount_amount: int,
        validity_days: int,
        coupon_type: str = CouponType.SPECIAL,
    ) -> Coupon:
        """Issue a VIP-only coupon; the target must be VIP or ADMIN."""
        user = User.objects.filter(pk=user_id).first()
        if user is None:
            raise NotFoundException("User", user_id)

        if not user.is_vip:
            logger.warning(f"VIP coupon refused: user={user_id}, tier={user.tier}")
            raise ForbiddenException("Only VIP members can receive this coupon")

        coupon = Coupon.objects.create(
            name=name,
            coupon_type=coupon_type,
            discount_amount=discount_amount,
            expiry_date=timezone.now() + timedelta(days=validity_days),
            user=user,
        )
        logger.info(f"VIP coupon issued: coupon={coupon.id}, user={user_id}, type={coupon_type}")
        return coupon

    def get_coupon(self, coupon_id) -> Coupon:
        coupon = Coupon.objects.select_related('user').filter(pk=coupon_id).first()
        if coupon is None:
            raise NotFoundException("Coupon", coupon_id)
        return coupon

    def is_coupon_usable(self, coupon_id, user: User) -> bool:
        """
        True iff the coupon belongs to ``user``, is unused and has not
        expired. A missing coupon is a hard not-found error.
        """
        coupon = self.get_coupon(coupon_id)

        if coupon.user_id != user.id:
            logger.warning(f"Coupon owner mismatch: coupon={coupon_id}, requester={user.id}")
            return False
        if coupon.is_used:
            logger.warning(f"Coupon already used: coupon={coupon_id}")
            return False
        if coupon.expiry_date <= timezone.now():
            logger.warning(f"Coupon expired: coupon={coupon_id}, expiry={coupon.expiry_date}")
            return False
        return True

    def consume_coupon(self, coupon_id, user: User) -> None:
        """
        Mark the coupon used. Ownership and expiry are re-checked inside the
        same conditional UPDATE, so of two racing consumers only one wins.
        """
        if not Coupon.objects.consume(coupon_id, user):
            if not Coupon.objects.filter(pk=coupon_id).exists():
                raise NotFoundException("Coupon", coupon_id)
            logger.warning(f"Coupon consumption rejected: coupon={coupon_id}, user={user.id}")
            raise CouponUnusableException(coupon_id, "already used, expired or not owned")
        logger.info(f"Coupon consumed: coupon={coupon_id}, user={user.id}")

    def release_coupon(self, coupon: Coupon) -> None:
        """Compensating action for a cancelled order."""
        if Coupon.objects.release(coupon.pk):
            logger.info(f"Coupon released: coupon={coupon.pk}")
        coupon.refresh_from_db(fields=['is_used', 'updated_at'])

    def list_coupons(self, user: User) -> List[Dict]:
        return [coupon_to_dict(c) for c in Coupon.objects.filter(user=user).order_by('-created_at')]

    def list_available_coupons(self, user: User) -> List[Dict]:
        coupons = Coupon.objects.usable_by(user).order_by('expiry_date')
        return [coupon_to_dict(c) for c in coupons]
