"""
Coupon Models - single-use, time-bounded discount grants
"""
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel
from apps.shopcore.models import User


class CouponType(models.TextChoices):
    WELCOME = 'WELCOME', 'Welcome'
    SPECIAL = 'SPECIAL', 'Special'
    BIRTHDAY = 'BIRTHDAY', 'Birthday'
    EVENT = 'EVENT', 'Event'


class CouponQuerySet(models.QuerySet):

    def usable_by(self, user, now=None):
        now = now or timezone.now()
        return self.filter(user=user, is_used=False, expiry_date__gt=now)

    def consume(self, coupon_id, user, now=None) -> bool:
        """Flip ``is_used`` false -> true; exactly one caller can win."""
        updated = self.usable_by(user, now).filter(pk=coupon_id).update(
            is_used=True, updated_at=timezone.now()
        )
        return updated == 1

    def release(self, coupon_id) -> bool:
        updated = self.filter(pk=coupon_id, is_used=True).update(
            is_used=False, updated_at=timezone.now()
        )
        return updated == 1


class Coupon(BaseModel):
    """
    Discount grant owned by one user. Either a fixed amount or a percentage.
    """
    name = models.CharField(max_length=255)
    coupon_type = models.CharField(max_length=20, choices=CouponType.choices)
    discount_amount = models.PositiveIntegerField(blank=True, null=True)
    discount_percent = models.PositiveSmallIntegerField(blank=True, null=True)
    expiry_date = models.DateTimeField()
    is_used = models.BooleanField(default=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='coupons')

    objects = CouponQuerySet.as_manager()

    class Meta:
        db_table = 'coupons'
        verbose_name = 'Coupon'
        verbose_name_plural = 'Coupons'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(discount_amount__isnull=True, discount_percent__isnull=False)
                    | models.Q(discount_amount__isnull=False, discount_percent__isnull=True)
                ),
                name='coupon_amount_xor_percent',
            ),
            models.CheckConstraint(
                condition=models.Q(discount_percent__isnull=True) | models.Q(discount_percent__lte=100),
                name='coupon_percent_max_100',
            ),
            models.UniqueConstraint(
                fields=['user'],
                condition=models.Q(coupon_type='WELCOME'),
                name='one_welcome_coupon_per_user',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.coupon_type})"

    @property
    def is_expired(self):
        return self.expiry_date <= timezone.now()

    def is_usable_by(self, user, now=None) -> bool:
        now = now or timezone.now()
        return self.user_id == user.id and not self.is_used and self.expiry_date > now

    def discount_for(self, original_amount: int) -> int:
        """Fixed amounts apply as-is; percentages are taken of ``original_amount``."""
        if self.discount_amount is not None:
            return self.discount_amount
        if self.discount_percent is not None:
            return original_amount * self.discount_percent // 100
        return 0
