from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from apps.core.exceptions import ForbiddenException, ValidationException
from apps.coupons.models import CouponType
from apps.loyalty.services import VipService
from apps.shopcore.models import Tier, User

pytestmark = pytest.mark.django_db


@pytest.fixture
def service():
    return VipService()


def age_membership(user, days):
    User.objects.filter(pk=user.pk).update(created_at=timezone.now() - timedelta(days=days))
    user.refresh_from_db()


def test_vip_discount_for_vip(service, vip):
    assert service.calculate_vip_discount(vip, 200000) == 5000
    assert service.calculate_vip_discount(vip, 50000) == 2500


def test_no_vip_discount_for_regular_user(service, user):
    assert service.calculate_vip_discount(user, 200000) == 0


def test_vip_discount_failure_degrades_to_zero(service, vip):
    with mock.patch("apps.loyalty.services.vip_discount_for", side_effect=RuntimeError("boom")):
        assert service.calculate_vip_discount(vip, 200000) == 0


class TestEligibility:

    def test_new_member_is_not_eligible(self, service, user):
        assert not service.check_eligibility(user)

    def test_member_of_over_a_year_is_eligible(self, service, user):
        age_membership(user, 400)
        assert service.check_eligibility(user)

    def test_vip_is_not_eligible_again(self, service, vip):
        age_membership(vip, 400)
        assert not service.check_eligibility(vip)


class TestPromotion:

    def test_promotes_and_grants_special_coupon(self, service, user):
        age_membership(user, 400)

        coupon = service.promote_to_vip(user)

        user.refresh_from_db()
        assert user.tier == Tier.VIP
        assert coupon.coupon_type == CouponType.SPECIAL
        assert coupon.discount_amount == 20000
        assert coupon.user_id == user.id

    def test_ineligible_user_is_rejected(self, service, user):
        with pytest.raises(ValidationException):
            service.promote_to_vip(user)
        user.refresh_from_db()
        assert user.tier == Tier.USER

    def test_already_vip_is_rejected(self, service, vip):
        with pytest.raises(ValidationException):
            service.promote_to_vip(vip)


class TestBenefits:

    def test_benefit_info_for_vip(self, service, vip):
        info = service.get_benefit_info(vip)
        assert info["discount_rate"] == 5
        assert info["max_discount_amount"] == 5000
        assert info["special_coupon_amount"] == 20000
        assert info["birthday_coupon_amount"] == 30000
        assert info["has_vip_status"] is True

    def test_benefit_info_refused_for_regular_user(self, service, user):
        with pytest.raises(ForbiddenException):
            service.get_benefit_info(user)

    def test_birthday_coupon_for_vip(self, service, vip):
        coupon = service.issue_birthday_coupon(vip)
        assert coupon.coupon_type == CouponType.BIRTHDAY
        assert coupon.discount_amount == 30000

    def test_birthday_coupon_refused_for_regular_user(self, service, user):
        with pytest.raises(ForbiddenException):
            service.issue_birthday_coupon(user)
