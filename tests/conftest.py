from datetime import timedelta
from unittest import mock

import pytest
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.test import APIClient

from apps.coupons.models import Coupon, CouponType
from apps.shopcore.models import Cart, CartItem, Category, Product, Tier, User

DELIVERY = {
    "recipient_name": "Jane Doe",
    "phone": "010-1234-5678",
    "address": "123 Main St",
    "detail_address": "Apt 4",
    "zip_code": "12345",
    "delivery_memo": "Leave at the door",
}


def make_user(email, tier=Tier.USER, name="Test User", password="password1234"):
    user = User(email=email, name=name, tier=tier)
    user.set_password(password)
    user.save()
    return user


def make_coupon(user, amount=None, percent=None, days=30, coupon_type=CouponType.EVENT, used=False):
    return Coupon.objects.create(
        name="Test Coupon",
        coupon_type=coupon_type,
        discount_amount=amount,
        discount_percent=percent,
        expiry_date=timezone.now() + timedelta(days=days),
        is_used=used,
        user=user,
    )


def fill_cart(user, *lines):
    cart, _ = Cart.objects.get_or_create(user=user)
    for product, quantity in lines:
        CartItem.objects.create(cart=cart, product=product, quantity=quantity)
    return cart


@pytest.fixture
def user(db):
    return make_user("user@example.com")


@pytest.fixture
def other_user(db):
    return make_user("other@example.com", name="Other User")


@pytest.fixture
def vip(db):
    return make_user("vip@example.com", tier=Tier.VIP, name="Vip User")


@pytest.fixture
def admin(db):
    return make_user("admin@example.com", tier=Tier.ADMIN, name="Admin User")


@pytest.fixture
def electronics(db):
    return Category.objects.create(name="Electronics", display_order=1)


@pytest.fixture
def product(electronics):
    return Product.objects.create(name="Widget", category=electronics, price=25000, stock=10)


@pytest.fixture
def cheap_product(db):
    return Product.objects.create(name="Sticker", price=1000, stock=1)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _client(user):
        api_client.credentials(HTTP_X_USER_EMAIL=user.email)
        return api_client
    return _client


@pytest.fixture
def lock_spy():
    """Records every select_for_update() call; call.args[0] is the queryset."""
    original = QuerySet.select_for_update
    with mock.patch.object(QuerySet, 'select_for_update', autospec=True, side_effect=original) as spy:
        yield spy


def locked_models(spy):
    models = [call.args[0].model for call in spy.call_args_list]
    spy.reset_mock()
    return models
