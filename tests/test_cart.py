import uuid
from unittest import mock

import pytest

from apps.core.exceptions import (
    ForbiddenException,
    InsufficientStockException,
    NotFoundException,
    ValidationException,
)
from apps.shopcore.models import Cart, CartItem, Product
from apps.shopcore.services import CartService
from tests.conftest import fill_cart, locked_models

pytestmark = pytest.mark.django_db


@pytest.fixture
def service():
    return CartService()


def test_empty_cart_is_created_on_read(service, user):
    cart = service.get_cart(user)
    assert cart["items"] == []
    assert cart["total_amount"] == 0
    assert cart["total_item_count"] == 0


def test_add_item_computes_totals(service, user, product):
    cart = service.add_item(user, product.id, 2)

    assert cart["total_item_count"] == 2
    assert cart["total_amount"] == 50000
    assert cart["expected_vip_discount"] == 0
    assert cart["expected_final_amount"] == 50000


def test_adding_same_product_merges_lines(service, user, product):
    service.add_item(user, product.id, 2)
    cart = service.add_item(user, product.id, 3)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5


def test_vip_cart_shows_expected_discount(service, vip, product):
    cart = service.add_item(vip, product.id, 2)
    assert cart["expected_vip_discount"] == 2500
    assert cart["expected_final_amount"] == 47500


def test_add_beyond_stock_is_rejected(service, user, product):
    service.add_item(user, product.id, 8)
    with pytest.raises(InsufficientStockException) as excinfo:
        service.add_item(user, product.id, 3)

    assert excinfo.value.requested == 11
    assert excinfo.value.available == 10
    assert CartItem.objects.get(product=product).quantity == 8


def test_add_unknown_product(service, user):
    with pytest.raises(NotFoundException):
        service.add_item(user, uuid.uuid4(), 1)


def test_add_zero_quantity(service, user, product):
    with pytest.raises(ValidationException):
        service.add_item(user, product.id, 0)


def test_update_quantity(service, user, product):
    service.add_item(user, product.id, 1)
    item = CartItem.objects.get(product=product)

    cart = service.update_quantity(user, item.id, 4)

    assert cart["items"][0]["quantity"] == 4
    assert cart["total_amount"] == 100000


def test_update_someone_elses_line(service, user, other_user, product):
    service.add_item(other_user, product.id, 1)
    item = CartItem.objects.get(product=product)

    with pytest.raises(ForbiddenException):
        service.update_quantity(user, item.id, 2)
    with pytest.raises(ForbiddenException):
        service.remove_item(user, item.id)


def test_remove_item(service, user, product):
    service.add_item(user, product.id, 1)
    item = CartItem.objects.get(product=product)

    cart = service.remove_item(user, item.id)

    assert cart["items"] == []


def test_clear_cart(service, user, product, cheap_product):
    fill_cart(user, (product, 1), (cheap_product, 1))
    service.clear_cart(user)
    assert service.get_cart(user)["items"] == []


def test_insufficient_stock_lines(service, user, product, cheap_product):
    fill_cart(user, (product, 2), (cheap_product, 1))
    Product.objects.filter(pk=product.pk).update(stock=1)

    short = service.insufficient_stock_items(user)

    assert [line["product"]["id"] for line in short] == [str(product.id)]
    assert short[0]["shortage_quantity"] == 1


def test_add_item_locks_the_cart_row(service, user, product, lock_spy):
    service.add_item(user, product.id, 1)
    assert locked_models(lock_spy) == [Cart]


def test_add_merges_with_line_committed_while_waiting(service, user, product):
    """A concurrent first add of the same product lands before the cart lock is granted."""
    original = CartService.get_or_create_cart
    raced = []

    def racing_get_or_create(self, user):
        cart = original(self, user)
        if not raced:
            raced.append(CartItem.objects.create(cart=cart, product=product, quantity=2))
        return cart

    with mock.patch.object(CartService, 'get_or_create_cart', racing_get_or_create):
        cart = service.add_item(user, product.id, 3)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5
