import uuid

import pytest
from rest_framework import status

from apps.coupons.models import Coupon, CouponType
from apps.orders.models import Order, OrderStatus
from apps.shopcore.models import Product, User
from tests.conftest import DELIVERY, fill_cart, make_coupon

pytestmark = pytest.mark.django_db


def test_health_is_public(api_client):
    response = api_client.get("/api/health/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["database"] == "healthy"


class TestAccounts:

    def test_signup_grants_welcome_coupon(self, api_client):
        response = api_client.post(
            "/api/users/signup",
            {"email": "New@Example.com", "password": "long-enough", "name": "New"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        user = User.objects.get(email="new@example.com")
        assert user.tier == "USER"
        coupon = Coupon.objects.get(user=user)
        assert coupon.coupon_type == CouponType.WELCOME
        assert coupon.discount_amount == 5000

    def test_duplicate_signup_is_a_conflict(self, api_client, user):
        response = api_client.post(
            "/api/users/signup",
            {"email": user.email, "password": "long-enough", "name": "Again"},
            format="json",
        )

        body = response.json()
        assert response.status_code == status.HTTP_409_CONFLICT
        assert body["code"] == "CONFLICT"
        assert body["error"] is True

    def test_login(self, api_client, user):
        ok = api_client.post("/api/users/login", {"email": user.email, "password": "password1234"}, format="json")
        bad = api_client.post("/api/users/login", {"email": user.email, "password": "nope"}, format="json")

        assert ok.status_code == status.HTTP_200_OK
        assert ok.json()["email"] == user.email
        assert bad.status_code == status.HTTP_401_UNAUTHORIZED
        assert bad.json()["code"] == "INVALID_CREDENTIALS"

    def test_me_requires_identity(self, api_client):
        assert api_client.get("/api/users/me").status_code in (
            status.HTTP_401_UNAUTHORIZED,
            status.HTTP_403_FORBIDDEN,
        )

    def test_unknown_identity_is_rejected(self, api_client):
        api_client.credentials(HTTP_X_USER_EMAIL="ghost@example.com")
        assert api_client.get("/api/users/me").status_code == status.HTTP_401_UNAUTHORIZED

    def test_me(self, client_for, vip):
        response = client_for(vip).get("/api/users/me")
        assert response.json()["tier"] == "VIP"


class TestShopping:

    def test_product_list_is_public(self, api_client, product):
        response = api_client.get("/api/products/", {"category_id": str(product.category_id)})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["products"][0]["id"] == str(product.id)

    def test_unknown_product_is_404(self, api_client):
        response = api_client.get(f"/api/products/{uuid.uuid4()}/")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "NOT_FOUND"

    def test_add_to_cart_beyond_stock_is_409(self, client_for, user, product):
        response = client_for(user).post(
            "/api/cart/items/", {"product_id": str(product.id), "quantity": 11}, format="json"
        )

        body = response.json()
        assert response.status_code == status.HTTP_409_CONFLICT
        assert body["code"] == "INSUFFICIENT_STOCK"
        assert body["details"]["available"] == 10

    def test_invalid_payload_is_400(self, client_for, user):
        response = client_for(user).post("/api/cart/items/", {"quantity": 1}, format="json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "product_id" in response.json()["details"]

    def test_checkout_pay_and_cancel(self, client_for, vip, product):
        client = client_for(vip)
        coupon = make_coupon(vip, amount=5000)
        client.post("/api/cart/items/", {"product_id": str(product.id), "quantity": 2}, format="json")

        created = client.post(
            "/api/orders/",
            {"coupon_id": str(coupon.id), "delivery_info": DELIVERY},
            format="json",
        )
        assert created.status_code == status.HTTP_201_CREATED
        order = created.json()
        assert order["final_amount"] == 42500
        assert order["status"] == OrderStatus.PENDING

        prepared = client.post(
            "/api/payments/prepare/",
            {"order_id": order["id"], "amount": 42500, "payment_method": "CARD"},
            format="json",
        )
        assert prepared.status_code == status.HTTP_201_CREATED
        assert prepared.json()["payment_url"].endswith(prepared.json()["payment_key"])

        completed = client.post(
            "/api/payments/complete/",
            {"payment_key": prepared.json()["payment_key"], "amount": 42500},
            format="json",
        )
        assert completed.json()["status"] == "COMPLETED"
        assert client.get(f"/api/orders/{order['id']}/").json()["status"] == OrderStatus.PAID

        cancelled = client.post(f"/api/payments/{prepared.json()['payment_id']}/cancel/")
        assert cancelled.json()["status"] == "CANCELLED"
        assert client.get(f"/api/orders/{order['id']}/").json()["status"] == OrderStatus.CANCELLED

    def test_payment_amount_mismatch_is_400(self, client_for, user, product):
        fill_cart(user, (product, 1))
        client = client_for(user)
        order = client.post("/api/orders/", {"delivery_info": DELIVERY}, format="json").json()

        response = client.post(
            "/api/payments/prepare/",
            {"order_id": order["id"], "amount": 1, "payment_method": "CARD"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "AMOUNT_MISMATCH"

    def test_cancelling_shipped_order_is_409(self, client_for, user, product):
        fill_cart(user, (product, 1))
        client = client_for(user)
        order = client.post("/api/orders/", {"delivery_info": DELIVERY}, format="json").json()
        Order.objects.filter(pk=order["id"]).update(status=OrderStatus.SHIPPED)

        response = client.post(f"/api/orders/{order['id']}/cancel/")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "INVALID_ORDER_STATE"

    def test_other_users_order_is_403(self, client_for, user, other_user, product):
        fill_cart(user, (product, 1))
        order = client_for(user).post("/api/orders/", {"delivery_info": DELIVERY}, format="json").json()

        response = client_for(other_user).get(f"/api/orders/{order['id']}/")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_foreign_coupon_is_400(self, client_for, user, other_user, product):
        fill_cart(user, (product, 1))
        coupon = make_coupon(other_user, amount=1000)

        response = client_for(user).post(
            "/api/orders/", {"coupon_id": str(coupon.id), "delivery_info": DELIVERY}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "COUPON_UNUSABLE"

    def test_available_coupons(self, client_for, user):
        make_coupon(user, amount=1000)
        make_coupon(user, amount=2000, used=True)
        response = client_for(user).get("/api/coupons/available/")
        assert len(response.json()) == 1


class TestVip:

    def test_discount_preview(self, client_for, vip):
        response = client_for(vip).get("/api/vip/discount/", {"amount": 200000})
        assert response.json()["vip_discount"] == 5000

    def test_benefits_forbidden_for_regular_user(self, client_for, user):
        response = client_for(user).get("/api/vip/benefits/")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_birthday_coupon(self, client_for, vip):
        response = client_for(vip).post("/api/vip/birthday-coupon/")
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["coupon_type"] == CouponType.BIRTHDAY

    def test_ineligible_promotion_is_400(self, client_for, user):
        assert client_for(user).get("/api/vip/eligibility/").json() == {"eligible": False}
        assert client_for(user).post("/api/vip/promotion/").status_code == status.HTTP_400_BAD_REQUEST


class TestAdmin:

    def test_regular_user_is_refused(self, client_for, user):
        assert client_for(user).get("/api/admin/orders/").status_code == status.HTTP_403_FORBIDDEN

    def test_status_override(self, client_for, user, admin, product):
        fill_cart(user, (product, 1))
        order = client_for(user).post("/api/orders/", {"delivery_info": DELIVERY}, format="json").json()

        client = client_for(admin)
        response = client.patch(
            f"/api/admin/orders/{order['id']}/status/", {"status": "DELIVERED"}, format="json"
        )
        listing = client.get("/api/admin/orders/", {"status": "DELIVERED"}).json()

        assert response.json()["status"] == OrderStatus.DELIVERED
        assert listing["total_elements"] == 1


class TestCatalogApi:

    def test_price_filter_and_sort(self, api_client, product, cheap_product):
        response = api_client.get(
            "/api/products/", {"min_price": 500, "sort_by": "price", "sort_direction": "asc"}
        )
        assert [p["id"] for p in response.json()["products"]] == [str(cheap_product.id), str(product.id)]

    def test_inverted_price_range_is_400(self, api_client):
        response = api_client.get("/api/products/", {"min_price": 10, "max_price": 1})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_product_detail_lists_related(self, api_client, product, electronics):
        sibling = Product.objects.create(name="Cable", category=electronics, price=500, stock=5)

        body = api_client.get(f"/api/products/{product.id}/").json()

        assert body["category"]["name"] == "Electronics"
        assert [p["id"] for p in body["related_products"]] == [str(sibling.id)]

    @pytest.mark.parametrize("path", ["featured", "popular", "latest"])
    def test_highlight_lists_are_public(self, api_client, product, path):
        response = api_client.get(f"/api/products/{path}/")
        assert response.status_code == status.HTTP_200_OK

    def test_categories_are_public(self, api_client, product):
        body = api_client.get("/api/categories/").json()
        assert body[0]["name"] == "Electronics"
        assert body[0]["product_count"] == 1

    def test_only_admins_manage_categories(self, client_for, user, admin, electronics):
        payload = {"name": "Garden"}
        assert client_for(user).post("/api/categories/", payload, format="json").status_code == (
            status.HTTP_403_FORBIDDEN
        )

        client = client_for(admin)
        created = client.post("/api/categories/", payload, format="json")
        duplicate = client.post("/api/categories/", {"name": "Electronics"}, format="json")
        removed = client.delete(f"/api/categories/{electronics.id}/")

        assert created.status_code == status.HTTP_201_CREATED
        assert duplicate.status_code == status.HTTP_409_CONFLICT
        assert removed.status_code == status.HTTP_204_NO_CONTENT
        assert [c["name"] for c in client.get("/api/categories/").json()] == ["Garden"]


class TestAdminCatalog:

    def test_regular_user_is_refused(self, client_for, user):
        assert client_for(user).get("/api/admin/products/").status_code == status.HTTP_403_FORBIDDEN

    def test_create_update_and_discontinue(self, client_for, admin, electronics):
        client = client_for(admin)

        created = client.post(
            "/api/admin/products/",
            {"name": "Lamp", "price": 12000, "stock": 3, "category_id": str(electronics.id)},
            format="json",
        )
        product_id = created.json()["id"]
        updated = client.put(f"/api/admin/products/{product_id}/", {"price": 11000}, format="json")
        deleted = client.delete(f"/api/admin/products/{product_id}/")
        listing = client.get("/api/admin/products/", {"status": "DISCONTINUED"}).json()

        assert created.status_code == status.HTTP_201_CREATED
        assert updated.json()["price"] == 11000
        assert deleted.status_code == status.HTTP_204_NO_CONTENT
        assert [p["id"] for p in listing["products"]] == [product_id]

    def test_stock_and_status(self, client_for, admin, product):
        client = client_for(admin)

        emptied = client.patch(f"/api/admin/products/{product.id}/stock/", {"stock": 0}, format="json")
        paused = client.patch(
            f"/api/admin/products/{product.id}/status/", {"status": "TEMPORARILY_UNAVAILABLE"}, format="json"
        )
        invalid = client.patch(f"/api/admin/products/{product.id}/status/", {"status": "LOST"}, format="json")

        assert emptied.json()["status"] == "OUT_OF_STOCK"
        assert paused.json()["status"] == "TEMPORARILY_UNAVAILABLE"
        assert invalid.status_code == status.HTTP_400_BAD_REQUEST

    def test_low_stock(self, client_for, admin, product, cheap_product):
        body = client_for(admin).get("/api/admin/products/low-stock/", {"threshold": 1}).json()
        assert [p["id"] for p in body] == [str(cheap_product.id)]
