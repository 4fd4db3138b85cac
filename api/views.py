"""
API Views for the commerce backend

This module provides REST API endpoints for:
- Accounts: signup, credential check, current user
- Catalog: categories, product search and highlights
- Cart
- Coupons and VIP loyalty
- Checkout, order history and cancellation
- Payments (simulated gateway hooks)
- Admin order and catalog management
- Health Check: System health and status
"""
import logging
from datetime import datetime, timezone as dt_timezone

from django.db import connection
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.coupons.services import CouponService, coupon_to_dict
from apps.loyalty.services import VipService
from apps.orders.services import OrderService, order_to_detail
from apps.payguard.services import PaymentService, payment_to_dict
from apps.shopcore.services import (
    AccountService,
    CartService,
    CatalogService,
    CategoryService,
    ProductAdminService,
    category_to_dict,
    product_to_detail,
    product_to_dict,
    user_to_dict,
)
from .authentication import IsAdminTier
from .serializers import (
    AdminOrderQuerySerializer,
    AdminProductQuerySerializer,
    CartAddRequestSerializer,
    CartUpdateQuantityRequestSerializer,
    CategoryRequestSerializer,
    ErrorResponseSerializer,
    HealthCheckSerializer,
    LoginRequestSerializer,
    LowStockQuerySerializer,
    OrderCreateRequestSerializer,
    OrderStatusUpdateSerializer,
    PageQuerySerializer,
    PaymentCompleteRequestSerializer,
    PaymentPrepareRequestSerializer,
    ProductCreateRequestSerializer,
    ProductQuerySerializer,
    ProductStatusUpdateSerializer,
    ProductUpdateRequestSerializer,
    SignupRequestSerializer,
    StockUpdateSerializer,
    UserInfoSerializer,
    VipDiscountQuerySerializer,
)

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: ErrorResponseSerializer,
    403: ErrorResponseSerializer,
    404: ErrorResponseSerializer,
    409: ErrorResponseSerializer,
}


def validated(serializer_class, data):
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# =============================================================================
# Accounts
# =============================================================================

class SignupView(APIView):
    """
    Register a USER-tier account. The welcome coupon is granted in the same
    transaction.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        request=SignupRequestSerializer,
        responses={201: UserInfoSerializer, **ERROR_RESPONSES},
        description="Create an account and issue its welcome coupon",
        examples=[
            OpenApiExample(
                "Signup",
                value={"email": "jane@example.com", "password": "s3cret-pass", "name": "Jane"},
                request_only=True
            ),
        ]
    )
    def post(self, request):
        data = validated(SignupRequestSerializer, request.data)
        user = AccountService().signup(data['email'], data['password'], data['name'])
        return Response(user_to_dict(user), status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    Verify credentials. Token issuance happens at the gateway.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        request=LoginRequestSerializer,
        responses={200: UserInfoSerializer, 401: ErrorResponseSerializer},
        description="Check email and password"
    )
    def post(self, request):
        data = validated(LoginRequestSerializer, request.data)
        user = AccountService().authenticate(data['email'], data['password'])
        return Response(user_to_dict(user), status=status.HTTP_200_OK)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: UserInfoSerializer}, description="Current user")
    def get(self, request):
        return Response(user_to_dict(request.user), status=status.HTTP_200_OK)


# =============================================================================
# Catalog
# =============================================================================

def catalog_filters(params):
    return {
        "category_id": params.get('category_id'),
        "keyword": params.get('keyword') or None,
        "min_price": params.get('min_price'),
        "max_price": params.get('max_price'),
        "featured_only": params['featured_only'],
        "sort_by": params['sort_by'],
        "sort_direction": params['sort_direction'],
    }


class ProductListView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        parameters=[ProductQuerySerializer],
        description="Search available products by category, keyword, price range and featured flag"
    )
    def get(self, request):
        params = validated(ProductQuerySerializer, request.query_params)
        result = CatalogService().list_products(
            page=params['page'],
            size=params['size'],
            **catalog_filters(params),
        )
        return Response(result, status=status.HTTP_200_OK)


class ProductDetailView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        responses={404: ErrorResponseSerializer},
        description="Product detail with related products; counts a view"
    )
    def get(self, request, product_id):
        catalog = CatalogService()
        product = catalog.get_product(product_id)
        return Response(product_to_detail(product, catalog.related_products(product)), status=status.HTTP_200_OK)


class FeaturedProductListView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(description="Featured products, best sellers first")
    def get(self, request):
        return Response(CatalogService().featured_products(), status=status.HTTP_200_OK)


class PopularProductListView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(description="Top ten best sellers")
    def get(self, request):
        return Response(CatalogService().popular_products(), status=status.HTTP_200_OK)


class LatestProductListView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(description="Ten newest products")
    def get(self, request):
        return Response(CatalogService().latest_products(), status=status.HTTP_200_OK)


class CategoryListView(APIView):
    """
    Anyone may browse active categories; only admins create them.
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsAuthenticated(), IsAdminTier()]

    @extend_schema(description="Active categories in display order, with active product counts")
    def get(self, request):
        return Response(CategoryService().list_active_categories(), status=status.HTTP_200_OK)

    @extend_schema(request=CategoryRequestSerializer, responses=ERROR_RESPONSES, description="Create a category")
    def post(self, request):
        data = validated(CategoryRequestSerializer, request.data)
        category = CategoryService().create_category(
            data['name'], data.get('description'), data['display_order']
        )
        return Response(category_to_dict(category), status=status.HTTP_201_CREATED)


class CategoryDetailView(APIView):

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsAuthenticated(), IsAdminTier()]

    @extend_schema(responses=ERROR_RESPONSES, description="Category detail")
    def get(self, request, category_id):
        category = CategoryService().get_category(category_id)
        return Response(category_to_dict(category), status=status.HTTP_200_OK)

    @extend_schema(request=CategoryRequestSerializer, responses=ERROR_RESPONSES, description="Rename or reorder a category")
    def put(self, request, category_id):
        data = validated(CategoryRequestSerializer, request.data)
        category = CategoryService().update_category(
            category_id, data['name'], data.get('description'), data['display_order']
        )
        return Response(category_to_dict(category), status=status.HTTP_200_OK)

    @extend_schema(responses=ERROR_RESPONSES, description="Deactivate a category")
    def delete(self, request, category_id):
        CategoryService().deactivate_category(category_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Cart
# =============================================================================

class CartView(APIView):
    """
    The caller's cart with the expected VIP discount applied.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(description="Get the cart")
    def get(self, request):
        return Response(CartService().get_cart(request.user), status=status.HTTP_200_OK)

    @extend_schema(description="Remove every line from the cart")
    def delete(self, request):
        CartService().clear_cart(request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CartItemListView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=CartAddRequestSerializer,
        responses=ERROR_RESPONSES,
        description="Add a product; merges with an existing line"
    )
    def post(self, request):
        data = validated(CartAddRequestSerializer, request.data)
        cart = CartService().add_item(request.user, data['product_id'], data['quantity'])
        return Response(cart, status=status.HTTP_201_CREATED)


class CartItemDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=CartUpdateQuantityRequestSerializer,
        responses=ERROR_RESPONSES,
        description="Set the quantity of a cart line"
    )
    def patch(self, request, item_id):
        data = validated(CartUpdateQuantityRequestSerializer, request.data)
        cart = CartService().update_quantity(request.user, item_id, data['quantity'])
        return Response(cart, status=status.HTTP_200_OK)

    @extend_schema(responses=ERROR_RESPONSES, description="Remove a cart line")
    def delete(self, request, item_id):
        cart = CartService().remove_item(request.user, item_id)
        return Response(cart, status=status.HTTP_200_OK)


class CartInsufficientStockView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(description="Cart lines whose quantity exceeds current stock")
    def get(self, request):
        items = CartService().insufficient_stock_items(request.user)
        return Response(items, status=status.HTTP_200_OK)


# =============================================================================
# Coupons
# =============================================================================

class CouponListView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(description="All coupons owned by the caller")
    def get(self, request):
        return Response(CouponService().list_coupons(request.user), status=status.HTTP_200_OK)


class AvailableCouponListView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(description="Unused, unexpired coupons owned by the caller")
    def get(self, request):
        return Response(CouponService().list_available_coupons(request.user), status=status.HTTP_200_OK)


# =============================================================================
# Orders
# =============================================================================

class OrderListView(APIView):
    """
    Order history and checkout.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(parameters=[PageQuerySerializer], description="The caller's orders, newest first")
    def get(self, request):
        params = validated(PageQuerySerializer, request.query_params)
        result = OrderService().get_my_orders(request.user, page=params['page'], size=params['size'])
        return Response(result, status=status.HTTP_200_OK)

    @extend_schema(
        request=OrderCreateRequestSerializer,
        responses=ERROR_RESPONSES,
        description="Convert the cart into a PENDING order",
        examples=[
            OpenApiExample(
                "Checkout with coupon",
                value={
                    "coupon_id": "6f1c8a1e-0b8e-4c55-9d8e-3c5f1f0b2a11",
                    "delivery_info": {
                        "recipient_name": "Jane Doe",
                        "phone": "010-1234-5678",
                        "address": "123 Main St",
                        "detail_address": "Apt 4",
                        "zip_code": "12345",
                        "delivery_memo": "Leave at the door"
                    },
                    "memo": None
                },
                request_only=True
            ),
        ]
    )
    def post(self, request):
        data = validated(OrderCreateRequestSerializer, request.data)
        order = OrderService().create_order(
            request.user,
            delivery=data['delivery_info'],
            coupon_id=data.get('coupon_id'),
            memo=data.get('memo'),
        )
        return Response(order_to_detail(order), status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses=ERROR_RESPONSES, description="Order detail")
    def get(self, request, order_id):
        order = OrderService().get_order_detail(request.user, order_id)
        return Response(order_to_detail(order), status=status.HTTP_200_OK)


class OrderCancelView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=None,
        responses=ERROR_RESPONSES,
        description="Cancel a PENDING or PAID order; restores stock and the coupon"
    )
    def post(self, request, order_id):
        order = OrderService().cancel_order(request.user, order_id)
        return Response(order_to_detail(order), status=status.HTTP_200_OK)


# =============================================================================
# Payments
# =============================================================================

class PaymentPrepareView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=PaymentPrepareRequestSerializer,
        responses=ERROR_RESPONSES,
        description="Create the payment record and return gateway URLs"
    )
    def post(self, request):
        data = validated(PaymentPrepareRequestSerializer, request.data)
        service = PaymentService()
        payment = service.prepare_payment(
            request.user, data['order_id'], data['amount'], data['payment_method']
        )
        return Response(
            {**payment_to_dict(payment), **service.gateway_urls(payment)},
            status=status.HTTP_201_CREATED
        )


class PaymentCompleteView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=PaymentCompleteRequestSerializer,
        responses=ERROR_RESPONSES,
        description="Gateway confirmation: completes the payment and marks the order PAID"
    )
    def post(self, request):
        data = validated(PaymentCompleteRequestSerializer, request.data)
        payment = PaymentService().complete_payment(request.user, data['payment_key'], data['amount'])
        return Response(payment_to_dict(payment), status=status.HTTP_200_OK)


class PaymentDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses=ERROR_RESPONSES, description="Payment detail")
    def get(self, request, payment_id):
        payment = PaymentService().get_payment_detail(request.user, payment_id)
        return Response(payment_to_dict(payment), status=status.HTTP_200_OK)


class PaymentCancelView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=None,
        responses=ERROR_RESPONSES,
        description="Cancel a completed payment and its order"
    )
    def post(self, request, payment_id):
        payment = PaymentService().cancel_payment(request.user, payment_id)
        return Response(payment_to_dict(payment), status=status.HTTP_200_OK)


# =============================================================================
# VIP
# =============================================================================

class VipEligibilityView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(description="Whether the caller can be promoted to VIP")
    def get(self, request):
        eligible = VipService().check_eligibility(request.user)
        return Response({"eligible": eligible}, status=status.HTTP_200_OK)


class VipPromotionView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses=ERROR_RESPONSES, description="Promote the caller to VIP")
    def post(self, request):
        coupon = VipService().promote_to_vip(request.user)
        return Response(
            {"user": user_to_dict(request.user), "coupon": coupon_to_dict(coupon)},
            status=status.HTTP_200_OK
        )


class VipBenefitsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses=ERROR_RESPONSES, description="VIP benefit summary")
    def get(self, request):
        return Response(VipService().get_benefit_info(request.user), status=status.HTTP_200_OK)


class VipDiscountView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[OpenApiParameter("amount", int, required=True, description="Order amount")],
        description="VIP discount the caller would get on an amount"
    )
    def get(self, request):
        params = validated(VipDiscountQuerySerializer, request.query_params)
        discount = VipService().calculate_vip_discount(request.user, params['amount'])
        return Response(
            {"original_amount": params['amount'], "vip_discount": discount},
            status=status.HTTP_200_OK
        )


class VipBirthdayCouponView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses=ERROR_RESPONSES, description="Issue the VIP birthday coupon")
    def post(self, request):
        coupon = VipService().issue_birthday_coupon(request.user)
        return Response(coupon_to_dict(coupon), status=status.HTTP_201_CREATED)


# =============================================================================
# Admin
# =============================================================================

class AdminOrderListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(parameters=[AdminOrderQuerySerializer], description="Search all orders")
    def get(self, request):
        params = validated(AdminOrderQuerySerializer, request.query_params)
        result = OrderService().list_orders_for_admin(
            status=params.get('status'),
            keyword=params.get('keyword'),
            page=params['page'],
            size=params['size'],
        )
        return Response(result, status=status.HTTP_200_OK)


class AdminOrderDetailView(APIView):
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(responses=ERROR_RESPONSES, description="Any order's detail")
    def get(self, request, order_id):
        order = OrderService().get_order_detail_for_admin(order_id)
        return Response(order_to_detail(order), status=status.HTTP_200_OK)


class AdminOrderStatusView(APIView):
    """
    Administrative status override. Bypasses the transition table.
    """
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(request=OrderStatusUpdateSerializer, responses=ERROR_RESPONSES, description="Force an order status")
    def patch(self, request, order_id):
        data = validated(OrderStatusUpdateSerializer, request.data)
        logger.info(f"Admin status change requested: admin={request.user.id}, order={order_id}, status={data['status']}")
        order = OrderService().update_order_status(order_id, data['status'])
        return Response(order_to_detail(order), status=status.HTTP_200_OK)


class AdminProductListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(parameters=[AdminProductQuerySerializer], description="Search products in any status")
    def get(self, request):
        params = validated(AdminProductQuerySerializer, request.query_params)
        result = CatalogService().list_products_for_admin(
            page=params['page'],
            size=params['size'],
            status=params.get('status'),
            **catalog_filters(params),
        )
        return Response(result, status=status.HTTP_200_OK)

    @extend_schema(request=ProductCreateRequestSerializer, responses=ERROR_RESPONSES, description="Create a product")
    def post(self, request):
        data = validated(ProductCreateRequestSerializer, request.data)
        product = ProductAdminService().create_product(data)
        return Response(product_to_detail(product), status=status.HTTP_201_CREATED)


class AdminProductDetailView(APIView):
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(request=ProductUpdateRequestSerializer, responses=ERROR_RESPONSES, description="Update product fields")
    def put(self, request, product_id):
        data = validated(ProductUpdateRequestSerializer, request.data)
        product = ProductAdminService().update_product(product_id, data)
        return Response(product_to_detail(product), status=status.HTTP_200_OK)

    @extend_schema(responses=ERROR_RESPONSES, description="Discontinue a product")
    def delete(self, request, product_id):
        ProductAdminService().delete_product(product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminProductStockView(APIView):
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(request=StockUpdateSerializer, responses=ERROR_RESPONSES, description="Set the stock level")
    def patch(self, request, product_id):
        data = validated(StockUpdateSerializer, request.data)
        product = ProductAdminService().update_stock(product_id, data['stock'])
        return Response(product_to_dict(product), status=status.HTTP_200_OK)


class AdminProductStatusView(APIView):
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(request=ProductStatusUpdateSerializer, responses=ERROR_RESPONSES, description="Set the sale status")
    def patch(self, request, product_id):
        data = validated(ProductStatusUpdateSerializer, request.data)
        product = ProductAdminService().update_status(product_id, data['status'])
        return Response(product_to_dict(product), status=status.HTTP_200_OK)


class AdminLowStockView(APIView):
    permission_classes = [IsAuthenticated, IsAdminTier]

    @extend_schema(parameters=[LowStockQuerySerializer], description="Active products at or below a stock threshold")
    def get(self, request):
        params = validated(LowStockQuerySerializer, request.query_params)
        return Response(CatalogService().low_stock_products(params['threshold']), status=status.HTTP_200_OK)


class HealthCheckView(APIView):
    """
    System health check endpoint.

    Returns the status of the API and database connectivity.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        responses={200: HealthCheckSerializer},
        description="Check system health status"
    )
    def get(self, request):
        # Check database connectivity
        db_status = "healthy"
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except Exception as e:
            logger.error(f"Health check database failure: {e}")
            db_status = f"unhealthy: {str(e)}"

        response_data = {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": "1.0.0",
            "database": db_status,
            "timestamp": datetime.now(dt_timezone.utc).isoformat()
        }

        return Response(response_data, status=status.HTTP_200_OK)
