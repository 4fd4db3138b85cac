"""
Checkout and order lifecycle

This module implements:
1. Stock validation against locked, current product rows
2. Checkout: cart -> order with coupon and VIP discounts, in one transaction
3. Cancellation with compensating actions (stock restore, coupon release)
4. Payment-driven and administrative status changes
"""
import logging
import random
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.exceptions import (
    CouponUnusableException,
    ForbiddenException,
    InsufficientStockException,
    NotFoundException,
    ValidationException,
)
from apps.core.utils import generate_unique_code, paginate
from apps.coupons.services import CouponService
from apps.loyalty.discount import DiscountBreakdown, coupon_discount_for
from apps.loyalty.services import VipService
from apps.payguard.models import Payment, PaymentStatus
from apps.shopcore.models import Cart, CartItem, Product, User
from .models import Order, OrderItem, OrderStatus
from .state import transition

logger = logging.getLogger(__name__)


class StockValidator:
    """
    Checks requested quantities against the persisted stock of each product.

    Rows are locked in primary-key order so concurrent checkouts touching the
    same products queue up instead of deadlocking.
    """

    def lock_products(self, product_ids: Iterable) -> Dict[Any, Product]:
        products = Product.objects.select_for_update().filter(pk__in=set(product_ids)).order_by('pk')
        return {product.pk: product for product in products}

    def validate(self, lines: List[CartItem]) -> Dict[Any, Product]:
        products = self.lock_products(line.product_id for line in lines)
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise NotFoundException("Product", line.product_id)
            if product.stock < line.quantity:
                logger.warning(
                    f"Insufficient stock: product={product.id}, requested={line.quantity}, "
                    f"available={product.stock}"
                )
                raise InsufficientStockException(product.id, product.name, line.quantity, product.stock)
            line.product = product
        return products


class OrderService:
    """
    Owns the Order State Machine and its side effects.
    """

    def __init__(
        self,
        coupon_service: CouponService = None,
        vip_service: VipService = None,
        stock_validator: StockValidator = None,
    ):
        self.coupon_service = coupon_service or CouponService()
        self.vip_service = vip_service or VipService(self.coupon_service)
        self.stock_validator = stock_validator or StockValidator()

    @transaction.atomic
    def create_order(
        self,
        user: User,
        delivery: Dict[str, Any],
        coupon_id=None,
        memo: Optional[str] = None,
    ) -> Order:
        """
        Convert the user's cart into a PENDING order.

        Everything below runs in one transaction: any failure leaves stock,
        coupon and cart exactly as they were.
        """
        logger.info(f"Checkout started: user={user.id}, coupon={coupon_id}")

        cart = Cart.objects.select_for_update().filter(user=user).first()
        lines = list(cart.items.select_related('product').order_by('created_at')) if cart else []
        if not lines:
            raise ValidationException("Cart is empty", field="cart")

        self.stock_validator.validate(lines)

        coupon = None
        if coupon_id is not None:
            coupon = self.coupon_service.get_coupon(coupon_id)
            if not self.coupon_service.is_coupon_usable(coupon_id, user):
                raise CouponUnusableException(coupon_id, "already used, expired or not owned")

        original_amount = sum(line.total_price for line in lines)
        breakdown = DiscountBreakdown(
            original_amount=original_amount,
            coupon_discount=coupon_discount_for(coupon, original_amount),
            vip_discount=self.vip_service.calculate_vip_discount(user, original_amount),
        )

        order = Order(
            user=user,
            status=OrderStatus.PENDING,
            original_amount=breakdown.original_amount,
            coupon_discount_amount=breakdown.coupon_discount,
            vip_discount_amount=breakdown.vip_discount,
            final_amount=breakdown.final_amount,
            used_coupon=coupon,
            recipient_name=delivery['recipient_name'],
            phone=delivery['phone'],
            address=delivery['address'],
            detail_address=delivery.get('detail_address'),
            zip_code=delivery['zip_code'],
            delivery_memo=delivery.get('delivery_memo'),
            memo=memo,
        )
        order.order_number = self.generate_order_number(order)
        order.save()

        for line in lines:
            OrderItem.from_cart_item(order, line).save()
            if not Product.objects.decrement_stock(line.product_id, line.quantity):
                current = Product.objects.filter(pk=line.product_id).values_list('stock', flat=True).first() or 0
                raise InsufficientStockException(line.product_id, line.product.name, line.quantity, current)

        if coupon is not None:
            self.coupon_service.consume_coupon(coupon.id, user)

        cart.items.all().delete()
        cart.save(update_fields=['updated_at'])

        logger.info(
            f"Order created: order={order.order_number}, user={user.id}, original={breakdown.original_amount}, "
            f"coupon_discount={breakdown.coupon_discount}, vip_discount={breakdown.vip_discount}, "
            f"final={breakdown.final_amount}"
        )
        return order

    def generate_order_number(self, order: Order) -> str:
        today = timezone.localdate().strftime('%Y%m%d')
        return generate_unique_code(
            candidate=lambda attempt: f"ORD-{today}-{random.randint(0, 999):03d}",
            exists=lambda code: Order.objects.filter(order_number=code).exists(),
            fallback=lambda: f"ORD-{today}-{order.id.hex}",
            max_attempts=settings.ORDER_NUMBER_MAX_ATTEMPTS,
        )

    @transaction.atomic
    def cancel_order(self, user: User, order_id) -> Order:
        order = self.owned_order(user, order_id, lock=True)
        self.cancel_with_compensation(order, action="cancel order")
        return order

    def cancel_with_compensation(self, order: Order, action: str) -> None:
        """
        Cancel a PENDING or PAID order, restoring stock for every line and
        releasing the coupon it consumed. A completed payment is cancelled
        with it; a pending one is left for the gateway to expire.

        The caller must hold the order lock. Payment and product rows are
        locked after it, products in pk order, matching checkout.
        """
        transition(order, OrderStatus.CANCELLED, action)

        payment = Payment.objects.select_for_update().filter(order=order, status=PaymentStatus.COMPLETED).first()
        if payment is not None:
            payment.cancel()
            payment.save(update_fields=['status', 'updated_at'])
            logger.info(f"Payment cancelled with order: key={payment.payment_key}, order={order.order_number}")

        for item in order.items.order_by('product_id'):
            Product.objects.restore_stock(item.product_id, item.quantity)

        if order.used_coupon_id is not None:
            self.coupon_service.release_coupon(order.used_coupon)

        order.save(update_fields=['status', 'updated_at'])
        logger.info(f"Order cancelled: order={order.order_number}, via={action}")

    def mark_paid(self, order: Order) -> None:
        transition(order, OrderStatus.PAID, "complete payment")
        order.save(update_fields=['status', 'updated_at'])
        logger.info(f"Order paid: order={order.order_number}")

    @transaction.atomic
    def update_order_status(self, order_id, new_status: str) -> Order:
        """Administrative override: no transition guards, no side effects."""
        if new_status not in OrderStatus.values:
            raise ValidationException(f"Unknown order status: {new_status}", field="status")

        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFoundException("Order", order_id)

        previous = order.status
        order.status = new_status
        order.save(update_fields=['status', 'updated_at'])
        logger.warning(f"Order status overridden: order={order.order_number}, {previous} -> {new_status}")
        return order

    def get_my_orders(self, user: User, page: int = 0, size: int = 10) -> Dict[str, Any]:
        orders = (
            Order.objects.filter(user=user)
            .select_related('user')
            .prefetch_related('items')
            .order_by('-created_at')
        )
        return paginate(orders, page, size, order_to_summary, key="orders")

    def get_order_detail(self, user: User, order_id) -> Order:
        return self.owned_order(user, order_id)

    def list_orders_for_admin(
        self,
        status: Optional[str] = None,
        keyword: Optional[str] = None,
        page: int = 0,
        size: int = 20,
    ) -> Dict[str, Any]:
        orders = Order.objects.select_related('user').prefetch_related('items')
        if status:
            orders = orders.filter(status=status)
        if keyword and keyword.strip():
            keyword = keyword.strip()
            orders = orders.filter(
                Q(order_number__icontains=keyword)
                | Q(user__email__icontains=keyword)
                | Q(user__name__icontains=keyword)
                | Q(recipient_name__icontains=keyword)
            )
        return paginate(orders.order_by('-created_at'), page, size, order_to_summary, key="orders")

    def get_order_detail_for_admin(self, order_id) -> Order:
        order = Order.objects.select_related('user', 'used_coupon').filter(pk=order_id).first()
        if order is None:
            raise NotFoundException("Order", order_id)
        return order

    def owned_order(self, user: User, order_id, lock: bool = False) -> Order:
        queryset = Order.objects.select_for_update() if lock else Order.objects.select_related('user', 'used_coupon')
        order = queryset.filter(pk=order_id).first()
        if order is None:
            raise NotFoundException("Order", order_id)
        if order.user_id != user.id:
            logger.warning(f"Order access denied: order={order_id}, requester={user.id}")
            raise ForbiddenException("Order belongs to another user")
        return order


def order_to_summary(order: Order) -> Dict[str, Any]:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "user_name": order.user.name,
        "item_count": order.total_item_count,
        "final_amount": order.final_amount,
        "created_at": order.created_at.isoformat(),
    }


def order_to_detail(order: Order) -> Dict[str, Any]:
    used_coupon = None
    if order.used_coupon_id is not None:
        used_coupon = {
            "id": str(order.used_coupon_id),
            "name": order.used_coupon.name,
            "discount_amount": order.coupon_discount_amount,
        }

    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "user": {"id": str(order.user.id), "email": order.user.email, "name": order.user.name},
        "items": [
            {
                "id": str(item.id),
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "product_image_url": item.product_image_url,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total_price": item.total_price,
            }
            for item in order.items.all()
        ],
        "original_amount": order.original_amount,
        "coupon_discount_amount": order.coupon_discount_amount,
        "vip_discount_amount": order.vip_discount_amount,
        "final_amount": order.final_amount,
        "used_coupon": used_coupon,
        "delivery_info": {
            "recipient_name": order.recipient_name,
            "phone": order.phone,
            "address": order.address,
            "detail_address": order.detail_address,
            "zip_code": order.zip_code,
            "delivery_memo": order.delivery_memo,
        },
        "memo": order.memo,
        "created_at": order.created_at.isoformat(),
        "updated_at": order.updated_at.isoformat(),
    }
