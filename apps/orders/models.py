"""
Order Models - orders and their write-once line snapshots
"""
from django.db import models

from apps.core.exceptions import ValidationException
from apps.core.models import BaseModel
from apps.coupons.models import Coupon
from apps.shopcore.models import CartItem, Product, User


class OrderStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PAID = 'PAID', 'Paid'
    PREPARING = 'PREPARING', 'Preparing'
    SHIPPED = 'SHIPPED', 'Shipped'
    DELIVERED = 'DELIVERED', 'Delivered'
    CANCELLED = 'CANCELLED', 'Cancelled'
    REFUND_REQUESTED = 'REFUND_REQUESTED', 'Refund requested'
    REFUNDED = 'REFUNDED', 'Refunded'


class Order(BaseModel):
    """
    Customer order with its pricing breakdown and delivery snapshot.
    """
    order_number = models.CharField(max_length=50, unique=True)
    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name='orders')
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)

    original_amount = models.PositiveIntegerField()
    coupon_discount_amount = models.PositiveIntegerField(default=0)
    vip_discount_amount = models.PositiveIntegerField(default=0)
    final_amount = models.PositiveIntegerField()
    used_coupon = models.ForeignKey(
        Coupon,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )

    # Delivery snapshot
    recipient_name = models.CharField(max_length=50)
    phone = models.CharField(max_length=20)
    address = models.CharField(max_length=200)
    detail_address = models.CharField(max_length=100, blank=True, null=True)
    zip_code = models.CharField(max_length=10)
    delivery_memo = models.CharField(max_length=200, blank=True, null=True)

    memo = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        db_table = 'orders'
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']

    def __str__(self):
        return f"Order {self.order_number} - {self.status}"

    @property
    def total_item_count(self):
        return sum(item.quantity for item in self.items.all())

    def is_cancellable(self):
        return self.status in (OrderStatus.PENDING, OrderStatus.PAID)


class OrderItem(BaseModel):
    """
    Snapshot of a product line at order time; never modified afterwards.
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='order_items')
    quantity = models.PositiveIntegerField()
    unit_price = models.PositiveIntegerField()
    total_price = models.PositiveIntegerField()
    product_name = models.CharField(max_length=200)
    product_image_url = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        db_table = 'order_items'
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationException("Order items are write-once snapshots", field="order_item")
        super().save(*args, **kwargs)

    @classmethod
    def from_cart_item(cls, order: Order, cart_item: CartItem) -> 'OrderItem':
        product = cart_item.product
        return cls(
            order=order,
            product=product,
            quantity=cart_item.quantity,
            unit_price=product.price,
            total_price=product.price * cart_item.quantity,
            product_name=product.name,
            product_image_url=product.image_url,
        )
