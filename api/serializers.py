"""
API Serializers for Request/Response handling
"""
from rest_framework import serializers

from apps.orders.models import OrderStatus
from apps.payguard.models import Payment
from apps.shopcore.models import ProductStatus


class SignupRequestSerializer(serializers.Serializer):
    """
    Request serializer for account signup.
    """
    email = serializers.EmailField(max_length=254)
    password = serializers.CharField(min_length=8, max_length=128, write_only=True)
    name = serializers.CharField(max_length=255)


class LoginRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class UserInfoSerializer(serializers.Serializer):
    id = serializers.CharField()
    email = serializers.EmailField()
    name = serializers.CharField()
    tier = serializers.CharField()
    created_at = serializers.CharField()


class ProductQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=0, min_value=0)
    size = serializers.IntegerField(required=False, default=20, min_value=1, max_value=100)
    category_id = serializers.UUIDField(required=False)
    keyword = serializers.CharField(required=False, allow_blank=True)
    min_price = serializers.IntegerField(required=False, min_value=0)
    max_price = serializers.IntegerField(required=False, min_value=0)
    featured_only = serializers.BooleanField(required=False, default=False)
    sort_by = serializers.ChoiceField(
        choices=['created_at', 'price', 'sales_count', 'view_count'], required=False, default='created_at'
    )
    sort_direction = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='desc')

    def validate(self, attrs):
        min_price, max_price = attrs.get('min_price'), attrs.get('max_price')
        if min_price is not None and max_price is not None and min_price > max_price:
            raise serializers.ValidationError({"min_price": "Must not exceed max_price"})
        return attrs


class AdminProductQuerySerializer(ProductQuerySerializer):
    status = serializers.ChoiceField(choices=ProductStatus.choices, required=False)


class LowStockQuerySerializer(serializers.Serializer):
    threshold = serializers.IntegerField(required=False, default=10, min_value=0)


class CategoryRequestSerializer(serializers.Serializer):
    """
    Request serializer for creating or renaming a category.
    """
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    display_order = serializers.IntegerField(required=False, default=0)


class ProductCreateRequestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)
    price = serializers.IntegerField(min_value=0)
    stock = serializers.IntegerField(min_value=0, required=False, default=0)
    category_id = serializers.UUIDField(required=False, allow_null=True)
    image_url = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    is_featured = serializers.BooleanField(required=False, default=False)
    tags = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)


class ProductUpdateRequestSerializer(serializers.Serializer):
    """
    Partial product update: omitted fields are left unchanged.
    """
    name = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(max_length=2000, required=False)
    price = serializers.IntegerField(min_value=0, required=False)
    stock = serializers.IntegerField(min_value=0, required=False)
    category_id = serializers.UUIDField(required=False)
    image_url = serializers.CharField(max_length=500, required=False)
    status = serializers.ChoiceField(choices=ProductStatus.choices, required=False)
    is_featured = serializers.BooleanField(required=False)
    tags = serializers.CharField(max_length=1000, required=False)


class StockUpdateSerializer(serializers.Serializer):
    stock = serializers.IntegerField(min_value=0)


class ProductStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ProductStatus.choices)


class CartAddRequestSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class CartUpdateQuantityRequestSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class DeliveryInfoSerializer(serializers.Serializer):
    """
    Delivery address captured on the order at checkout.
    """
    recipient_name = serializers.CharField(max_length=50)
    phone = serializers.CharField(max_length=20)
    address = serializers.CharField(max_length=200)
    detail_address = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    zip_code = serializers.CharField(max_length=10)
    delivery_memo = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)


class OrderCreateRequestSerializer(serializers.Serializer):
    """
    Request serializer for checkout.
    """
    coupon_id = serializers.UUIDField(
        required=False,
        allow_null=True,
        help_text="Coupon to apply (optional)"
    )
    delivery_info = DeliveryInfoSerializer()
    memo = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=0, min_value=0)
    size = serializers.IntegerField(required=False, default=10, min_value=1, max_value=100)


class AdminOrderQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    keyword = serializers.CharField(required=False, allow_blank=True)


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class PaymentPrepareRequestSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    amount = serializers.IntegerField(min_value=0)
    payment_method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES)


class PaymentCompleteRequestSerializer(serializers.Serializer):
    payment_key = serializers.CharField(max_length=100)
    amount = serializers.IntegerField(min_value=0)


class VipDiscountQuerySerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=0)


class ErrorResponseSerializer(serializers.Serializer):
    """
    Uniform error body produced by the exception handler.
    """
    error = serializers.BooleanField()
    code = serializers.CharField()
    message = serializers.CharField()
    details = serializers.DictField()
    status_code = serializers.IntegerField()


class HealthCheckSerializer(serializers.Serializer):
    """
    Response serializer for health check.
    """
    status = serializers.CharField()
    version = serializers.CharField()
    database = serializers.CharField()
    timestamp = serializers.CharField()
