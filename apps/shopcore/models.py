"""
ShopCore Models - Accounts, Catalog and Cart
Tables: Users, Categories, Products, Carts, CartItems
"""
from django.contrib.auth.hashers import check_password, make_password
from django.db import models
from django.db.models import Count, F, Q

from apps.core.models import BaseModel


class Tier(models.TextChoices):
    USER = 'USER', 'User'
    VIP = 'VIP', 'VIP'
    ADMIN = 'ADMIN', 'Admin'


class User(BaseModel):
    """
    Customer account. The tier drives discount eligibility and coupon access.
    """
    email = models.EmailField(unique=True)
    password = models.CharField(max_length=128)
    name = models.CharField(max_length=255)
    tier = models.CharField(max_length=10, choices=Tier.choices, default=Tier.USER)
    birth_date = models.DateField(blank=True, null=True)

    class Meta:
        db_table = 'shopcore_users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return f"{self.name} ({self.email})"

    # Lets DRF treat the account as the authenticated principal
    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def is_vip(self):
        return self.tier in (Tier.VIP, Tier.ADMIN)

    @property
    def is_admin(self):
        return self.tier == Tier.ADMIN

    def set_password(self, raw_password):
        self.password = make_password(raw_password)

    def check_password(self, raw_password):
        return check_password(raw_password, self.password)


class ProductStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    OUT_OF_STOCK = 'OUT_OF_STOCK', 'Out of stock'
    DISCONTINUED = 'DISCONTINUED', 'Discontinued'
    TEMPORARILY_UNAVAILABLE = 'TEMPORARILY_UNAVAILABLE', 'Temporarily unavailable'


class CategoryQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def with_product_count(self):
        return self.annotate(
            product_count=Count('products', filter=Q(products__status=ProductStatus.ACTIVE))
        )


class Category(BaseModel):
    """
    Product grouping shown in the storefront navigation.
    Deactivated categories stay attached to their products.
    """
    name = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=500, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    display_order = models.IntegerField(default=0)

    objects = CategoryQuerySet.as_manager()

    class Meta:
        db_table = 'shopcore_categories'
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name


class ProductQuerySet(models.QuerySet):
    """
    Catalog filters and atomic stock primitives. Each stock primitive is a
    single conditional UPDATE so two concurrent checkouts cannot both pass
    on the same pre-decrement value.
    """

    def decrement_stock(self, product_id, quantity: int) -> bool:
        updated = self.filter(pk=product_id, stock__gte=quantity).update(
            stock=F('stock') - quantity,
            sales_count=F('sales_count') + quantity,
        )
        return updated == 1

    def restore_stock(self, product_id, quantity: int) -> bool:
        updated = self.filter(pk=product_id).update(stock=F('stock') + quantity)
        return updated == 1

    def increment_view_count(self, product_id):
        self.filter(pk=product_id).update(view_count=F('view_count') + 1)

    def available(self):
        return self.filter(status=ProductStatus.ACTIVE)

    def matching(self, keyword: str):
        return self.filter(
            Q(name__icontains=keyword) | Q(description__icontains=keyword) | Q(tags__icontains=keyword)
        )

    def low_stock(self, threshold: int):
        return self.available().filter(stock__lte=threshold).order_by('stock')


class Product(BaseModel):
    """
    Product in the catalog. Prices are integer minor-currency units.
    """
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    category = models.ForeignKey(
        Category, on_delete=models.PROTECT, related_name='products', blank=True, null=True
    )
    price = models.PositiveIntegerField()
    stock = models.PositiveIntegerField(default=0)
    image_url = models.CharField(max_length=500, blank=True, null=True)
    status = models.CharField(max_length=30, choices=ProductStatus.choices, default=ProductStatus.ACTIVE)
    view_count = models.PositiveIntegerField(default=0)
    sales_count = models.PositiveIntegerField(default=0)
    is_featured = models.BooleanField(default=False)
    tags = models.CharField(max_length=1000, blank=True, null=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        db_table = 'shopcore_products'
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(condition=models.Q(stock__gte=0), name='product_stock_non_negative'),
        ]

    def __str__(self):
        return f"{self.name} ({self.price})"


class Cart(BaseModel):
    """
    A user's cart. Totals are always derived from the current items.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='cart')

    class Meta:
        db_table = 'shopcore_carts'
        verbose_name = 'Cart'
        verbose_name_plural = 'Carts'

    def __str__(self):
        return f"Cart of {self.user.email}"

    def lines(self):
        return list(self.items.select_related('product', 'product__category').order_by('created_at'))

    @property
    def total_item_count(self):
        return sum(item.quantity for item in self.lines())

    @property
    def total_amount(self):
        return sum(item.total_price for item in self.lines())


class CartItem(BaseModel):
    """
    One product line in a cart; at most one line per product.
    """
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'shopcore_cart_items'
        verbose_name = 'Cart Item'
        verbose_name_plural = 'Cart Items'
        constraints = [
            models.UniqueConstraint(fields=['cart', 'product'], name='unique_cart_product'),
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name='cart_item_quantity_positive'),
        ]

    def __str__(self):
        return f"{self.product.name} x{self.quantity}"

    @property
    def total_price(self):
        return self.product.price * self.quantity

    def is_stock_available(self):
        return self.product.stock >= self.quantity

    @property
    def shortage_quantity(self):
        return max(0, self.quantity - self.product.stock)
