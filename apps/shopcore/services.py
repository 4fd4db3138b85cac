"""
ShopCore services - accounts, categories, the catalog and the cart
"""
import logging
from typing import Any, Dict, List, Optional

from django.db import transaction

from apps.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InsufficientStockException,
    InvalidCredentialsException,
    NotFoundException,
    ValidationException,
)
from apps.core.utils import paginate
from apps.coupons.services import CouponService
from apps.loyalty.services import VipService
from .models import Cart, CartItem, Category, Product, ProductStatus, Tier, User

logger = logging.getLogger(__name__)


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "tier": user.tier,
        "created_at": user.created_at.isoformat(),
    }


def category_to_dict(category: Category) -> Dict[str, Any]:
    return {
        "id": str(category.id),
        "name": category.name,
        "description": category.description,
        "product_count": getattr(category, 'product_count', None),
        "display_order": category.display_order,
        "is_active": category.is_active,
        "created_at": category.created_at.isoformat(),
    }


def product_to_dict(product: Product) -> Dict[str, Any]:
    category = None
    if product.category_id is not None:
        category = {"id": str(product.category_id), "name": product.category.name}

    return {
        "id": str(product.id),
        "name": product.name,
        "description": product.description,
        "category": category,
        "price": product.price,
        "stock": product.stock,
        "image_url": product.image_url,
        "status": product.status,
        "view_count": product.view_count,
        "sales_count": product.sales_count,
        "is_featured": product.is_featured,
        "created_at": product.created_at.isoformat(),
    }


def product_to_detail(product: Product, related: List[Product] = ()) -> Dict[str, Any]:
    detail = product_to_dict(product)
    detail.update(
        tags=[tag.strip() for tag in (product.tags or "").split(",") if tag.strip()],
        related_products=[product_to_dict(p) for p in related],
        updated_at=product.updated_at.isoformat(),
    )
    return detail


class AccountService:
    """
    Signup and credential checks. Token issuance lives outside this service.
    """

    def __init__(self, coupon_service: CouponService = None):
        self.coupon_service = coupon_service or CouponService()

    @transaction.atomic
    def signup(self, email: str, password: str, name: str) -> User:
        """Create a USER-tier account and grant its welcome coupon atomically."""
        email = email.strip().lower()
        logger.info(f"Signup attempt: email={email}")

        if User.objects.filter(email__iexact=email).exists():
            logger.warning(f"Signup rejected, duplicate email: {email}")
            raise ConflictException("Email is already registered")

        user = User(email=email, name=name, tier=Tier.USER)
        user.set_password(password)
        user.save()
        logger.info(f"User created: id={user.id}, email={user.email}")

        self.coupon_service.issue_welcome_coupon(user)
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = User.objects.filter(email__iexact=email).first()
        if user is None or not user.check_password(password):
            logger.warning(f"Login failed: email={email}")
            raise InvalidCredentialsException()
        logger.info(f"Login succeeded: email={email}, tier={user.tier}")
        return user

    def get_user_by_email(self, email: str) -> User:
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            raise NotFoundException("User", email)
        return user


class CategoryService:
    """
    Category reads for the storefront and admin maintenance.
    """

    def list_active_categories(self) -> List[Dict[str, Any]]:
        categories = Category.objects.active().with_product_count()
        return [category_to_dict(category) for category in categories]

    def get_category(self, category_id) -> Category:
        category = Category.objects.with_product_count().filter(pk=category_id).first()
        if category is None:
            raise NotFoundException("Category", category_id)
        return category

    @transaction.atomic
    def create_category(self, name: str, description: Optional[str] = None, display_order: int = 0) -> Category:
        if Category.objects.filter(name=name).exists():
            raise ConflictException(f"Category name already exists: {name}")

        category = Category.objects.create(name=name, description=description, display_order=display_order)
        logger.info(f"Category created: id={category.id}, name={name}")
        return self.get_category(category.pk)

    @transaction.atomic
    def update_category(
        self,
        category_id,
        name: str,
        description: Optional[str] = None,
        display_order: int = 0,
    ) -> Category:
        category = self.get_category(category_id)
        if category.name != name and Category.objects.filter(name=name).exists():
            raise ConflictException(f"Category name already exists: {name}")

        category.name = name
        category.description = description
        category.display_order = display_order
        category.save(update_fields=['name', 'description', 'display_order', 'updated_at'])
        logger.info(f"Category updated: id={category.id}, name={name}")
        return category

    @transaction.atomic
    def deactivate_category(self, category_id) -> None:
        category = self.get_category(category_id)
        category.is_active = False
        category.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"Category deactivated: id={category.id}")


class CatalogService:
    """
    Read side of the product catalog.
    """
    SORT_FIELDS = {
        'created_at': 'created_at',
        'price': 'price',
        'sales_count': 'sales_count',
        'view_count': 'view_count',
    }
    HIGHLIGHT_LIMIT = 10
    RELATED_LIMIT = 5

    def search(
        self,
        status: Optional[str] = ProductStatus.ACTIVE,
        category_id=None,
        keyword: Optional[str] = None,
        min_price: Optional[int] = None,
        max_price: Optional[int] = None,
        featured_only: bool = False,
        sort_by: str = 'created_at',
        sort_direction: str = 'desc',
    ):
        """
        Product queryset narrowed by every filter given. ``status=None``
        matches products in any status.
        """
        products = Product.objects.select_related('category')
        if status:
            products = products.filter(status=status)
        if category_id:
            products = products.filter(category_id=category_id)
        if keyword and keyword.strip():
            products = products.matching(keyword.strip())
        if min_price is not None:
            products = products.filter(price__gte=min_price)
        if max_price is not None:
            products = products.filter(price__lte=max_price)
        if featured_only:
            products = products.filter(is_featured=True)

        field = self.SORT_FIELDS.get(sort_by, 'created_at')
        ordering = field if sort_direction == 'asc' else f"-{field}"
        return products.order_by(ordering, '-created_at')

    def list_products(self, page: int = 0, size: int = 20, **filters) -> Dict[str, Any]:
        products = self.search(status=ProductStatus.ACTIVE, **filters)
        return paginate(products, page, size, product_to_dict, key="products")

    def list_products_for_admin(
        self,
        page: int = 0,
        size: int = 20,
        status: Optional[str] = None,
        **filters,
    ) -> Dict[str, Any]:
        products = self.search(status=status, **filters)
        return paginate(products, page, size, product_to_dict, key="products")

    def get_product(self, product_id, count_view: bool = True) -> Product:
        product = Product.objects.select_related('category').filter(pk=product_id).first()
        if product is None:
            raise NotFoundException("Product", product_id)
        if count_view:
            Product.objects.increment_view_count(product.pk)
            product.refresh_from_db(fields=['view_count'])
        return product

    def related_products(self, product: Product) -> List[Product]:
        """Best sellers from the same category, excluding the product itself."""
        if product.category_id is None:
            return []
        related = (
            Product.objects.available()
            .filter(category_id=product.category_id)
            .exclude(pk=product.pk)
            .select_related('category')
            .order_by('-sales_count', '-created_at')
        )
        return list(related[:self.RELATED_LIMIT])

    def featured_products(self) -> List[Dict[str, Any]]:
        products = Product.objects.available().filter(is_featured=True).select_related('category')
        return [product_to_dict(p) for p in products.order_by('-sales_count', '-created_at')]

    def popular_products(self) -> List[Dict[str, Any]]:
        products = Product.objects.available().select_related('category').order_by('-sales_count', '-created_at')
        return [product_to_dict(p) for p in products[:self.HIGHLIGHT_LIMIT]]

    def latest_products(self) -> List[Dict[str, Any]]:
        products = Product.objects.available().select_related('category').order_by('-created_at')
        return [product_to_dict(p) for p in products[:self.HIGHLIGHT_LIMIT]]

    def low_stock_products(self, threshold: int = 10) -> List[Dict[str, Any]]:
        return [product_to_dict(p) for p in Product.objects.low_stock(threshold).select_related('category')]


class ProductAdminService:
    """
    Catalog maintenance. Stock set here is an absolute correction; checkout
    and cancellation keep using the conditional primitives.
    """
    UPDATABLE_FIELDS = (
        'name', 'description', 'price', 'stock', 'image_url', 'status', 'is_featured', 'tags',
    )

    @transaction.atomic
    def create_product(self, data: Dict[str, Any]) -> Product:
        name = data['name']
        if Product.objects.filter(name=name).exists():
            raise ConflictException(f"Product name already exists: {name}")

        product = Product.objects.create(
            name=name,
            description=data.get('description'),
            category=self._category(data.get('category_id')),
            price=data['price'],
            stock=data.get('stock', 0),
            image_url=data.get('image_url'),
            is_featured=data.get('is_featured', False),
            tags=data.get('tags'),
            status=ProductStatus.ACTIVE,
        )
        logger.info(f"Product created: id={product.id}, name={name}")
        return product

    @transaction.atomic
    def update_product(self, product_id, data: Dict[str, Any]) -> Product:
        """Apply every field present in ``data``; absent fields keep their value."""
        product = self._locked(product_id)

        name = data.get('name')
        if name and name != product.name and Product.objects.filter(name=name).exists():
            raise ConflictException(f"Product name already exists: {name}")

        if data.get('category_id') is not None:
            product.category = self._category(data['category_id'])

        changed = [field for field in self.UPDATABLE_FIELDS if data.get(field) is not None]
        for field in changed:
            setattr(product, field, data[field])
        if 'status' in changed:
            self._check_status(product.status)

        product.save()
        logger.info(f"Product updated: id={product.id}, fields={changed}")
        return product

    @transaction.atomic
    def delete_product(self, product_id) -> None:
        """Soft delete: order history keeps pointing at the row."""
        product = self._locked(product_id)
        product.status = ProductStatus.DISCONTINUED
        product.save(update_fields=['status', 'updated_at'])
        logger.info(f"Product discontinued: id={product.id}")

    @transaction.atomic
    def update_stock(self, product_id, stock: int) -> Product:
        if stock < 0:
            raise ValidationException("Stock cannot be negative", field="stock")

        product = self._locked(product_id)
        product.stock = stock
        if stock > 0 and product.status == ProductStatus.OUT_OF_STOCK:
            product.status = ProductStatus.ACTIVE
        elif stock == 0 and product.status == ProductStatus.ACTIVE:
            product.status = ProductStatus.OUT_OF_STOCK

        product.save(update_fields=['stock', 'status', 'updated_at'])
        logger.info(f"Stock set: product={product.id}, stock={stock}, status={product.status}")
        return product

    @transaction.atomic
    def update_status(self, product_id, status: str) -> Product:
        self._check_status(status)
        product = self._locked(product_id)
        product.status = status
        product.save(update_fields=['status', 'updated_at'])
        logger.info(f"Product status set: product={product.id}, status={status}")
        return product

    def _locked(self, product_id) -> Product:
        product = Product.objects.select_for_update().filter(pk=product_id).first()
        if product is None:
            raise NotFoundException("Product", product_id)
        return product

    def _category(self, category_id) -> Optional[Category]:
        if category_id is None:
            return None
        category = Category.objects.filter(pk=category_id).first()
        if category is None:
            raise NotFoundException("Category", category_id)
        return category

    def _check_status(self, status: str) -> None:
        if status not in ProductStatus.values:
            raise ValidationException(f"Unknown product status: {status}", field="status")


class CartService:
    """
    Cart operations. Stock checks here are advisory; checkout re-validates
    against locked rows.
    """

    def __init__(self, vip_service: VipService = None):
        self.vip_service = vip_service or VipService()

    def get_or_create_cart(self, user: User) -> Cart:
        cart, created = Cart.objects.get_or_create(user=user)
        if created:
            logger.debug(f"Cart created: user={user.id}")
        return cart

    def get_cart(self, user: User) -> Dict[str, Any]:
        cart = self.get_or_create_cart(user)
        lines = cart.lines()

        total_amount = sum(item.total_price for item in lines)
        vip_discount = self.vip_service.calculate_vip_discount(user, total_amount)

        return {
            "cart_id": str(cart.id),
            "user_id": str(user.id),
            "items": [self._item_to_dict(item) for item in lines],
            "total_item_count": sum(item.quantity for item in lines),
            "total_amount": total_amount,
            "expected_vip_discount": vip_discount,
            "expected_final_amount": max(0, total_amount - vip_discount),
            "updated_at": cart.updated_at.isoformat(),
        }

    @transaction.atomic
    def add_item(self, user: User, product_id, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            raise ValidationException("Quantity must be at least 1", field="quantity")

        product = Product.objects.filter(pk=product_id).first()
        if product is None:
            raise NotFoundException("Product", product_id)

        # Serializes first-time adds of the same product on the cart row
        cart = Cart.objects.select_for_update().get(pk=self.get_or_create_cart(user).pk)
        item = cart.items.filter(product=product).first()
        new_quantity = quantity + (item.quantity if item else 0)

        if product.stock < new_quantity:
            raise InsufficientStockException(product.id, product.name, new_quantity, product.stock)

        if item is not None:
            item.quantity = new_quantity
            item.save(update_fields=['quantity', 'updated_at'])
            logger.info(f"Cart line increased: item={item.id}, quantity={new_quantity}")
        else:
            item = CartItem.objects.create(cart=cart, product=product, quantity=quantity)
            logger.info(f"Cart line added: item={item.id}, product={product.id}, quantity={quantity}")

        cart.save(update_fields=['updated_at'])
        return self.get_cart(user)

    @transaction.atomic
    def update_quantity(self, user: User, item_id, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            raise ValidationException("Quantity must be at least 1", field="quantity")

        item = self._owned_item(user, item_id)
        if item.product.stock < quantity:
            raise InsufficientStockException(item.product.id, item.product.name, quantity, item.product.stock)

        item.quantity = quantity
        item.save(update_fields=['quantity', 'updated_at'])
        logger.info(f"Cart line updated: item={item.id}, quantity={quantity}")
        return self.get_cart(user)

    @transaction.atomic
    def remove_item(self, user: User, item_id) -> Dict[str, Any]:
        item = self._owned_item(user, item_id)
        item.delete()
        logger.info(f"Cart line removed: item={item_id}")
        return self.get_cart(user)

    def clear_cart(self, user: User) -> None:
        cart = Cart.objects.filter(user=user).first()
        if cart is None:
            return
        deleted, _ = cart.items.all().delete()
        cart.save(update_fields=['updated_at'])
        logger.info(f"Cart cleared: cart={cart.id}, lines={deleted}")

    def insufficient_stock_items(self, user: User) -> List[Dict[str, Any]]:
        cart = Cart.objects.filter(user=user).first()
        if cart is None:
            return []
        return [self._item_to_dict(item) for item in cart.lines() if not item.is_stock_available()]

    def _owned_item(self, user: User, item_id) -> CartItem:
        item = CartItem.objects.select_related('cart', 'product').filter(pk=item_id).first()
        if item is None:
            raise NotFoundException("Cart item", item_id)
        if item.cart.user_id != user.id:
            raise ForbiddenException("Cart item belongs to another user")
        return item

    def _item_to_dict(self, item: CartItem) -> Dict[str, Any]:
        return {
            "id": str(item.id),
            "product": product_to_dict(item.product),
            "quantity": item.quantity,
            "unit_price": item.product.price,
            "total_price": item.total_price,
            "shortage_quantity": item.shortage_quantity,
        }
