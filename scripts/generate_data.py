"""
Synthetic Data Generator for the commerce backend

Generates users (with their welcome coupons), a product catalog and a set of
orders driven through the real checkout and payment services, so every row
respects the same invariants as production traffic.
"""
import os
import sys
import random
from datetime import timedelta

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Setup Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.base')

import django
django.setup()

from django.utils import timezone
from faker import Faker

from apps.core.exceptions import CommerceException
from apps.coupons.models import Coupon
from apps.coupons.services import CouponService
from apps.loyalty.services import VipService
from apps.orders.models import Order, OrderItem
from apps.orders.services import OrderService
from apps.payguard.models import Payment
from apps.payguard.services import PaymentService
from apps.shopcore.models import Cart, CartItem, Category, Product, Tier, User
from apps.shopcore.services import AccountService, CartService, CategoryService, ProductAdminService

fake = Faker()

DEFAULT_PASSWORD = "password1234"


def generate_users(count=50):
    """Generate users through signup, then age and re-tier some of them."""
    print(f"Generating {count} users...")
    accounts = AccountService()
    vip_service = VipService()
    users = []

    for _ in range(count):
        user = accounts.signup(fake.unique.email(), DEFAULT_PASSWORD, fake.name())

        # Backdate membership so some accounts qualify for VIP promotion
        joined = timezone.now() - timedelta(days=random.randint(0, 900))
        User.objects.filter(pk=user.pk).update(
            created_at=joined,
            birth_date=fake.date_of_birth(minimum_age=18, maximum_age=70),
        )
        user.refresh_from_db()

        if random.random() < 0.2 and vip_service.check_eligibility(user):
            vip_service.promote_to_vip(user)
        users.append(user)

    admin = accounts.signup("admin@example.com", DEFAULT_PASSWORD, "Store Admin")
    admin.tier = Tier.ADMIN
    admin.save(update_fields=['tier', 'updated_at'])
    users.append(admin)

    print(f"Created {len(users)} users")
    return users


CATEGORIES = [
    ('electronics', 'Electronics'),
    ('clothing', 'Clothing'),
    ('home', 'Home & Kitchen'),
    ('books', 'Books'),
    ('sports', 'Sports & Outdoors'),
    ('beauty', 'Beauty & Personal Care'),
    ('toys', 'Toys & Games'),
    ('grocery', 'Grocery'),
]


def generate_categories():
    """Create the storefront categories, keyed by template slug."""
    print(f"Generating {len(CATEGORIES)} categories...")
    service = CategoryService()
    categories = {
        slug: service.create_category(name, fake.sentence(), display_order=position)
        for position, (slug, name) in enumerate(CATEGORIES)
    }
    print(f"Created {len(categories)} categories")
    return categories


def generate_products(categories, count=100):
    """Generate dummy products."""
    print(f"Generating {count} products...")

    product_templates = [
        ('Gaming Monitor', 'electronics', 299000, 599000),
        ('Wireless Headphones', 'electronics', 49000, 299000),
        ('Laptop Stand', 'electronics', 29000, 79000),
        ('Smart Watch', 'electronics', 149000, 499000),
        ('Mechanical Keyboard', 'electronics', 79000, 199000),
        ('Running Shoes', 'sports', 49000, 199000),
        ('Yoga Mat', 'sports', 19000, 79000),
        ('Cotton T-Shirt', 'clothing', 14000, 49000),
        ('Winter Jacket', 'clothing', 79000, 299000),
        ('Coffee Maker', 'home', 29000, 199000),
        ('Air Fryer', 'home', 49000, 199000),
        ('Programming Book', 'books', 29000, 79000),
        ('Board Game', 'toys', 24000, 59000),
        ('Face Cream', 'beauty', 12000, 69000),
        ('Olive Oil', 'grocery', 8000, 25000),
    ]

    admin_service = ProductAdminService()
    products = []

    for name_base, category, min_price, max_price in product_templates:
        # Create variations
        for _ in range(count // len(product_templates) + 1):
            if len(products) >= count:
                break

            variation = random.choice(['Pro', 'Lite', 'Plus', 'Max', 'Mini', 'Ultra', ''])
            product = admin_service.create_product({
                'name': f"{name_base} {variation} {fake.unique.bothify('??-###').upper()}".replace('  ', ' '),
                'category_id': categories[category].id,
                'price': random.randrange(min_price, max_price, 1000),
                'description': fake.paragraph(nb_sentences=3),
                'stock': random.randint(0, 200),
                'image_url': fake.image_url(),
                'is_featured': random.random() < 0.1,
                'tags': ",".join(fake.words(nb=3)),
            })
            products.append(product)

    print(f"Created {len(products)} products")
    return products


def generate_orders(users, products, count=200):
    """Place orders through checkout; pay and cancel a share of them."""
    print(f"Generating {count} orders...")
    cart_service = CartService()
    order_service = OrderService()
    payment_service = PaymentService(order_service)
    coupon_service = CouponService()
    orders = []

    for _ in range(count):
        user = random.choice(users)
        try:
            for product in random.sample(products, random.randint(1, 3)):
                if product.stock > 0:
                    cart_service.add_item(user, product.id, 1)

            coupons = coupon_service.list_available_coupons(user)
            coupon_id = coupons[0]['id'] if coupons and random.random() < 0.3 else None

            order = order_service.create_order(
                user,
                delivery={
                    "recipient_name": user.name[:50],
                    "phone": fake.numerify("010-####-####"),
                    "address": fake.street_address(),
                    "detail_address": fake.secondary_address(),
                    "zip_code": fake.postcode()[:10],
                    "delivery_memo": None,
                },
                coupon_id=coupon_id,
            )
        except CommerceException as e:
            print(f"  Skipped checkout for {user.email}: {e.message}")
            cart_service.clear_cart(user)
            continue

        roll = random.random()
        if roll < 0.6:
            payment = payment_service.prepare_payment(user, order.id, order.final_amount, 'CARD')
            payment_service.complete_payment(user, payment.payment_key, payment.amount)
        elif roll < 0.7:
            order_service.cancel_order(user, order.id)
        orders.append(order)

        # Refresh so later carts see the decremented stock
        for product in products:
            product.refresh_from_db(fields=['stock'])

    print(f"Created {len(orders)} orders")
    return orders


def clear_all_data():
    """Clear all existing data."""
    print("Clearing existing data...")

    Payment.objects.all().delete()
    OrderItem.objects.all().delete()
    Order.objects.all().delete()
    Coupon.objects.all().delete()
    CartItem.objects.all().delete()
    Cart.objects.all().delete()
    Product.objects.all().delete()
    Category.objects.all().delete()
    User.objects.all().delete()

    print("All data cleared")


def main():
    """Main function to generate all data."""
    print("\n" + "="*60)
    print("Commerce Synthetic Data Generator")
    print("="*60 + "\n")

    # Clear existing data
    clear_all_data()

    # Generate data in order of dependencies
    users = generate_users(50)
    categories = generate_categories()
    products = generate_products(categories, 100)
    orders = generate_orders(users, products, 200)

    print("\n" + "="*60)
    print("Data Generation Complete!")
    print("="*60)
    print(f"\nSummary:")
    print(f"  - Users: {len(users)}")
    print(f"  - Categories: {len(categories)}")
    print(f"  - Products: {len(products)}")
    print(f"  - Orders: {len(orders)}")
    print(f"  - Coupons: {Coupon.objects.count()}")
    print(f"  - Payments: {Payment.objects.count()}")
    print()


if __name__ == '__main__':
    main()
