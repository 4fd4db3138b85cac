import uuid

import pytest

from apps.core.exceptions import ConflictException, NotFoundException, ValidationException
from apps.shopcore.models import Category, Product, ProductStatus
from apps.shopcore.services import (
    CatalogService,
    CategoryService,
    ProductAdminService,
    category_to_dict,
    product_to_detail,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def catalog():
    return CatalogService()


@pytest.fixture
def books(db):
    return Category.objects.create(name="Books", display_order=2)


def ids(result):
    return [p["id"] for p in result["products"]]


class TestSearch:

    def test_filters_by_category_and_keyword(self, catalog, product, cheap_product):
        assert ids(catalog.list_products(category_id=product.category_id)) == [str(product.id)]
        assert ids(catalog.list_products(keyword="stick")) == [str(cheap_product.id)]

    def test_keyword_matches_tags(self, catalog, product, cheap_product):
        Product.objects.filter(pk=product.pk).update(tags="gadget,desk")
        assert ids(catalog.list_products(keyword="DESK")) == [str(product.id)]

    def test_price_range(self, catalog, product, cheap_product):
        assert ids(catalog.list_products(min_price=2000)) == [str(product.id)]
        assert ids(catalog.list_products(max_price=1000)) == [str(cheap_product.id)]
        assert ids(catalog.list_products(min_price=1000, max_price=25000, sort_by="price", sort_direction="asc")) == [
            str(cheap_product.id),
            str(product.id),
        ]

    def test_featured_only(self, catalog, product, cheap_product):
        Product.objects.filter(pk=cheap_product.pk).update(is_featured=True)
        assert ids(catalog.list_products(featured_only=True)) == [str(cheap_product.id)]

    def test_public_listing_hides_unavailable_products(self, catalog, product, cheap_product):
        Product.objects.filter(pk=cheap_product.pk).update(status=ProductStatus.DISCONTINUED)
        assert ids(catalog.list_products()) == [str(product.id)]

    def test_admin_listing_sees_every_status(self, catalog, product, cheap_product):
        Product.objects.filter(pk=cheap_product.pk).update(status=ProductStatus.DISCONTINUED)

        everything = catalog.list_products_for_admin(sort_by="price", sort_direction="desc")
        discontinued = catalog.list_products_for_admin(status=ProductStatus.DISCONTINUED)

        assert ids(everything) == [str(product.id), str(cheap_product.id)]
        assert ids(discontinued) == [str(cheap_product.id)]

    def test_pagination_metadata(self, catalog, product, cheap_product):
        result = catalog.list_products(page=0, size=1)
        assert result["total_elements"] == 2
        assert result["total_pages"] == 2
        assert result["is_first"] is True
        assert result["is_last"] is False


class TestProductDetail:

    def test_get_product_counts_view(self, catalog, product):
        assert catalog.get_product(product.id).view_count == 1
        assert catalog.get_product(product.id).view_count == 2

    def test_get_unknown_product(self, catalog):
        with pytest.raises(NotFoundException):
            catalog.get_product(uuid.uuid4())

    def test_related_products_share_the_category(self, catalog, product, electronics, cheap_product):
        slow = Product.objects.create(name="Cable", category=electronics, price=500, stock=5, sales_count=1)
        fast = Product.objects.create(name="Charger", category=electronics, price=900, stock=5, sales_count=9)
        Product.objects.create(
            name="Old Dock", category=electronics, price=900, stock=5, status=ProductStatus.DISCONTINUED
        )

        related = catalog.related_products(product)

        assert related == [fast, slow]
        assert catalog.related_products(cheap_product) == []

    def test_detail_shape(self, catalog, product):
        Product.objects.filter(pk=product.pk).update(tags="gadget, desk")
        product = catalog.get_product(product.id, count_view=False)

        detail = product_to_detail(product)

        assert detail["category"] == {"id": str(product.category_id), "name": "Electronics"}
        assert detail["tags"] == ["gadget", "desk"]
        assert detail["related_products"] == []


class TestHighlights:

    def test_featured(self, catalog, product, cheap_product):
        Product.objects.filter(pk__in=[product.pk, cheap_product.pk]).update(is_featured=True)
        Product.objects.filter(pk=cheap_product.pk).update(sales_count=5)

        assert [p["id"] for p in catalog.featured_products()] == [str(cheap_product.id), str(product.id)]

    def test_popular_is_capped_at_ten_best_sellers(self, catalog):
        for n in range(12):
            Product.objects.create(name=f"Item {n}", price=100, stock=1, sales_count=n)

        popular = catalog.popular_products()

        assert len(popular) == 10
        assert [p["sales_count"] for p in popular] == list(range(11, 1, -1))

    def test_latest_skips_unavailable(self, catalog, product, cheap_product):
        Product.objects.filter(pk=product.pk).update(status=ProductStatus.TEMPORARILY_UNAVAILABLE)
        assert [p["id"] for p in catalog.latest_products()] == [str(cheap_product.id)]

    def test_low_stock(self, catalog, product, cheap_product):
        Product.objects.create(name="Gone", price=100, stock=0, status=ProductStatus.OUT_OF_STOCK)

        assert [p["id"] for p in catalog.low_stock_products(threshold=5)] == [str(cheap_product.id)]
        assert [p["id"] for p in catalog.low_stock_products(threshold=10)] == [
            str(cheap_product.id),
            str(product.id),
        ]


class TestCategories:

    def test_active_listing_counts_active_products(self, product, cheap_product, electronics, books):
        Product.objects.create(name="Retired", category=electronics, price=100, stock=1, status=ProductStatus.DISCONTINUED)

        listing = CategoryService().list_active_categories()

        assert [(c["name"], c["product_count"]) for c in listing] == [("Electronics", 1), ("Books", 0)]

    def test_create(self):
        category = CategoryService().create_category("Garden", "Outdoor things", display_order=3)

        assert category_to_dict(category)["product_count"] == 0
        assert category.is_active

    def test_duplicate_name_is_a_conflict(self, electronics):
        with pytest.raises(ConflictException):
            CategoryService().create_category("Electronics")

    def test_rename_onto_existing_name_is_a_conflict(self, electronics, books):
        with pytest.raises(ConflictException):
            CategoryService().update_category(books.id, "Electronics")

    def test_update(self, books):
        updated = CategoryService().update_category(books.id, "Novels", "Fiction", display_order=0)

        books.refresh_from_db()
        assert updated.name == "Novels"
        assert books.description == "Fiction"
        assert books.display_order == 0

    def test_deactivate_hides_category_but_keeps_products(self, product, electronics):
        CategoryService().deactivate_category(electronics.id)

        product.refresh_from_db()
        assert CategoryService().list_active_categories() == []
        assert product.category_id == electronics.id

    def test_missing_category(self):
        with pytest.raises(NotFoundException):
            CategoryService().get_category(uuid.uuid4())


class TestProductAdmin:

    @pytest.fixture
    def service(self):
        return ProductAdminService()

    def test_create(self, service, books):
        product = service.create_product({"name": "Atlas", "price": 30000, "stock": 4, "category_id": books.id})

        assert product.status == ProductStatus.ACTIVE
        assert product.category == books
        assert product.sales_count == 0

    def test_create_duplicate_name(self, service, product):
        with pytest.raises(ConflictException):
            service.create_product({"name": "Widget", "price": 1})

    def test_create_with_unknown_category(self, service):
        with pytest.raises(NotFoundException):
            service.create_product({"name": "Atlas", "price": 1, "category_id": uuid.uuid4()})
        assert not Product.objects.exists()

    def test_partial_update(self, service, product, books):
        updated = service.update_product(product.id, {"price": 27000, "category_id": books.id, "is_featured": True})

        product.refresh_from_db()
        assert updated.price == 27000
        assert product.category == books
        assert product.is_featured
        assert product.name == "Widget"
        assert product.stock == 10

    def test_rename_onto_existing_name(self, service, product, cheap_product):
        with pytest.raises(ConflictException):
            service.update_product(cheap_product.id, {"name": "Widget"})

    def test_delete_discontinues(self, service, product):
        service.delete_product(product.id)

        product.refresh_from_db()
        assert product.status == ProductStatus.DISCONTINUED
        assert CatalogService().list_products()["products"] == []

    @pytest.mark.parametrize("start, stock, expected", [
        (ProductStatus.ACTIVE, 0, ProductStatus.OUT_OF_STOCK),
        (ProductStatus.OUT_OF_STOCK, 5, ProductStatus.ACTIVE),
        (ProductStatus.DISCONTINUED, 5, ProductStatus.DISCONTINUED),
        (ProductStatus.ACTIVE, 3, ProductStatus.ACTIVE),
    ])
    def test_stock_update_follows_availability(self, service, product, start, stock, expected):
        Product.objects.filter(pk=product.pk).update(status=start)

        updated = service.update_stock(product.id, stock)

        assert updated.stock == stock
        assert updated.status == expected

    def test_negative_stock(self, service, product):
        with pytest.raises(ValidationException):
            service.update_stock(product.id, -1)

    def test_status(self, service, product):
        assert service.update_status(product.id, ProductStatus.TEMPORARILY_UNAVAILABLE).status == (
            ProductStatus.TEMPORARILY_UNAVAILABLE
        )
        with pytest.raises(ValidationException):
            service.update_status(product.id, "LOST")

    def test_unknown_product(self, service):
        with pytest.raises(NotFoundException):
            service.update_stock(uuid.uuid4(), 1)
