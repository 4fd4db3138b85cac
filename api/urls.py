"""
API URL Configuration
"""
from django.urls import path
from . import views

app_name = 'api'

urlpatterns = [
    # Accounts
    path('users/signup', views.SignupView.as_view(), name='signup'),
    path('users/login', views.LoginView.as_view(), name='login'),
    path('users/me', views.MeView.as_view(), name='me'),

    # Catalog
    path('categories/', views.CategoryListView.as_view(), name='category-list'),
    path('categories/<uuid:category_id>/', views.CategoryDetailView.as_view(), name='category-detail'),
    path('products/', views.ProductListView.as_view(), name='product-list'),
    path('products/featured/', views.FeaturedProductListView.as_view(), name='product-featured'),
    path('products/popular/', views.PopularProductListView.as_view(), name='product-popular'),
    path('products/latest/', views.LatestProductListView.as_view(), name='product-latest'),
    path('products/<uuid:product_id>/', views.ProductDetailView.as_view(), name='product-detail'),

    # Cart
    path('cart/', views.CartView.as_view(), name='cart'),
    path('cart/items/', views.CartItemListView.as_view(), name='cart-items'),
    path('cart/items/<uuid:item_id>/', views.CartItemDetailView.as_view(), name='cart-item-detail'),
    path('cart/insufficient-stock/', views.CartInsufficientStockView.as_view(), name='cart-insufficient-stock'),

    # Coupons
    path('coupons/', views.CouponListView.as_view(), name='coupon-list'),
    path('coupons/available/', views.AvailableCouponListView.as_view(), name='coupon-available'),

    # Orders
    path('orders/', views.OrderListView.as_view(), name='order-list'),
    path('orders/<uuid:order_id>/', views.OrderDetailView.as_view(), name='order-detail'),
    path('orders/<uuid:order_id>/cancel/', views.OrderCancelView.as_view(), name='order-cancel'),

    # Payments
    path('payments/prepare/', views.PaymentPrepareView.as_view(), name='payment-prepare'),
    path('payments/complete/', views.PaymentCompleteView.as_view(), name='payment-complete'),
    path('payments/<uuid:payment_id>/', views.PaymentDetailView.as_view(), name='payment-detail'),
    path('payments/<uuid:payment_id>/cancel/', views.PaymentCancelView.as_view(), name='payment-cancel'),

    # VIP
    path('vip/eligibility/', views.VipEligibilityView.as_view(), name='vip-eligibility'),
    path('vip/promotion/', views.VipPromotionView.as_view(), name='vip-promotion'),
    path('vip/benefits/', views.VipBenefitsView.as_view(), name='vip-benefits'),
    path('vip/discount/', views.VipDiscountView.as_view(), name='vip-discount'),
    path('vip/birthday-coupon/', views.VipBirthdayCouponView.as_view(), name='vip-birthday-coupon'),

    # Admin
    path('admin/orders/', views.AdminOrderListView.as_view(), name='admin-order-list'),
    path('admin/orders/<uuid:order_id>/', views.AdminOrderDetailView.as_view(), name='admin-order-detail'),
    path('admin/orders/<uuid:order_id>/status/', views.AdminOrderStatusView.as_view(), name='admin-order-status'),
    path('admin/products/', views.AdminProductListView.as_view(), name='admin-product-list'),
    path('admin/products/low-stock/', views.AdminLowStockView.as_view(), name='admin-product-low-stock'),
    path('admin/products/<uuid:product_id>/', views.AdminProductDetailView.as_view(), name='admin-product-detail'),
    path('admin/products/<uuid:product_id>/stock/', views.AdminProductStockView.as_view(), name='admin-product-stock'),
    path('admin/products/<uuid:product_id>/status/', views.AdminProductStatusView.as_view(), name='admin-product-status'),

    # Health check
    path('health/', views.HealthCheckView.as_view(), name='health'),
]
