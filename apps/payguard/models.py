"""
PayGuard Models - payments against orders
Dependency: Links to Orders via order_id (1:1)
"""
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel
from apps.orders.models import Order
from apps.shopcore.models import User


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    COMPLETED = 'COMPLETED', 'Completed'
    FAILED = 'FAILED', 'Failed'
    CANCELLED = 'CANCELLED', 'Cancelled'
    PARTIAL_REFUNDED = 'PARTIAL_REFUNDED', 'Partially refunded'
    REFUNDED = 'REFUNDED', 'Refunded'


class Payment(BaseModel):
    """
    The single payment record of an order. Re-preparing a payment that has
    not completed re-arms this record with a new key.
    """
    METHOD_CHOICES = [
        ('CARD', 'Card'),
        ('BANK_TRANSFER', 'Bank Transfer'),
        ('VIRTUAL_ACCOUNT', 'Virtual Account'),
        ('MOBILE', 'Mobile'),
        ('WALLET', 'Digital Wallet'),
    ]

    payment_key = models.CharField(max_length=100, unique=True)
    order = models.OneToOneField(Order, on_delete=models.PROTECT, related_name='payment')
    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name='payments')
    amount = models.PositiveIntegerField()
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    pg_transaction_id = models.CharField(max_length=100, blank=True, null=True)
    card_info = models.CharField(max_length=100, blank=True, null=True, help_text="Masked card info")
    approved_at = models.DateTimeField(blank=True, null=True)
    failure_reason = models.CharField(max_length=1000, blank=True, null=True)

    class Meta:
        db_table = 'payguard_payments'
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'
        ordering = ['-created_at']

    def __str__(self):
        return f"Payment {self.payment_key} - {self.amount} ({self.status})"

    def complete(self, pg_transaction_id: str, card_info: str):
        self.status = PaymentStatus.COMPLETED
        self.pg_transaction_id = pg_transaction_id
        self.card_info = card_info
        self.approved_at = timezone.now()
        self.failure_reason = None

    def cancel(self):
        self.status = PaymentStatus.CANCELLED
