"""
PayGuard services - payment preparation and gateway callbacks

The gateway itself is simulated: completion fabricates a PG transaction id
and masked card info instead of calling out.
"""
import logging
import secrets
import time
from typing import Any, Dict, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import (
    AmountMismatchException,
    ForbiddenException,
    InvalidOrderStateException,
    NotFoundException,
)
from apps.core.utils import generate_unique_code, mask_card_number
from apps.orders.models import Order, OrderStatus
from apps.orders.services import OrderService
from apps.shopcore.models import User
from .models import Payment, PaymentStatus

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Drives Payment and, through it, the Order state machine.
    """

    def __init__(self, order_service: OrderService = None):
        self.order_service = order_service or OrderService()

    @transaction.atomic
    def prepare_payment(self, user: User, order_id, amount: int, payment_method: str) -> Payment:
        order = self.order_service.owned_order(user, order_id, lock=True)

        if order.status != OrderStatus.PENDING:
            raise InvalidOrderStateException(order.status, "prepare payment")

        payment = Payment.objects.select_for_update().filter(order=order).first()
        if payment is not None and payment.status == PaymentStatus.COMPLETED:
            logger.warning(f"Payment already completed: order={order.order_number}")
            raise InvalidOrderStateException(payment.status, "prepare payment")

        if amount != order.final_amount:
            logger.warning(f"Payment amount mismatch: order={order.order_number}, expected={order.final_amount}, got={amount}")
            raise AmountMismatchException(order.final_amount, amount)

        if payment is None:
            payment = Payment(order=order, user=user)

        payment.payment_key = self.generate_payment_key(payment, order)
        payment.amount = amount
        payment.payment_method = payment_method
        payment.status = PaymentStatus.PENDING
        payment.pg_transaction_id = None
        payment.card_info = None
        payment.approved_at = None
        payment.failure_reason = None
        payment.save()

        logger.info(f"Payment prepared: key={payment.payment_key}, order={order.order_number}, amount={amount}")
        return payment

    @transaction.atomic
    def complete_payment(self, user: User, payment_key: str, amount: int) -> Payment:
        """Gateway confirmation hook: payment COMPLETED, order PENDING -> PAID."""
        order, payment = self._lock_order_and_payment(user, payment_key=payment_key)

        if payment.status != PaymentStatus.PENDING:
            raise InvalidOrderStateException(payment.status, "complete payment")
        if payment.amount != amount:
            raise AmountMismatchException(payment.amount, amount)

        gateway = settings.PAYMENT_GATEWAY
        payment.complete(
            pg_transaction_id=f"PG{int(time.time() * 1000)}",
            card_info=mask_card_number(gateway['card_number'], gateway['card_issuer']),
        )
        payment.save()
        self.order_service.mark_paid(order)

        logger.info(f"Payment completed: key={payment.payment_key}, order={order.order_number}")
        return payment

    @transaction.atomic
    def cancel_payment(self, user: User, payment_id) -> Payment:
        """
        Gateway cancellation hook. The order is cancelled with the same
        compensating actions as a direct cancellation, which also moves the
        payment to CANCELLED.
        """
        order, payment = self._lock_order_and_payment(user, pk=payment_id)

        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidOrderStateException(payment.status, "cancel payment")

        self.order_service.cancel_with_compensation(order, action="cancel payment")
        payment.refresh_from_db()

        logger.info(f"Payment cancelled: key={payment.payment_key}, order={order.order_number}")
        return payment

    def get_payment_detail(self, user: User, payment_id) -> Payment:
        payment = Payment.objects.select_related('order').filter(pk=payment_id).first()
        if payment is None:
            raise NotFoundException("Payment", payment_id)
        if payment.user_id != user.id:
            raise ForbiddenException("Payment belongs to another user")
        return payment

    def generate_payment_key(self, payment: Payment, order: Order) -> str:
        base = f"tgen_{timezone.now():%Y%m%d%H%M%S}_{order.id.hex[:12]}"
        return generate_unique_code(
            candidate=lambda attempt: base if attempt == 0 else f"{base}_{secrets.token_hex(3)}",
            exists=lambda key: Payment.objects.filter(payment_key=key).exists(),
            fallback=lambda: f"tgen_{payment.id.hex}",
            max_attempts=settings.PAYMENT_KEY_MAX_ATTEMPTS,
        )

    def gateway_urls(self, payment: Payment) -> Dict[str, Any]:
        gateway = settings.PAYMENT_GATEWAY
        return {
            "payment_url": f"{gateway['payment_url'].rstrip('/')}/{payment.payment_key}",
            "success_url": gateway['success_url'],
            "fail_url": gateway['fail_url'],
        }

    def _lock_order_and_payment(self, user: User, **lookup) -> Tuple[Order, Payment]:
        """
        Lock the order first, then its payment: the same order every payment
        and cancellation path uses.
        """
        payment = Payment.objects.filter(**lookup).first()
        if payment is None:
            raise NotFoundException("Payment", next(iter(lookup.values())))
        if payment.user_id != user.id:
            logger.warning(f"Payment access denied: payment={payment.id}, requester={user.id}")
            raise ForbiddenException("Payment belongs to another user")

        order = Order.objects.select_for_update().get(pk=payment.order_id)
        payment = Payment.objects.select_for_update().get(pk=payment.pk)
        return order, payment


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "payment_id": str(payment.id),
        "payment_key": payment.payment_key,
        "order_id": str(payment.order_id),
        "order_number": payment.order.order_number,
        "amount": payment.amount,
        "payment_method": payment.payment_method,
        "status": payment.status,
        "approved_at": payment.approved_at.isoformat() if payment.approved_at else None,
        "pg_transaction_id": payment.pg_transaction_id,
        "card_info": payment.card_info,
        "created_at": payment.created_at.isoformat(),
    }
