"""Simulated payment processing.

No gateway is contacted: each method has a stand-in processor that approves
or declines according to the configured success rates. Payment state is kept
on the order itself (status, method, transaction id).
"""

import logging
import random
import secrets
import string
import time

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.config.settings import get_settings
from epharmacy.services.order_service import restore_stock

_logger = logging.getLogger(__name__)

_REFUNDABLE = {
    models.OrderStatus.APPROVED,
    models.OrderStatus.SHIPPED,
    models.OrderStatus.DELIVERED,
}

_PAYMENT_STATUS_BY_ORDER_STATUS = {
    models.OrderStatus.PENDING: "not_paid",
    models.OrderStatus.APPROVED: "completed",
    models.OrderStatus.SHIPPED: "completed",
    models.OrderStatus.DELIVERED: "completed",
    models.OrderStatus.CANCELLED: "cancelled",
}

_ID_ALPHABET = string.ascii_uppercase + string.digits


class PaymentDeclined(Exception):
    pass


def _reference(prefix: str) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def generate_transaction_id() -> str:
    return _reference("TXN")


def generate_refund_id() -> str:
    return _reference("REF")


def _same_amount(a: float, b: float) -> bool:
    return round(float(a), 2) == round(float(b), 2)


def _details_match_method(method: str, details: schemas.PaymentDetails | None) -> bool:
    if details is None:
        return False
    if method == "card":
        return bool(details.card_number and details.card_expiry and details.card_cvc)
    if method == "bank_transfer":
        return bool(details.bank_account)
    if method == "mobile_money":
        return bool(details.phone_number)
    return False


def _simulate_latency() -> None:
    delay = get_settings().payment_simulated_delay_seconds
    if delay > 0:
        time.sleep(delay)


def _process_card(order: models.Order, details: schemas.PaymentDetails) -> schemas.PaymentResult:
    card_number = (details.card_number or "").replace(" ", "")
    if len(card_number) < 13 or not details.card_expiry or not details.card_cvc:
        raise PaymentDeclined("Invalid card details")

    _simulate_latency()
    if random.random() >= get_settings().payment_card_success_rate:
        raise PaymentDeclined("Card payment declined")

    return schemas.PaymentResult(
        success=True,
        transaction_id=generate_transaction_id(),
        payment_method="card",
        amount=order.total_amount,
        status="completed",
        message="Card payment processed successfully",
    )


def _process_bank_transfer(order: models.Order, details: schemas.PaymentDetails) -> schemas.PaymentResult:
    if not details.bank_account:
        raise PaymentDeclined("Bank account details required")

    _simulate_latency()
    # Transfers confirm out of band; the order stays pending.
    return schemas.PaymentResult(
        success=True,
        transaction_id=generate_transaction_id(),
        payment_method="bank_transfer",
        amount=order.total_amount,
        status="pending",
        message="Bank transfer initiated successfully",
    )


def _process_mobile_money(order: models.Order, details: schemas.PaymentDetails) -> schemas.PaymentResult:
    if not details.phone_number:
        raise PaymentDeclined("Phone number required for mobile money payment")

    _simulate_latency()
    if random.random() >= get_settings().payment_mobile_money_success_rate:
        raise PaymentDeclined("Mobile money payment failed")

    return schemas.PaymentResult(
        success=True,
        transaction_id=generate_transaction_id(),
        payment_method="mobile_money",
        amount=order.total_amount,
        status="completed",
        message="Mobile money payment processed successfully",
    )


_PROCESSORS = {
    "card": _process_card,
    "bank_transfer": _process_bank_transfer,
    "mobile_money": _process_mobile_money,
}


def _get_user_order(db: Session, user: models.User, order_id: int) -> models.Order:
    order = (
        db.query(models.Order)
        .filter(models.Order.id == order_id, models.Order.user_id == user.id)
        .first()
    )
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def process_payment(db: Session, user: models.User, payload: schemas.PaymentIn) -> schemas.PaymentResult:
    order = _get_user_order(db, user, payload.order_id)
    if order.status != models.OrderStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order is not in a payable state")
    if not _same_amount(payload.amount, order.total_amount):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment amount does not match order total")
    if not _details_match_method(payload.payment_method, payload.payment_details):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payment method or missing payment details",
        )

    processor = _PROCESSORS[payload.payment_method]
    try:
        result = processor(order, payload.payment_details)
    except PaymentDeclined as exc:
        _logger.warning("payment failed order_id=%s method=%s reason=%s", order.id, payload.payment_method, exc)
        return schemas.PaymentResult(
            success=False,
            transaction_id="",
            payment_method=payload.payment_method,
            amount=payload.amount,
            currency=payload.currency,
            status="failed",
            message=str(exc),
        )

    result.currency = payload.currency
    order.payment_method = result.payment_method
    order.transaction_id = result.transaction_id
    if result.status == "completed":
        order.status = models.OrderStatus.APPROVED
    db.commit()

    _logger.info(
        "payment %s order_id=%s method=%s txn=%s",
        result.status,
        order.id,
        result.payment_method,
        result.transaction_id,
    )
    return result


def get_payment_status(db: Session, user: models.User, order_id: int) -> schemas.PaymentStatusOut:
    order = _get_user_order(db, user, order_id)
    return schemas.PaymentStatusOut(
        order_id=order.id,
        payment_status=_PAYMENT_STATUS_BY_ORDER_STATUS.get(order.status, "unknown"),
        transaction_id=order.transaction_id,
        amount=order.total_amount,
        order_status=order.status,
    )


def process_refund(db: Session, user: models.User, payload: schemas.RefundIn) -> schemas.RefundResult:
    order = _get_user_order(db, user, payload.order_id)
    if order.status not in _REFUNDABLE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order is not eligible for refund")

    refund_amount = payload.amount if payload.amount is not None else order.total_amount
    if round(refund_amount, 2) > round(order.total_amount, 2):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Refund amount cannot exceed order total")

    refund_id = generate_refund_id()
    try:
        # Approved orders have not left the pharmacy yet.
        if order.status == models.OrderStatus.APPROVED:
            restore_stock(db, order.order_items)
        order.status = models.OrderStatus.CANCELLED
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    _logger.info(
        "refund processed order_id=%s refund=%s amount=%s reason=%s",
        order.id,
        refund_id,
        refund_amount,
        payload.reason,
    )
    return schemas.RefundResult(
        success=True,
        refund_id=refund_id,
        amount=refund_amount,
        message="Refund processed successfully",
    )
