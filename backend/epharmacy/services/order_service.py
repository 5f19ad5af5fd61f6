"""Order placement, cancellation and status changes.

Creation and cancellation each run as one database transaction: stock
adjustments, the order row and its items are committed together or not at
all. Product rows are read with ``SELECT ... FOR UPDATE`` so that concurrent
checkouts on databases that support row locks serialize on the same product.
"""

import logging
import secrets
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from epharmacy import models, schemas
from epharmacy.utils.pagination import PageParams, paginate

_logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Statuses whose reserved stock goes back to inventory on cancellation.
_RESTOCKABLE = {models.OrderStatus.PENDING, models.OrderStatus.APPROVED}


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(value: Decimal) -> float:
    return float(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def _new_tracking_number() -> str:
    return f"TRK{secrets.token_hex(6).upper()}"


def _lock_product(db: Session, product_id: int) -> models.Product | None:
    return (
        db.query(models.Product)
        .filter(models.Product.id == product_id)
        .with_for_update()
        .first()
    )


def _check_prescription(
    db: Session,
    user: models.User,
    prescription_id: int | None,
    *,
    requires_approval: bool,
) -> None:
    """Any attached prescription must be the caller's; gated carts also need it approved."""
    if not prescription_id:
        if requires_approval:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Prescription is required for this order",
            )
        return

    prescription = (
        db.query(models.Prescription)
        .filter(models.Prescription.id == prescription_id, models.Prescription.user_id == user.id)
        .first()
    )
    if not prescription:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid prescription")
    if requires_approval and prescription.status != models.PrescriptionStatus.APPROVED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Valid approved prescription is required",
        )


def create_order(db: Session, user: models.User, payload: schemas.OrderCreate) -> models.Order:
    if not payload.items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order items are required")

    shipping_address = (payload.shipping_address or "").strip()
    if not shipping_address:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Shipping address is required")

    try:
        total = Decimal("0")
        requires_prescription = False
        pharmacy_ids: set[int] = set()
        items: list[models.OrderItem] = []

        for line in payload.items:
            product = _lock_product(db, line.product_id)
            if not product:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Product not found: {line.product_id}",
                )
            if product.status != models.ProductStatus.ACTIVE:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Product is not available: {product.name}",
                )
            # A product listed twice in one cart sees the stock left by its earlier line.
            if product.stock_quantity < line.quantity:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Insufficient stock for product: {product.name}",
                )

            if product.requires_prescription:
                requires_prescription = True
            pharmacy_ids.add(product.pharmacy_id)

            unit_price = _to_decimal(product.price)
            line_total = unit_price * line.quantity
            total += line_total

            items.append(
                models.OrderItem(
                    product_id=product.id,
                    quantity=line.quantity,
                    unit_price=_money(unit_price),
                    total_price=_money(line_total),
                )
            )
            product.stock_quantity -= line.quantity

        _check_prescription(db, user, payload.prescription_id, requires_approval=requires_prescription)

        order = models.Order(
            user_id=user.id,
            total_amount=_money(total),
            status=models.OrderStatus.PENDING,
            shipping_address=shipping_address,
            tracking_number=_new_tracking_number(),
            prescription_id=payload.prescription_id,
            assigned_pharmacy_id=pharmacy_ids.pop() if len(pharmacy_ids) == 1 else None,
            notes=(payload.notes or "").strip() or None,
            order_items=items,
        )
        db.add(order)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        _logger.exception("order creation failed user=%s", user.email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error while placing order",
        ) from exc

    db.refresh(order)
    _logger.info(
        "order created id=%s user=%s total=%s items=%s",
        order.id,
        user.email,
        order.total_amount,
        len(items),
    )
    return order


def _order_query(db: Session):
    return db.query(models.Order).options(
        selectinload(models.Order.order_items).joinedload(models.OrderItem.product)
    )


def list_user_orders(
    db: Session,
    user: models.User,
    params: PageParams,
    *,
    order_status: str | None = None,
) -> schemas.OrderPage:
    query = _order_query(db).filter(models.Order.user_id == user.id)
    if order_status:
        query = query.filter(models.Order.status == order_status)
    query = query.order_by(models.Order.created_at.desc(), models.Order.id.desc())
    orders, pagination = paginate(query, params)
    return schemas.OrderPage(orders=orders, pagination=pagination)


def get_user_order(db: Session, user: models.User, order_id: int) -> models.Order:
    order = _order_query(db).filter(models.Order.id == order_id, models.Order.user_id == user.id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def restore_stock(db: Session, items: Iterable[models.OrderItem]) -> None:
    for item in items:
        product = _lock_product(db, item.product_id)
        if product:
            product.stock_quantity += item.quantity


def cancel_order(db: Session, user: models.User, order_id: int) -> models.Order:
    try:
        order = (
            db.query(models.Order)
            .filter(models.Order.id == order_id, models.Order.user_id == user.id)
            .with_for_update()
            .first()
        )
        if not order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
        if order.status != models.OrderStatus.PENDING:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only pending orders can be cancelled")

        restore_stock(db, order.order_items)
        order.status = models.OrderStatus.CANCELLED
        db.commit()
    except HTTPException:
        db.rollback()
        raise

    db.refresh(order)
    _logger.info("order cancelled id=%s user=%s", order.id, user.email)
    return order


def list_all_orders(
    db: Session,
    params: PageParams,
    *,
    order_status: str | None = None,
) -> schemas.OrderAdminPage:
    query = _order_query(db).options(joinedload(models.Order.user))
    if order_status:
        query = query.filter(models.Order.status == order_status)
    query = query.order_by(models.Order.created_at.desc(), models.Order.id.desc())
    orders, pagination = paginate(query, params)
    return schemas.OrderAdminPage(orders=orders, pagination=pagination)


def update_order_status(db: Session, order_id: int, update: schemas.OrderStatusUpdate) -> models.Order:
    try:
        order = db.query(models.Order).filter(models.Order.id == order_id).with_for_update().first()
        if not order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
        if order.status == models.OrderStatus.CANCELLED:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cancelled orders cannot be updated")

        if update.status == models.OrderStatus.CANCELLED:
            if order.status not in _RESTOCKABLE:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Shipped or delivered orders must be refunded instead",
                )
            restore_stock(db, order.order_items)

        previous = order.status
        order.status = update.status
        if update.estimated_delivery_date is not None:
            order.estimated_delivery_date = update.estimated_delivery_date
        db.commit()
    except HTTPException:
        db.rollback()
        raise

    db.refresh(order)
    _logger.info("order status updated id=%s %s -> %s", order.id, previous, order.status)
    return order
