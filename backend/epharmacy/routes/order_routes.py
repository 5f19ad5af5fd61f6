from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.auth.deps import require_user
from epharmacy.db import get_db
from epharmacy.services import order_service
from epharmacy.utils.pagination import PageParams

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: schemas.OrderCreate,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return order_service.create_order(db, current_user, payload)


@router.get("", response_model=schemas.OrderPage)
def list_orders(
    params: PageParams = Depends(),
    order_status: Optional[schemas.OrderStatusValue] = Query(None, alias="status"),
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return order_service.list_user_orders(db, current_user, params, order_status=order_status)


@router.get("/{order_id}", response_model=schemas.Order)
def get_order(
    order_id: int,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return order_service.get_user_order(db, current_user, order_id)


@router.post("/{order_id}/cancel", response_model=schemas.Order)
def cancel_order(
    order_id: int,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return order_service.cancel_order(db, current_user, order_id)


@router.get("/{order_id}/track", response_model=schemas.OrderTracking)
def track_order(
    order_id: int,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return order_service.get_user_order(db, current_user, order_id)
