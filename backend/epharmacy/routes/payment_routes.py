from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.auth.deps import require_user
from epharmacy.db import get_db
from epharmacy.services import payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/process", response_model=schemas.PaymentResult)
def process_payment(
    payload: schemas.PaymentIn,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return payment_service.process_payment(db, current_user, payload)


@router.get("/status/{order_id}", response_model=schemas.PaymentStatusOut)
def get_payment_status(
    order_id: int,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return payment_service.get_payment_status(db, current_user, order_id)


@router.post("/refund", response_model=schemas.RefundResult)
def process_refund(
    payload: schemas.RefundIn,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return payment_service.process_refund(db, current_user, payload)
