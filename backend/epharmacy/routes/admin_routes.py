from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.auth.deps import require_admin
from epharmacy.db import get_db
from epharmacy.services import admin_service, order_service, prescription_service, product_service
from epharmacy.utils.pagination import PageParams

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/dashboard", response_model=schemas.Dashboard)
def get_dashboard(
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin_service.get_dashboard(db)


@router.get("/users", response_model=schemas.UserAdminPage)
def list_users(
    params: PageParams = Depends(),
    search: Optional[str] = None,
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin_service.list_users(db, params, search=search)


@router.post("/users/{user_id}/toggle-status", response_model=schemas.ToggleStatusOut)
def toggle_user_status(
    user_id: int,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin_service.toggle_user_status(db, user_id, acting_admin=admin)


@router.get("/pharmacies", response_model=schemas.PharmacyPage)
def list_pharmacies(
    params: PageParams = Depends(),
    search: Optional[str] = None,
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin_service.list_pharmacies(db, params, search=search)


@router.post("/pharmacies/{pharmacy_id}/verify", response_model=schemas.Pharmacy)
def verify_pharmacy(
    pharmacy_id: int,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin_service.verify_pharmacy(db, pharmacy_id, acting_admin=admin)


@router.get("/prescriptions", response_model=schemas.PrescriptionAdminPage)
def list_prescriptions(
    params: PageParams = Depends(),
    prescription_status: Optional[schemas.PrescriptionStatusValue] = Query(None, alias="status"),
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return prescription_service.list_all_prescriptions(db, params, prescription_status=prescription_status)


@router.post("/prescriptions/{prescription_id}/review", response_model=schemas.PrescriptionAdmin)
def review_prescription(
    prescription_id: int,
    payload: schemas.PrescriptionReviewIn,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return prescription_service.review_prescription(db, prescription_id, payload, reviewer=admin)


@router.get("/products", response_model=schemas.ProductPage)
def list_products(
    params: PageParams = Depends(),
    product_status: Optional[schemas.ProductStatusValue] = Query(None, alias="status"),
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin_service.list_all_products(db, params, product_status=product_status)


@router.post("/products/{product_id}/approve", response_model=schemas.Product)
def approve_product(
    product_id: int,
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return product_service.set_product_status(
        db,
        product_id,
        models.ProductStatus.ACTIVE,
        expected=models.ProductStatus.PENDING_APPROVAL,
    )


@router.post("/products/{product_id}/reject", response_model=schemas.Product)
def reject_product(
    product_id: int,
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return product_service.set_product_status(
        db,
        product_id,
        models.ProductStatus.INACTIVE,
        expected=models.ProductStatus.PENDING_APPROVAL,
    )


@router.get("/orders", response_model=schemas.OrderAdminPage)
def list_orders(
    params: PageParams = Depends(),
    order_status: Optional[schemas.OrderStatusValue] = Query(None, alias="status"),
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return order_service.list_all_orders(db, params, order_status=order_status)


@router.put("/orders/{order_id}/status", response_model=schemas.Order)
def update_order_status(
    order_id: int,
    payload: schemas.OrderStatusUpdate,
    _: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return order_service.update_order_status(db, order_id, payload)
