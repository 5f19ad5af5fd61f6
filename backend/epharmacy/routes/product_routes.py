from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.auth.deps import require_pharmacy
from epharmacy.db import get_db
from epharmacy.services import product_service
from epharmacy.utils.pagination import PageParams

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=schemas.ProductPage)
def list_products(
    params: PageParams = Depends(),
    category: Optional[str] = None,
    requires_prescription: Optional[bool] = None,
    pharmacy_id: Optional[int] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    return product_service.list_products(
        db,
        params,
        category=category,
        requires_prescription=requires_prescription,
        pharmacy_id=pharmacy_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
    )


@router.get("/categories", response_model=list[str])
def list_categories(db: Session = Depends(get_db)):
    return product_service.list_categories(db)


@router.get("/pharmacies", response_model=list[schemas.PharmacySummary])
def list_pharmacies(db: Session = Depends(get_db)):
    return product_service.list_verified_pharmacies(db)


@router.get("/mine", response_model=schemas.ProductPage)
def list_own_products(
    params: PageParams = Depends(),
    product_status: Optional[schemas.ProductStatusValue] = Query(None, alias="status"),
    pharmacy: models.Pharmacy = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return product_service.list_pharmacy_products(db, pharmacy.id, params, product_status=product_status)


@router.get("/pharmacy/{pharmacy_id}", response_model=schemas.ProductPage)
def list_pharmacy_products(
    pharmacy_id: int,
    params: PageParams = Depends(),
    product_status: Optional[schemas.ProductStatusValue] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    return product_service.list_pharmacy_products(db, pharmacy_id, params, product_status=product_status)


@router.get("/{product_id}", response_model=schemas.ProductDetail)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return product_service.get_product(db, product_id)


@router.post("", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: schemas.ProductCreate,
    pharmacy: models.Pharmacy = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return product_service.create_product(db, pharmacy, payload)


@router.put("/{product_id}", response_model=schemas.Product)
def update_product(
    product_id: int,
    payload: schemas.ProductUpdate,
    pharmacy: models.Pharmacy = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return product_service.update_product(db, pharmacy, product_id, payload)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    pharmacy: models.Pharmacy = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    product_service.delete_product(db, pharmacy, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
