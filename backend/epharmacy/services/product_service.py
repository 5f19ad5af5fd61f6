import logging

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from epharmacy import models, schemas
from epharmacy.utils.pagination import PageParams, paginate

_logger = logging.getLogger(__name__)

# Edits to these fields send a product back through admin approval.
_REVIEWED_FIELDS = ("name", "description", "requires_prescription")


def _norm_text(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed if trimmed else None


def list_products(
    db: Session,
    params: PageParams,
    *,
    category: str | None = None,
    requires_prescription: bool | None = None,
    pharmacy_id: int | None = None,
    search: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
) -> schemas.ProductPage:
    query = (
        db.query(models.Product)
        .options(joinedload(models.Product.pharmacy))
        .filter(models.Product.status == models.ProductStatus.ACTIVE)
    )
    if category:
        query = query.filter(models.Product.category == category)
    if requires_prescription is not None:
        query = query.filter(models.Product.requires_prescription.is_(requires_prescription))
    if pharmacy_id is not None:
        query = query.filter(models.Product.pharmacy_id == pharmacy_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(models.Product.name.ilike(pattern), models.Product.description.ilike(pattern))
        )
    if min_price is not None:
        query = query.filter(models.Product.price >= min_price)
    if max_price is not None:
        query = query.filter(models.Product.price <= max_price)

    query = query.order_by(models.Product.created_at.desc(), models.Product.id.desc())
    products, pagination = paginate(query, params)
    return schemas.ProductPage(products=products, pagination=pagination)


def get_product(db: Session, product_id: int) -> models.Product:
    product = (
        db.query(models.Product)
        .options(joinedload(models.Product.pharmacy))
        .filter(models.Product.id == product_id)
        .first()
    )
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def list_pharmacy_products(
    db: Session,
    pharmacy_id: int,
    params: PageParams,
    *,
    product_status: str | None = None,
) -> schemas.ProductPage:
    query = (
        db.query(models.Product)
        .options(joinedload(models.Product.pharmacy))
        .filter(models.Product.pharmacy_id == pharmacy_id)
    )
    if product_status:
        query = query.filter(models.Product.status == product_status)
    query = query.order_by(models.Product.created_at.desc(), models.Product.id.desc())
    products, pagination = paginate(query, params)
    return schemas.ProductPage(products=products, pagination=pagination)


def list_categories(db: Session) -> list[str]:
    rows = (
        db.query(models.Product.category)
        .filter(models.Product.status == models.ProductStatus.ACTIVE)
        .distinct()
        .all()
    )
    return sorted(row[0] for row in rows if row[0])


def list_verified_pharmacies(db: Session) -> list[models.Pharmacy]:
    return (
        db.query(models.Pharmacy)
        .filter(models.Pharmacy.is_verified.is_(True), models.Pharmacy.is_active.is_(True))
        .order_by(models.Pharmacy.name.asc())
        .all()
    )


def create_product(db: Session, pharmacy: models.Pharmacy, payload: schemas.ProductCreate) -> models.Product:
    if not pharmacy.is_verified or not pharmacy.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Verified pharmacy not found")

    data = payload.model_dump()
    for key in ("name", "description", "category", "image_url"):
        data[key] = _norm_text(data.get(key))
    if not data["name"] or not data["description"] or not data["category"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All required fields must be provided",
        )

    product = models.Product(
        **data,
        pharmacy_id=pharmacy.id,
        status=models.ProductStatus.PENDING_APPROVAL,
    )
    db.add(product)
    db.commit()
    db.refresh(product)

    _logger.info("product created id=%s pharmacy_id=%s name=%s", product.id, pharmacy.id, product.name)
    return product


def _get_owned_product(db: Session, pharmacy_id: int, product_id: int) -> models.Product:
    product = (
        db.query(models.Product)
        .filter(models.Product.id == product_id, models.Product.pharmacy_id == pharmacy_id)
        .first()
    )
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def update_product(
    db: Session,
    pharmacy: models.Pharmacy,
    product_id: int,
    updates: schemas.ProductUpdate,
) -> models.Product:
    product = _get_owned_product(db, pharmacy.id, product_id)

    data = updates.model_dump(exclude_unset=True)
    for key in ("name", "description", "category", "image_url"):
        if key in data:
            data[key] = _norm_text(data[key])
            if data[key] is None:
                # Blank text never clears a field.
                data.pop(key)

    needs_review = False
    for key, value in data.items():
        if value is None:
            continue
        if key in _REVIEWED_FIELDS and getattr(product, key) != value:
            needs_review = True
        setattr(product, key, value)

    if needs_review:
        product.status = models.ProductStatus.PENDING_APPROVAL

    db.commit()
    db.refresh(product)

    _logger.info("product updated id=%s status=%s", product.id, product.status)
    return product


def delete_product(db: Session, pharmacy: models.Pharmacy, product_id: int) -> None:
    product = _get_owned_product(db, pharmacy.id, product_id)
    product.status = models.ProductStatus.INACTIVE
    db.commit()
    _logger.info("product deactivated id=%s name=%s", product.id, product.name)


def set_product_status(db: Session, product_id: int, new_status: str, *, expected: str | None = None) -> models.Product:
    product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    if expected is not None and product.status != expected:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product is not pending approval")

    product.status = new_status
    db.commit()
    db.refresh(product)

    _logger.info("product status updated id=%s status=%s", product.id, new_status)
    return product
