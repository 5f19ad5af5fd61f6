import logging

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from epharmacy import models, schemas
from epharmacy.utils.pagination import PageParams, paginate

_logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


def _count(db: Session, column, *criteria) -> int:
    return db.query(func.count(column)).filter(*criteria).scalar() or 0


def get_dashboard(db: Session) -> schemas.Dashboard:
    User, Pharmacy, Product = models.User, models.Pharmacy, models.Product
    Prescription, Order = models.Prescription, models.Order

    revenue = (
        db.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.status == models.OrderStatus.DELIVERED)
        .scalar()
    )

    statistics = schemas.DashboardStatistics(
        users=schemas.CountTotal(
            total=_count(db, User.id, User.role == models.UserRole.USER, User.is_active.is_(True)),
        ),
        pharmacies=schemas.PharmacyCounts(
            total=_count(db, Pharmacy.id),
            verified=_count(db, Pharmacy.id, Pharmacy.is_verified.is_(True)),
            pending=_count(db, Pharmacy.id, Pharmacy.is_verified.is_(False)),
        ),
        products=schemas.ProductCounts(
            total=_count(db, Product.id),
            active=_count(db, Product.id, Product.status == models.ProductStatus.ACTIVE),
            pending=_count(db, Product.id, Product.status == models.ProductStatus.PENDING_APPROVAL),
        ),
        prescriptions=schemas.PrescriptionCounts(
            pending=_count(db, Prescription.id, Prescription.status == models.PrescriptionStatus.PENDING),
            approved=_count(db, Prescription.id, Prescription.status == models.PrescriptionStatus.APPROVED),
            rejected=_count(db, Prescription.id, Prescription.status == models.PrescriptionStatus.REJECTED),
        ),
        orders=schemas.OrderCounts(
            total=_count(db, Order.id),
            pending=_count(db, Order.id, Order.status == models.OrderStatus.PENDING),
            delivered=_count(db, Order.id, Order.status == models.OrderStatus.DELIVERED),
        ),
        revenue=schemas.Revenue(total=round(float(revenue or 0), 2)),
    )

    recent_orders = (
        db.query(Order)
        .options(joinedload(Order.user))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )
    recent_prescriptions = (
        db.query(Prescription)
        .options(joinedload(Prescription.user))
        .order_by(Prescription.created_at.desc(), Prescription.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )

    return schemas.Dashboard(
        statistics=statistics,
        recent_activities=schemas.RecentActivities(
            orders=recent_orders,
            prescriptions=recent_prescriptions,
        ),
    )


def list_users(db: Session, params: PageParams, *, search: str | None = None) -> schemas.UserAdminPage:
    query = db.query(models.User)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.User.first_name.ilike(pattern),
                models.User.last_name.ilike(pattern),
                models.User.email.ilike(pattern),
            )
        )
    query = query.order_by(models.User.created_at.desc(), models.User.id.desc())
    users, pagination = paginate(query, params)
    return schemas.UserAdminPage(users=users, pagination=pagination)


def toggle_user_status(db: Session, user_id: int, *, acting_admin: models.User) -> schemas.ToggleStatusOut:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.id == acting_admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")

    user.is_active = not user.is_active
    db.commit()

    _logger.info("user status toggled id=%s active=%s by=%s", user.id, user.is_active, acting_admin.email)
    return schemas.ToggleStatusOut(is_active=user.is_active)


def list_pharmacies(db: Session, params: PageParams, *, search: str | None = None) -> schemas.PharmacyPage:
    query = db.query(models.Pharmacy)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(models.Pharmacy.name.ilike(pattern), models.Pharmacy.email.ilike(pattern)))
    query = query.order_by(models.Pharmacy.created_at.desc(), models.Pharmacy.id.desc())
    pharmacies, pagination = paginate(query, params)
    return schemas.PharmacyPage(pharmacies=pharmacies, pagination=pagination)


def verify_pharmacy(db: Session, pharmacy_id: int, *, acting_admin: models.User) -> models.Pharmacy:
    pharmacy = db.query(models.Pharmacy).filter(models.Pharmacy.id == pharmacy_id).first()
    if not pharmacy:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pharmacy not found")

    pharmacy.is_verified = True
    db.commit()
    db.refresh(pharmacy)

    _logger.info("pharmacy verified id=%s by=%s", pharmacy.id, acting_admin.email)
    return pharmacy


def list_all_products(
    db: Session,
    params: PageParams,
    *,
    product_status: str | None = None,
) -> schemas.ProductPage:
    query = db.query(models.Product).options(joinedload(models.Product.pharmacy))
    if product_status:
        query = query.filter(models.Product.status == product_status)
    query = query.order_by(models.Product.created_at.desc(), models.Product.id.desc())
    products, pagination = paginate(query, params)
    return schemas.ProductPage(products=products, pagination=pagination)
