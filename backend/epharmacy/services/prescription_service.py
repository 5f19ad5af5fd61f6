import logging
from datetime import datetime

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session, joinedload

from epharmacy import models, schemas
from epharmacy.utils.pagination import PageParams, paginate
from epharmacy.utils.uploads import remove_stored_file, store_prescription_upload

_logger = logging.getLogger(__name__)


async def upload_prescription(db: Session, user: models.User, file: UploadFile) -> models.Prescription:
    stored = await store_prescription_upload(file)

    prescription = models.Prescription(
        user_id=user.id,
        file_name=stored.file_name,
        file_path=str(stored.file_path),
        original_name=stored.original_name,
        file_size=stored.file_size,
        mime_type=stored.mime_type,
        status=models.PrescriptionStatus.PENDING,
    )
    db.add(prescription)
    try:
        db.commit()
    except Exception:
        db.rollback()
        remove_stored_file(str(stored.file_path))
        raise
    db.refresh(prescription)

    _logger.info("prescription uploaded id=%s user=%s size=%s", prescription.id, user.email, stored.file_size)
    return prescription


def list_user_prescriptions(
    db: Session,
    user: models.User,
    params: PageParams,
    *,
    prescription_status: str | None = None,
) -> schemas.PrescriptionPage:
    query = db.query(models.Prescription).filter(models.Prescription.user_id == user.id)
    if prescription_status:
        query = query.filter(models.Prescription.status == prescription_status)
    query = query.order_by(models.Prescription.created_at.desc(), models.Prescription.id.desc())
    prescriptions, pagination = paginate(query, params)
    return schemas.PrescriptionPage(prescriptions=prescriptions, pagination=pagination)


def get_user_prescription(db: Session, user: models.User, prescription_id: int) -> models.Prescription:
    prescription = (
        db.query(models.Prescription)
        .filter(models.Prescription.id == prescription_id, models.Prescription.user_id == user.id)
        .first()
    )
    if not prescription:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription not found")
    return prescription


def delete_prescription(db: Session, user: models.User, prescription_id: int) -> None:
    prescription = get_user_prescription(db, user, prescription_id)
    if prescription.status != models.PrescriptionStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only pending prescriptions can be deleted",
        )

    in_use = db.query(models.Order.id).filter(models.Order.prescription_id == prescription.id).first()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prescription is attached to an order",
        )

    file_path = prescription.file_path
    db.delete(prescription)
    db.commit()
    remove_stored_file(file_path)

    _logger.info("prescription deleted id=%s", prescription_id)


def list_all_prescriptions(
    db: Session,
    params: PageParams,
    *,
    prescription_status: str | None = None,
) -> schemas.PrescriptionAdminPage:
    query = db.query(models.Prescription).options(joinedload(models.Prescription.user))
    if prescription_status:
        query = query.filter(models.Prescription.status == prescription_status)
    query = query.order_by(models.Prescription.created_at.desc(), models.Prescription.id.desc())
    prescriptions, pagination = paginate(query, params)
    return schemas.PrescriptionAdminPage(prescriptions=prescriptions, pagination=pagination)


def review_prescription(
    db: Session,
    prescription_id: int,
    review: schemas.PrescriptionReviewIn,
    *,
    reviewer: models.User,
) -> models.Prescription:
    prescription = db.query(models.Prescription).filter(models.Prescription.id == prescription_id).first()
    if not prescription:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription not found")
    if prescription.status != models.PrescriptionStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Prescription has already been reviewed")

    prescription.status = review.status
    if review.admin_notes and review.admin_notes.strip():
        prescription.admin_notes = review.admin_notes.strip()
    prescription.approved_by = reviewer.id
    prescription.approved_at = datetime.utcnow()

    db.commit()
    db.refresh(prescription)

    _logger.info("prescription %s id=%s reviewer=%s", review.status, prescription.id, reviewer.email)
    return prescription
