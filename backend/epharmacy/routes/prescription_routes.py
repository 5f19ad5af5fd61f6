from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from epharmacy import models, schemas
from epharmacy.auth.deps import require_user
from epharmacy.db import get_db
from epharmacy.services import prescription_service
from epharmacy.utils.pagination import PageParams
from epharmacy.utils.uploads import resolve_stored_file

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])


@router.post("/upload", response_model=schemas.Prescription, status_code=status.HTTP_201_CREATED)
async def upload_prescription(
    prescription: UploadFile = File(...),
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return await prescription_service.upload_prescription(db, current_user, prescription)


@router.get("", response_model=schemas.PrescriptionPage)
def list_prescriptions(
    params: PageParams = Depends(),
    prescription_status: Optional[schemas.PrescriptionStatusValue] = Query(None, alias="status"),
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return prescription_service.list_user_prescriptions(
        db, current_user, params, prescription_status=prescription_status
    )


@router.get("/{prescription_id}", response_model=schemas.Prescription)
def get_prescription(
    prescription_id: int,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return prescription_service.get_user_prescription(db, current_user, prescription_id)


@router.get("/{prescription_id}/download")
def download_prescription(
    prescription_id: int,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    prescription = prescription_service.get_user_prescription(db, current_user, prescription_id)
    path = resolve_stored_file(prescription.file_path)
    return FileResponse(
        path,
        media_type=prescription.mime_type,
        filename=prescription.original_name or prescription.file_name,
    )


@router.delete("/{prescription_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prescription(
    prescription_id: int,
    current_user: models.User = Depends(require_user),
    db: Session = Depends(get_db),
):
    prescription_service.delete_prescription(db, current_user, prescription_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
