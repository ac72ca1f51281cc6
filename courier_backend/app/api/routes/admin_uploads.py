"""
Admin Upload Routes

POST /admin/uploads accepts either:
- JSON {file?, filename?, shipmentId?}: with `file` (base64 / data URI) the
  image is stored server-side; without it a presigned POST is returned for a
  direct browser upload
- multipart/form-data with `file` and optional `shipmentId`

An uploaded image is attached to `shipmentId` when given (max 5 per shipment,
checked before uploading).
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from app.core.database import get_db
from app.core.exceptions import StorageError, ValidationError
from app.core.rate_limit import rate_limit
from app.api.deps import get_current_admin, get_storage_service
from app.models.audit_log import AuditAction
from app.models.user import User
from app.schemas.common import envelope
from app.schemas.upload import UploadedImage, UploadRequest, UploadSignature
from app.services.audit_service import AuditService
from app.services.shipment_service import ShipmentService
from app.services.storage import UPLOAD_FAILED_MESSAGE, StorageService, UploadResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/uploads",
    tags=["admin-uploads"],
    dependencies=[Depends(rate_limit("admin")), Depends(get_current_admin)],
)


def _parse_shipment_id(value) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid shipment ID")


def _raise_for_failed_upload(result: UploadResult) -> None:
    if result.success:
        return
    if result.error == UPLOAD_FAILED_MESSAGE:
        raise StorageError(UPLOAD_FAILED_MESSAGE)
    raise ValidationError(result.error or UPLOAD_FAILED_MESSAGE)


async def _attach(
    db: AsyncSession,
    shipment_id: Optional[int],
    result: UploadResult,
) -> None:
    if shipment_id is None:
        return
    await ShipmentService(db).attach_image(shipment_id, url=result.url, public_id=result.key)
    logger.info(f"Attached {result.key} to shipment {shipment_id}")


@router.post("")
async def upload(
    request: Request,
    response: Response,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            body = UploadRequest.model_validate(await request.json())
        except PydanticValidationError as e:
            raise RequestValidationError(e.errors())
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")

        if not body.file:
            signature = UploadSignature.model_validate(storage.generate_upload_signature())
            return envelope(signature.to_wire())

        if body.shipment_id is not None:
            await ShipmentService(db).ensure_image_capacity(body.shipment_id)

        result = await storage.upload_base64_image(body.file, body.filename)
        _raise_for_failed_upload(result)
        await _attach(db, body.shipment_id, result)
        filename = body.filename

    elif "multipart/form-data" in content_type:
        form = await request.form()
        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise ValidationError("No file provided")

        shipment_id = _parse_shipment_id(form.get("shipmentId"))
        if shipment_id is not None:
            await ShipmentService(db).ensure_image_capacity(shipment_id)

        content = await file.read()
        result = await storage.upload_package_image(content, file.content_type, file.filename)
        _raise_for_failed_upload(result)
        await _attach(db, shipment_id, result)
        filename = file.filename

    else:
        raise ValidationError("Unsupported content type")

    await AuditService(db).log(
        AuditAction.FILE_UPLOADED,
        entity_type="file",
        entity_id=result.key,
        user=admin,
        request=request,
        metadata={"size_bytes": result.size_bytes, "content_type": result.content_type},
    )

    response.status_code = status.HTTP_201_CREATED
    uploaded = UploadedImage(url=result.url, public_id=result.key, filename=filename)
    return envelope(uploaded.to_wire(exclude_none=True), message="File uploaded successfully")
