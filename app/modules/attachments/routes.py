from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from app.database.supabase_client import get_supabase
from app.modules.attachments.schemas import Attachment
from app.modules.attachments.service import AttachmentService
from app.modules.auth.schemas import Principal
from app.core.dependencies import get_current_principal
from app.core.responses import Envelope, success
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/attachments", tags=["attachments"])


def get_attachment_service(supabase: Client = Depends(get_supabase)) -> AttachmentService:
    return AttachmentService(supabase)


@router.post("", response_model=Envelope, response_model_exclude_none=True,
             status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    file: UploadFile = File(...),
    incident_id: Optional[str] = Form(None),
    requirement_id: Optional[str] = Form(None),
    principal: Principal = Depends(get_current_principal),
    service: AttachmentService = Depends(get_attachment_service),
):
    """Multipart upload; attach to an incident or a requirement"""
    content = await file.read()
    attachment = service.upload(
        principal,
        filename=file.filename or "",
        content=content,
        content_type=file.content_type,
        incident_id=incident_id,
        requirement_id=requirement_id,
    )
    return success(data=Attachment(**attachment).model_dump())
