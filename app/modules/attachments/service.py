import logging
import os
import time
from supabase import Client
from typing import Any, Dict, Optional
from app.config.settings import settings
from app.core.errors import InsertFailed, ValidationError
from app.core.repository import EntityRepository, ensure_reference_exists
from app.modules.auth.schemas import Principal

logger = logging.getLogger(__name__)


def storage_path(user_id: str, filename: str, now_millis: Optional[int] = None) -> str:
    """<userId>/<timestampMillis>-<filename>"""
    millis = now_millis if now_millis is not None else int(time.time() * 1000)
    return f"{user_id}/{millis}-{os.path.basename(filename)}"


class AttachmentService:
    def __init__(self, supabase: Client, bucket: Optional[str] = None):
        self.supabase = supabase
        self.bucket = bucket or settings.attachments_bucket
        self.repository = EntityRepository(supabase, "attachments", label="Attachment")

    def upload(
        self,
        principal: Principal,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        incident_id: Optional[str] = None,
        requirement_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store the file and record it against exactly one incident or requirement"""
        if bool(incident_id) == bool(requirement_id):
            raise ValidationError("Provide exactly one of incident_id or requirement_id")
        if not filename:
            raise ValidationError("File name is required")
        if incident_id:
            ensure_reference_exists(self.supabase, "incidents", incident_id, "Incident does not exist")
        else:
            ensure_reference_exists(self.supabase, "requirements", requirement_id, "Requirement does not exist")

        path = storage_path(principal.id, filename)
        content_type = content_type or "application/octet-stream"
        bucket = self.supabase.storage.from_(self.bucket)
        try:
            bucket.upload(path, content, file_options={"content-type": content_type, "upsert": "false"})
        except Exception as e:
            raise InsertFailed(f"Upload failed: {e}")
        url = bucket.get_public_url(path)

        try:
            attachment = self.repository.insert({
                "name": os.path.basename(filename),
                "url": url,
                "size": len(content),
                "type": content_type,
                "uploaded_by": principal.id,
                "incident_id": incident_id,
                "requirement_id": requirement_id,
            })
        except Exception:
            try:
                bucket.remove([path])
            except Exception as cleanup_error:
                logger.warning(f"Could not remove orphaned upload {path}: {cleanup_error}")
            raise
        logger.info(f"Attachment {attachment.get('id')} uploaded by {principal.id} to {path}")
        return attachment
