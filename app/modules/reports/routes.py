from fastapi import APIRouter, Depends, status
from app.database.supabase_client import get_supabase
from app.modules.reports.schemas import ReportRequest, ReportResult
from app.modules.reports.service import ReportService
from app.modules.auth.schemas import Principal
from app.core.dependencies import get_dispatcher, require_privileged
from app.core.responses import Envelope, success
from app.core.side_effects import SideEffectDispatcher
from supabase import Client

router = APIRouter(prefix="/reports", tags=["reports"])


def get_report_service(
    supabase: Client = Depends(get_supabase),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> ReportService:
    return ReportService(supabase, dispatcher)


@router.post("", response_model=Envelope, response_model_exclude_none=True,
             status_code=status.HTTP_201_CREATED)
async def generate_report(
    payload: ReportRequest,
    principal: Principal = Depends(require_privileged),
    service: ReportService = Depends(get_report_service),
):
    """Generate a report for a date range and export it to the reports bucket"""
    result = service.generate(principal, payload)
    return success(data=ReportResult(**result).model_dump(by_alias=True))


@router.get("/{report_id}", response_model=Envelope, response_model_exclude_none=True)
async def get_report(
    report_id: str,
    principal: Principal = Depends(require_privileged),
    service: ReportService = Depends(get_report_service),
):
    return success(data=service.get(report_id))
