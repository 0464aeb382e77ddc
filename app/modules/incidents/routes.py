from fastapi import APIRouter, Depends, Query, status
from app.database.supabase_client import get_supabase
from app.modules.incidents.schemas import (
    IncidentCreate, IncidentUpdate, IncidentStatusChange, IncidentMetrics
)
from app.modules.incidents.service import IncidentService
from app.modules.auth.schemas import Principal
from app.core.dependencies import get_current_principal, get_dispatcher
from app.core.pagination import Page
from app.core.policy import PermissionView
from app.core.responses import CreatedResponse, MutationResponse, StatusResponse, OkResponse
from app.core.side_effects import SideEffectDispatcher
from supabase import Client
from typing import Any, Dict, List, Optional

router = APIRouter(prefix="/incidents", tags=["incidents"])


def get_incident_service(
    supabase: Client = Depends(get_supabase),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> IncidentService:
    return IncidentService(supabase, dispatcher)


@router.get("", response_model=Page)
async def list_incidents(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    type: Optional[str] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    created_by: Optional[str] = Query(None, alias="createdBy"),
    department: Optional[str] = None,
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    search: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    """Filtered, paginated incidents, newest first. Out-of-range pages clamp to the last page."""
    filters = service.list_query(
        status=status_filter,
        priority=priority,
        type=type,
        assigned_to=assigned_to,
        created_by=created_by,
        department=department,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    return service.list(filters, page, limit)


@router.get("/metrics/summary", response_model=IncidentMetrics)
async def incident_metrics(
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    return service.summary()


@router.get("/permissions", response_model=PermissionView)
async def create_permissions(
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    """What the caller may fill in when creating an incident"""
    return service.permissions(principal)


@router.get("/{incident_id}/permissions", response_model=PermissionView)
async def incident_permissions(
    incident_id: str,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    """What the caller may change on this incident in its current state"""
    return service.permissions(principal, incident_id)


@router.get("/{incident_id}")
async def get_incident(
    incident_id: str,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
) -> Dict[str, Any]:
    return service.get(incident_id)


@router.get("/{incident_id}/activities")
async def incident_activities(
    incident_id: str,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
) -> List[Dict[str, Any]]:
    return service.activities(incident_id)


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_incident(
    payload: IncidentCreate,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    row = service.create(principal, payload.to_values())
    return CreatedResponse(id=row.get("id"), status=row.get("status"), created_at=row.get("created_at"))


@router.patch("/{incident_id}", response_model=MutationResponse)
async def update_incident(
    incident_id: str,
    payload: IncidentUpdate,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    """Partial update; only fields present in the body are changed."""
    row = service.update(principal, incident_id, payload.changes(), payload.expected_last_modified_at)
    return MutationResponse(id=row.get("id", incident_id))


@router.post("/{incident_id}/status", response_model=StatusResponse)
async def change_incident_status(
    incident_id: str,
    payload: IncidentStatusChange,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    resolved_at = payload.resolved_at.isoformat() if payload.resolved_at else None
    row = service.change_status(
        principal, incident_id, payload.status, resolved_at, payload.expected_last_modified_at
    )
    return StatusResponse(id=row.get("id", incident_id), status=row.get("status", payload.status))


@router.delete("/{incident_id}", response_model=OkResponse)
async def delete_incident(
    incident_id: str,
    principal: Principal = Depends(get_current_principal),
    service: IncidentService = Depends(get_incident_service),
):
    service.delete(principal, incident_id)
    return OkResponse()
