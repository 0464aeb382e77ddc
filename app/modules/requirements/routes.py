from fastapi import APIRouter, Depends, Query, status
from app.database.supabase_client import get_supabase
from app.modules.requirements.schemas import (
    RequirementCreate, RequirementUpdate, RequirementStatusChange, RequirementMetrics
)
from app.modules.requirements.service import RequirementService
from app.modules.auth.schemas import Principal
from app.core.dependencies import get_current_principal, get_dispatcher
from app.core.pagination import Page
from app.core.policy import PermissionView
from app.core.responses import CreatedResponse, MutationResponse, StatusResponse, OkResponse
from app.core.side_effects import SideEffectDispatcher
from supabase import Client
from typing import Any, Dict, List, Optional

router = APIRouter(prefix="/requirements", tags=["requirements"])


def get_requirement_service(
    supabase: Client = Depends(get_supabase),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
) -> RequirementService:
    return RequirementService(supabase, dispatcher)


@router.get("", response_model=Page)
async def list_requirements(
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
    service: RequirementService = Depends(get_requirement_service),
):
    """Same filters and clamping as the incident list; `department` matches the requesting area name."""
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


@router.get("/metrics/summary", response_model=RequirementMetrics)
async def requirement_metrics(
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
):
    return service.summary()


@router.get("/permissions", response_model=PermissionView)
async def create_permissions(
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
):
    """What the caller may fill in when creating a requirement"""
    return service.permissions(principal)


@router.get("/{requirement_id}/permissions", response_model=PermissionView)
async def requirement_permissions(
    requirement_id: str,
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
):
    """What the caller may change on this requirement in its current state"""
    return service.permissions(principal, requirement_id)


@router.get("/{requirement_id}")
async def get_requirement(
    requirement_id: str,
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
) -> Dict[str, Any]:
    return service.get(requirement_id)


@router.get("/{requirement_id}/activities")
async def requirement_activities(
    requirement_id: str,
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
) -> List[Dict[str, Any]]:
    return service.activities(requirement_id)


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_requirement(
    payload: RequirementCreate,
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
):
    row = service.create(principal, payload.to_values())
    return CreatedResponse(id=row.get("id"), status=row.get("status"), created_at=row.get("created_at"))


@router.patch("/{requirement_id}", response_model=MutationResponse)
async def update_requirement(
    requirement_id: str,
    payload: RequirementUpdate,
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
):
    """Partial update; only fields present in the body are changed."""
    row = service.update(principal, requirement_id, payload.changes(), payload.expected_last_modified_at)
    return MutationResponse(id=row.get("id", requirement_id))


@router.post("/{requirement_id}/status", response_model=StatusResponse)
async def change_requirement_status(
    requirement_id: str,
    payload: RequirementStatusChange,
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
):
    delivered_at = payload.delivered_at.isoformat() if payload.delivered_at else None
    row = service.change_status(
        principal, requirement_id, payload.status, delivered_at, payload.expected_last_modified_at
    )
    return StatusResponse(id=row.get("id", requirement_id), status=row.get("status", payload.status))


@router.delete("/{requirement_id}", response_model=OkResponse)
async def delete_requirement(
    requirement_id: str,
    principal: Principal = Depends(get_current_principal),
    service: RequirementService = Depends(get_requirement_service),
):
    service.delete(principal, requirement_id)
    return OkResponse()
