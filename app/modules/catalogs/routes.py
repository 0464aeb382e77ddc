from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.catalogs.schemas import DepartmentsResponse, RolesResponse, Catalogs
from app.modules.catalogs.service import CatalogService
from app.core.responses import Envelope, success
from supabase import Client

# Public: the registration form loads these before the user has a session
router = APIRouter(prefix="/catalogs", tags=["catalogs"])


def get_catalog_service(supabase: Client = Depends(get_supabase)) -> CatalogService:
    return CatalogService(supabase)


@router.get("/departments", response_model=DepartmentsResponse)
async def list_departments(service: CatalogService = Depends(get_catalog_service)):
    return DepartmentsResponse(departments=service.departments())


@router.get("/roles", response_model=RolesResponse)
async def list_roles(service: CatalogService = Depends(get_catalog_service)):
    return RolesResponse(roles=service.roles())


@router.post("", response_model=Envelope, response_model_exclude_none=True)
async def all_catalogs(service: CatalogService = Depends(get_catalog_service)):
    """Both catalogs in one call, for older clients"""
    catalogs = Catalogs(departments=service.departments(), roles=service.roles())
    return success(data=catalogs.model_dump())
