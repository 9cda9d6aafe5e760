from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from orgchart.core.dependencies import get_current_user
from orgchart.models.auth import UserInfo
from orgchart.models.employee import Employee, EmployeeCreateRequest, Organization
from orgchart.models.hierarchy import (
    HierarchyErrorCode,
    ImportResult,
    ManagerUpdateRequest,
    ManagerUpdateResponse,
)
from orgchart.models.layout import ChartLayout, LayoutRequest
from orgchart.services.file_parser import FileParsingError
from orgchart.services.organization_service import (
    EmployeeCreationError,
    HierarchyImportError,
    HierarchyUpdateError,
    OrganizationAccessError,
    organization_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])


def _forbidden(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.post("/import", response_model=ImportResult)
async def import_organization(
    file: UploadFile,
    user: UserInfo = Depends(get_current_user),
):
    file_bytes = await file.read()
    file_name = file.filename or ""

    try:
        result = await organization_service.import_file(file_bytes, file_name, user.id)
    except FileParsingError as e:
        logger.warning("Rejected upload %s from user=%s: %s", file_name, user.id, e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except HierarchyImportError as e:
        logger.warning("Could not build hierarchy from %s: %s", file_name, e)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    except Exception as e:
        logger.exception("Import failed for %s", file_name)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process file",
        ) from e

    return result


@router.get("", response_model=list[Organization])
async def list_organizations(user: UserInfo = Depends(get_current_user)):
    return await organization_service.get_user_organizations(user.id)


@router.put("/employees/manager", response_model=ManagerUpdateResponse)
async def update_manager(
    request: ManagerUpdateRequest,
    user: UserInfo = Depends(get_current_user),
):
    try:
        return await organization_service.update_manager(request.employee_id, request.new_manager_id, user.id)
    except HierarchyUpdateError as e:
        code = (
            status.HTTP_403_FORBIDDEN
            if e.error_code == HierarchyErrorCode.UNAUTHORIZED_ACCESS
            else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(
            status_code=code,
            detail={"message": e.message, "code": e.error_code.value},
        ) from e
    except Exception as e:
        logger.exception("Failed to update manager for %s", request.employee_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update hierarchy",
        ) from e


@router.get("/{organization_id}/employees", response_model=list[Employee])
async def list_employees(
    organization_id: str,
    user: UserInfo = Depends(get_current_user),
):
    try:
        return await organization_service.get_employees(organization_id, user.id)
    except OrganizationAccessError as e:
        raise _forbidden(e) from e


@router.post(
    "/{organization_id}/employees",
    response_model=Employee,
    status_code=status.HTTP_201_CREATED,
)
async def create_employee(
    organization_id: str,
    request: EmployeeCreateRequest,
    user: UserInfo = Depends(get_current_user),
):
    try:
        return await organization_service.create_employee(organization_id, request, user.id)
    except OrganizationAccessError as e:
        raise _forbidden(e) from e
    except EmployeeCreationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.post("/{organization_id}/layout", response_model=ChartLayout)
async def chart_layout(
    organization_id: str,
    request: LayoutRequest,
    user: UserInfo = Depends(get_current_user),
):
    try:
        return await organization_service.get_layout(organization_id, request, user.id)
    except OrganizationAccessError as e:
        raise _forbidden(e) from e
