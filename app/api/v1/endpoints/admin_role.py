import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import ListParams, get_list_params, get_role_service, get_user_service, require_admin
from app.database import get_db
from app.core.constants import AccessFor, PermissionCode, StatusCodeError
from app.core.exceptions import BadRequestException, NotFoundException
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.core.pagination import Paging, build_list_response, parse_sort, search_filter, skip
from app.models.role import Role
from app.models.user import User
from app.schemas.pagination import ListResponse
from app.schemas.role import (
    RoleCreateRequest,
    RoleResponse,
    RoleUpdatePermissionRequest,
    RoleUpdateRequest,
)
from app.services.role_service import RoleService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABLE_SORT = ["name", "access_for", "created_at"]
AVAILABLE_SEARCH = ["name"]


async def get_role_or_404(role_id: str, role_service: RoleService) -> Role:
    role = await role_service.find_one_by_id(role_id)
    if role is None:
        raise NotFoundException(detail="Role not found", code=StatusCodeError.ROLE_NOT_FOUND_ERROR)
    return role


@router.get("/list", response_model=ListResponse[RoleResponse])
async def list_roles(
    params: ListParams = Depends(get_list_params),
    access_for: Optional[AccessFor] = Query(None),
    is_active: Optional[bool] = Query(None),
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ)),
    role_service: RoleService = Depends(get_role_service)
):
    """List roles with their permissions."""
    sort = parse_sort(params.sort, AVAILABLE_SORT)
    find = [search_filter(Role, params.search, AVAILABLE_SEARCH)]
    if access_for is not None:
        find.append({"access_for": access_for})
    if is_active is not None:
        find.append({"is_active": is_active})

    roles = await role_service.find_all(
        find,
        paging=Paging(limit=params.per_page, skip=skip(params.page, params.per_page)),
        sort=sort
    )
    total = await role_service.get_total(find)

    return build_list_response(
        page=params.page,
        per_page=params.per_page,
        total_data=total,
        data=[RoleResponse.model_validate(role) for role in roles],
        available_sort=AVAILABLE_SORT,
        available_search=AVAILABLE_SEARCH
    )


@router.get("/get/{role}", response_model=RoleResponse)
async def get_role(
    role: str,
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ)),
    role_service: RoleService = Depends(get_role_service)
):
    """Get a role with its permissions."""
    return await get_role_or_404(role, role_service)


@router.post("/create", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    body: RoleCreateRequest,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ, PermissionCode.ROLE_CREATE)),
    role_service: RoleService = Depends(get_role_service)
):
    """Create a role. Unknown or deleted permission ids are ignored."""
    if await role_service.exist_by_name(body.name):
        raise BadRequestException(detail="Role name already used", code=StatusCodeError.ROLE_EXIST_ERROR)

    created = await role_service.create(
        name=body.name,
        description=body.description,
        access_for=body.access_for,
        permission_ids=body.permissions
    )

    logger.info(
        sanitize_log_message(
            "Role created by admin",
            RoleID=created.id,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return await get_role_or_404(created.id, role_service)


@router.put("/update/{role}", response_model=RoleResponse)
async def update_role(
    role: str,
    body: RoleUpdateRequest,
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ, PermissionCode.ROLE_UPDATE)),
    role_service: RoleService = Depends(get_role_service)
):
    """Update name, description and access level of a role."""
    record = await get_role_or_404(role, role_service)
    if await role_service.exist_by_name(body.name, exclude_id=[record.id]):
        raise BadRequestException(detail="Role name already used", code=StatusCodeError.ROLE_EXIST_ERROR)

    updated = await role_service.update(record.id, body.name, body.access_for, body.description)
    if updated is None:
        raise NotFoundException(detail="Role not found", code=StatusCodeError.ROLE_NOT_FOUND_ERROR)
    return updated


@router.put("/update/{role}/permission", response_model=RoleResponse)
async def update_role_permission(
    role: str,
    body: RoleUpdatePermissionRequest,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ, PermissionCode.ROLE_UPDATE)),
    role_service: RoleService = Depends(get_role_service)
):
    """Replace the permission set of a role."""
    record = await get_role_or_404(role, role_service)
    updated = await role_service.update_permissions(record.id, body.permissions)
    if updated is None:
        raise NotFoundException(detail="Role not found", code=StatusCodeError.ROLE_NOT_FOUND_ERROR)

    logger.info(
        sanitize_log_message(
            "Role permissions replaced",
            RoleID=updated.id,
            Permissions=[permission.code for permission in updated.permissions],
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return updated


@router.delete("/delete/{role}", response_model=RoleResponse)
async def delete_role(
    role: str,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ, PermissionCode.ROLE_DELETE)),
    role_service: RoleService = Depends(get_role_service),
    user_service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db)
):
    """Delete a role. Refused while any user still holds it."""
    record = await get_role_or_404(role, role_service)

    # usage check and delete share one transaction
    if await user_service.exist_by_role(record.id, session=db):
        raise BadRequestException(detail="Role is used by users", code=StatusCodeError.ROLE_USED_ERROR)

    deleted = await role_service.delete_one_by_id(record.id, session=db)
    if deleted is None:
        raise NotFoundException(detail="Role not found", code=StatusCodeError.ROLE_NOT_FOUND_ERROR)

    logger.info(
        sanitize_log_message(
            "Role deleted by admin",
            RoleID=deleted.id,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return deleted


@router.patch("/update/{role}/inactive", response_model=RoleResponse)
async def inactive_role(
    role: str,
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ, PermissionCode.ROLE_UPDATE)),
    role_service: RoleService = Depends(get_role_service)
):
    """Deactivate a role; its users are refused until it is active again."""
    record = await get_role_or_404(role, role_service)
    if not record.is_active:
        raise BadRequestException(detail="Role is already inactive", code=StatusCodeError.ROLE_IS_INACTIVE_ERROR)
    return await role_service.inactive(record.id)


@router.patch("/update/{role}/active", response_model=RoleResponse)
async def active_role(
    role: str,
    admin: User = Depends(require_admin(PermissionCode.ROLE_READ, PermissionCode.ROLE_UPDATE)),
    role_service: RoleService = Depends(get_role_service)
):
    """Reactivate a role."""
    record = await get_role_or_404(role, role_service)
    if record.is_active:
        raise BadRequestException(detail="Role is already active", code=StatusCodeError.ROLE_IS_ACTIVE_ERROR)
    return await role_service.active(record.id)
