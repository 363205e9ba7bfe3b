from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from app.api.deps import ListParams, get_list_params, get_permission_service, require_admin
from app.core.constants import PermissionCode, PermissionGroup, StatusCodeError
from app.core.exceptions import BadRequestException, NotFoundException
from app.core.pagination import Paging, SortType, build_list_response, parse_sort, search_filter, skip
from app.models.permission import Permission
from app.models.user import User
from app.schemas.pagination import ListResponse
from app.schemas.permission import PermissionGroupResponse, PermissionResponse, PermissionUpdateRequest
from app.services.permission_service import PermissionService

router = APIRouter()

AVAILABLE_SORT = ["code", "name", "group", "created_at"]
AVAILABLE_SEARCH = ["code", "name"]


async def get_permission_or_404(permission_id: str, permission_service: PermissionService) -> Permission:
    permission = await permission_service.find_one_by_id(permission_id)
    if permission is None:
        raise NotFoundException(detail="Permission not found", code=StatusCodeError.PERMISSION_NOT_FOUND_ERROR)
    return permission


@router.get("/list", response_model=ListResponse[PermissionResponse])
async def list_permissions(
    params: ListParams = Depends(get_list_params),
    group: Optional[List[PermissionGroup]] = Query(None),
    is_active: Optional[bool] = Query(None),
    admin: User = Depends(require_admin(PermissionCode.PERMISSION_READ)),
    permission_service: PermissionService = Depends(get_permission_service)
):
    """List permissions, optionally restricted to some groups."""
    sort = parse_sort(params.sort, AVAILABLE_SORT, default=("code", SortType.ASC))
    find = [search_filter(Permission, params.search, AVAILABLE_SEARCH)]
    if group:
        find.append({"group": group})
    if is_active is not None:
        find.append({"is_active": is_active})

    permissions = await permission_service.find_all(
        find,
        paging=Paging(limit=params.per_page, skip=skip(params.page, params.per_page)),
        sort=sort
    )
    total = await permission_service.get_total(find)

    return build_list_response(
        page=params.page,
        per_page=params.per_page,
        total_data=total,
        data=[PermissionResponse.model_validate(permission) for permission in permissions],
        available_sort=AVAILABLE_SORT,
        available_search=AVAILABLE_SEARCH
    )


@router.get("/group", response_model=List[PermissionGroupResponse])
async def list_permission_groups(
    group: Optional[List[PermissionGroup]] = Query(None),
    admin: User = Depends(require_admin(PermissionCode.PERMISSION_READ)),
    permission_service: PermissionService = Depends(get_permission_service)
):
    """Permissions bucketed by group."""
    groups = await permission_service.group_by_groups(group)
    return [
        PermissionGroupResponse(
            group=item["group"],
            permissions=[PermissionResponse.model_validate(permission) for permission in item["permissions"]]
        )
        for item in groups
    ]


@router.get("/get/{permission}", response_model=PermissionResponse)
async def get_permission(
    permission: str,
    admin: User = Depends(require_admin(PermissionCode.PERMISSION_READ)),
    permission_service: PermissionService = Depends(get_permission_service)
):
    """Get a permission by id."""
    return await get_permission_or_404(permission, permission_service)


@router.put("/update/{permission}", response_model=PermissionResponse)
async def update_permission(
    permission: str,
    body: PermissionUpdateRequest,
    admin: User = Depends(require_admin(PermissionCode.PERMISSION_READ, PermissionCode.PERMISSION_UPDATE)),
    permission_service: PermissionService = Depends(get_permission_service)
):
    """Update name, description and group. The code is fixed."""
    record = await get_permission_or_404(permission, permission_service)
    updated = await permission_service.update(record.id, body.name, body.group, body.description)
    if updated is None:
        raise NotFoundException(detail="Permission not found", code=StatusCodeError.PERMISSION_NOT_FOUND_ERROR)
    return updated


@router.patch("/update/{permission}/inactive", response_model=PermissionResponse)
async def inactive_permission(
    permission: str,
    admin: User = Depends(require_admin(PermissionCode.PERMISSION_READ, PermissionCode.PERMISSION_UPDATE)),
    permission_service: PermissionService = Depends(get_permission_service)
):
    """Deactivate a permission; roles holding it stop granting it."""
    record = await get_permission_or_404(permission, permission_service)
    if not record.is_active:
        raise BadRequestException(
            detail="Permission is already inactive",
            code=StatusCodeError.PERMISSION_IS_ACTIVE_ERROR
        )
    return await permission_service.inactive(record.id)


@router.patch("/update/{permission}/active", response_model=PermissionResponse)
async def active_permission(
    permission: str,
    admin: User = Depends(require_admin(PermissionCode.PERMISSION_READ, PermissionCode.PERMISSION_UPDATE)),
    permission_service: PermissionService = Depends(get_permission_service)
):
    """Reactivate a permission."""
    record = await get_permission_or_404(permission, permission_service)
    if record.is_active:
        raise BadRequestException(
            detail="Permission is already active",
            code=StatusCodeError.PERMISSION_IS_ACTIVE_ERROR
        )
    return await permission_service.active(record.id)
