import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from app.api.deps import ListParams, get_api_key_service, get_list_params, require_admin
from app.core.constants import PermissionCode, StatusCodeError
from app.core.exceptions import BadRequestException, NotFoundException
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.core.pagination import Paging, build_list_response, parse_sort, search_filter, skip
from app.models.api_key import ApiKey
from app.models.user import User
from app.schemas.api_key import (
    ApiKeyCreateRequest,
    ApiKeyCreateResponse,
    ApiKeyResponse,
    ApiKeyUpdateRequest,
)
from app.schemas.pagination import ListResponse
from app.services.api_key_service import ApiKeyService

logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABLE_SORT = ["name", "key", "created_at"]
AVAILABLE_SEARCH = ["name", "key"]


async def get_api_key_or_404(api_key_id: str, api_key_service: ApiKeyService) -> ApiKey:
    api_key = await api_key_service.find_one_by_id(api_key_id)
    if api_key is None:
        raise NotFoundException(detail="API key not found", code=StatusCodeError.API_KEY_NOT_FOUND_ERROR)
    return api_key


def require_active(api_key: ApiKey) -> ApiKey:
    if not api_key.is_active:
        raise BadRequestException(detail="API key is inactive", code=StatusCodeError.API_KEY_INACTIVE_ERROR)
    return api_key


def serialize_credentials(api_key: ApiKey, secret: str) -> ApiKeyCreateResponse:
    return ApiKeyCreateResponse(
        id=api_key.id,
        key=api_key.key,
        secret=secret,
        encryption_key=api_key.encryption_key,
        passphrase=api_key.passphrase
    )


@router.get("/list", response_model=ListResponse[ApiKeyResponse])
async def list_api_keys(
    params: ListParams = Depends(get_list_params),
    is_active: Optional[bool] = Query(None),
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """List API keys. Secrets and encryption material are never listed."""
    sort = parse_sort(params.sort, AVAILABLE_SORT)
    find = [search_filter(ApiKey, params.search, AVAILABLE_SEARCH)]
    if is_active is not None:
        find.append({"is_active": is_active})

    api_keys = await api_key_service.find_all(
        find,
        paging=Paging(limit=params.per_page, skip=skip(params.page, params.per_page)),
        sort=sort
    )
    total = await api_key_service.get_total(find)

    return build_list_response(
        page=params.page,
        per_page=params.per_page,
        total_data=total,
        data=[ApiKeyResponse.model_validate(api_key) for api_key in api_keys],
        available_sort=AVAILABLE_SORT,
        available_search=AVAILABLE_SEARCH
    )


@router.get("/get/{api_key}", response_model=ApiKeyResponse)
async def get_api_key(
    api_key: str,
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """Get an API key by id."""
    return await get_api_key_or_404(api_key, api_key_service)


@router.post("/create", response_model=ApiKeyCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    body: ApiKeyCreateRequest,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ, PermissionCode.API_KEY_CREATE)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """
    Create an API key.

    The secret is returned only in this response.
    """
    api_key, secret = await api_key_service.create(name=body.name, description=body.description)

    logger.info(
        sanitize_log_message(
            "API key created by admin",
            ID=api_key.id,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return serialize_credentials(api_key, secret)


@router.patch("/update/{api_key}/reset", response_model=ApiKeyCreateResponse)
async def reset_api_key(
    api_key: str,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ, PermissionCode.API_KEY_UPDATE)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """Issue a new secret for an active API key. The previous secret stops working."""
    record = require_active(await get_api_key_or_404(api_key, api_key_service))
    updated, secret = await api_key_service.update_hash_by_id(record)
    if updated is None:
        raise NotFoundException(detail="API key not found", code=StatusCodeError.API_KEY_NOT_FOUND_ERROR)

    logger.info(
        sanitize_log_message(
            "API key secret reset by admin",
            ID=updated.id,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return serialize_credentials(updated, secret)


@router.put("/update/{api_key}", response_model=ApiKeyResponse)
async def update_api_key(
    api_key: str,
    body: ApiKeyUpdateRequest,
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ, PermissionCode.API_KEY_UPDATE)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """Rename an active API key."""
    record = require_active(await get_api_key_or_404(api_key, api_key_service))
    updated = await api_key_service.update_one_by_id(record.id, body.name, body.description)
    if updated is None:
        raise NotFoundException(detail="API key not found", code=StatusCodeError.API_KEY_NOT_FOUND_ERROR)
    return updated


@router.patch("/update/{api_key}/inactive", response_model=ApiKeyResponse)
async def inactive_api_key(
    api_key: str,
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ, PermissionCode.API_KEY_UPDATE)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """Deactivate an API key; requests signed with it get 401."""
    record = require_active(await get_api_key_or_404(api_key, api_key_service))
    return await api_key_service.inactive(record.id)


@router.patch("/update/{api_key}/active", response_model=ApiKeyResponse)
async def active_api_key(
    api_key: str,
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ, PermissionCode.API_KEY_UPDATE)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """Reactivate an API key."""
    record = await get_api_key_or_404(api_key, api_key_service)
    if record.is_active:
        raise BadRequestException(detail="API key is already active", code=StatusCodeError.API_KEY_IS_ACTIVE_ERROR)
    return await api_key_service.active(record.id)


@router.delete("/delete/{api_key}", response_model=ApiKeyResponse)
async def delete_api_key(
    api_key: str,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.API_KEY_READ, PermissionCode.API_KEY_DELETE)),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
):
    """Delete an API key permanently."""
    record = await get_api_key_or_404(api_key, api_key_service)
    deleted = await api_key_service.delete_one_by_id(record.id)
    if deleted is None:
        raise NotFoundException(detail="API key not found", code=StatusCodeError.API_KEY_NOT_FOUND_ERROR)

    logger.info(
        sanitize_log_message(
            "API key deleted by admin",
            ID=deleted.id,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return deleted
