import logging
from fastapi import APIRouter, Depends, Request
from app.api.deps import get_setting_service, require_admin
from app.api.v1.endpoints.setting import get_setting_or_404, serialize_setting
from app.core.constants import PermissionCode, StatusCodeError
from app.core.exceptions import BadRequestException, NotFoundException
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.models.user import User
from app.schemas.setting import SettingResponse, SettingUpdateRequest
from app.services.setting_service import SettingService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put("/update/{setting}", response_model=SettingResponse)
async def update_setting(
    setting: str,
    body: SettingUpdateRequest,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.SETTING_READ, PermissionCode.SETTING_UPDATE)),
    setting_service: SettingService = Depends(get_setting_service)
):
    """
    Update a setting value.

    The value must match the declared type: BOOLEAN takes true/false, NUMBER a
    number, STRING a string and ARRAY_OF_STRING a list of strings.
    """
    record = await get_setting_or_404(setting, setting_service)

    if not setting_service.check_value(record.type, body.value):
        raise BadRequestException(
            detail=f"Value is not allowed for a {record.type.value} setting",
            code=StatusCodeError.SETTING_VALUE_NOT_ALLOWED_ERROR
        )

    updated = await setting_service.update_one_by_id(record.id, record.type, body.value, body.description)
    if updated is None:
        raise NotFoundException(detail="Setting not found", code=StatusCodeError.SETTING_NOT_FOUND_ERROR)

    logger.info(
        sanitize_log_message(
            "Setting changed",
            Setting=updated.name,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return serialize_setting(updated)
