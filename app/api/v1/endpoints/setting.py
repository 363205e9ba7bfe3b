from fastapi import APIRouter, Depends
from app.api.deps import ListParams, get_list_params, get_setting_service
from app.core.constants import StatusCodeError
from app.core.exceptions import NotFoundException
from app.core.pagination import Paging, SortType, build_list_response, parse_sort, search_filter, skip
from app.models.setting import Setting
from app.schemas.pagination import ListResponse
from app.schemas.setting import SettingResponse
from app.services.setting_service import SettingService

router = APIRouter()

AVAILABLE_SORT = ["name", "created_at"]
AVAILABLE_SEARCH = ["name"]


def serialize_setting(setting: Setting) -> SettingResponse:
    return SettingResponse(
        id=setting.id,
        name=setting.name,
        description=setting.description,
        type=setting.type,
        value=SettingService.get_value(setting),
        created_at=setting.created_at,
        updated_at=setting.updated_at
    )


async def get_setting_or_404(setting_id: str, setting_service: SettingService) -> Setting:
    setting = await setting_service.find_one_by_id(setting_id)
    if setting is None:
        raise NotFoundException(detail="Setting not found", code=StatusCodeError.SETTING_NOT_FOUND_ERROR)
    return setting


@router.get("/list", response_model=ListResponse[SettingResponse])
async def list_settings(
    params: ListParams = Depends(get_list_params),
    setting_service: SettingService = Depends(get_setting_service)
):
    """List settings with their decoded values."""
    sort = parse_sort(params.sort, AVAILABLE_SORT, default=("name", SortType.ASC))
    find = search_filter(Setting, params.search, AVAILABLE_SEARCH)

    settings = await setting_service.find_all(
        find,
        paging=Paging(limit=params.per_page, skip=skip(params.page, params.per_page)),
        sort=sort
    )
    total = await setting_service.get_total(find)

    return build_list_response(
        page=params.page,
        per_page=params.per_page,
        total_data=total,
        data=[serialize_setting(setting) for setting in settings],
        available_sort=AVAILABLE_SORT,
        available_search=AVAILABLE_SEARCH
    )


@router.get("/get/{setting}", response_model=SettingResponse)
async def get_setting(
    setting: str,
    setting_service: SettingService = Depends(get_setting_service)
):
    """Get a setting by id."""
    return serialize_setting(await get_setting_or_404(setting, setting_service))
