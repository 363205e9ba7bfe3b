from fastapi import APIRouter, Depends
from app.api.deps import check_maintenance, validate_api_key
from app.api.v1.endpoints import (
    admin_api_key,
    admin_permission,
    admin_role,
    admin_setting,
    admin_user,
    setting,
    user,
)

# Every /api/v1 route needs a valid X-API-KEY and is closed during maintenance
api_router = APIRouter(dependencies=[Depends(validate_api_key), Depends(check_maintenance)])

api_router.include_router(user.router, prefix="/user", tags=["user"])
api_router.include_router(setting.router, prefix="/setting", tags=["setting"])

api_router.include_router(admin_user.router, prefix="/admin/user", tags=["admin.user"])
api_router.include_router(admin_role.router, prefix="/admin/role", tags=["admin.role"])
api_router.include_router(admin_permission.router, prefix="/admin/permission", tags=["admin.permission"])
api_router.include_router(admin_setting.router, prefix="/admin/setting", tags=["admin.setting"])
api_router.include_router(admin_api_key.router, prefix="/admin/api-key", tags=["admin.api-key"])
