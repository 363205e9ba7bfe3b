import logging
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import (
    ListParams,
    get_auth_service,
    get_list_params,
    get_role_service,
    get_user_service,
    require_admin,
)
from app.config import settings
from app.core.constants import PermissionCode, StatusCodeError
from app.core.csv_file import CSVFileError, read_csv, write_csv
from app.core.exceptions import BadRequestException, NotFoundException
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.core.pagination import Paging, SortType, build_list_response, parse_sort, search_filter, skip
from app.database import get_db
from app.models.user import User
from app.schemas.pagination import ListResponse
from app.schemas.user import UserCreateRequest, UserResponse, UserUpdateRequest
from app.services.auth_service import AuthService
from app.services.role_service import RoleService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABLE_SORT = ["username", "first_name", "last_name", "email", "created_at"]
AVAILABLE_SEARCH = ["username", "first_name", "last_name", "email"]


async def get_user_or_404(user_id: str, user_service: UserService) -> User:
    user = await user_service.find_one_by_id(user_id)
    if user is None:
        raise NotFoundException(detail="User not found", code=StatusCodeError.USER_NOT_FOUND_ERROR)
    return user


@router.get("/list", response_model=ListResponse[UserResponse])
async def list_users(
    params: ListParams = Depends(get_list_params),
    role: Optional[str] = Query(None, description="Role id"),
    is_active: Optional[bool] = Query(None),
    admin: User = Depends(require_admin(PermissionCode.USER_READ)),
    user_service: UserService = Depends(get_user_service)
):
    """List users, optionally filtered by role and status."""
    sort = parse_sort(params.sort, AVAILABLE_SORT)
    find = [search_filter(User, params.search, AVAILABLE_SEARCH)]
    if role is not None:
        find.append({"role_id": role})
    if is_active is not None:
        find.append({"is_active": is_active})

    users = await user_service.find_all(
        find,
        paging=Paging(limit=params.per_page, skip=skip(params.page, params.per_page)),
        sort=sort
    )
    total = await user_service.get_total(find)

    return build_list_response(
        page=params.page,
        per_page=params.per_page,
        total_data=total,
        data=[UserResponse.model_validate(user) for user in users],
        available_sort=AVAILABLE_SORT,
        available_search=AVAILABLE_SEARCH
    )


@router.get("/get/{user}", response_model=UserResponse)
async def get_user(
    user: str,
    admin: User = Depends(require_admin(PermissionCode.USER_READ)),
    user_service: UserService = Depends(get_user_service)
):
    """Get a user with role and permissions."""
    return await get_user_or_404(user, user_service)


@router.post("/create", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.USER_READ, PermissionCode.USER_CREATE)),
    user_service: UserService = Depends(get_user_service),
    role_service: RoleService = Depends(get_role_service),
    auth_service: AuthService = Depends(get_auth_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a user.

    The role must exist; username, email and mobile number must be unused.
    Checks and insert run in one transaction.
    """
    role = await role_service.find_one_by_id(body.role, join=False, session=db)
    if role is None:
        raise NotFoundException(detail="Role not found", code=StatusCodeError.ROLE_NOT_FOUND_ERROR)

    if await user_service.exist_by_username(body.username, session=db):
        raise BadRequestException(detail="Username already used", code=StatusCodeError.USER_USERNAME_EXISTS_ERROR)

    if await user_service.exist_by_email(body.email, session=db):
        raise BadRequestException(detail="Email already used", code=StatusCodeError.USER_EMAIL_EXIST_ERROR)

    if body.mobile_number and await user_service.exist_by_mobile_number(body.mobile_number, session=db):
        raise BadRequestException(
            detail="Mobile number already used",
            code=StatusCodeError.USER_MOBILE_NUMBER_EXIST_ERROR
        )

    password, password_expired = auth_service.create_password(body.password)
    created = await user_service.create(
        username=body.username,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        mobile_number=body.mobile_number,
        password=password,
        password_expired=password_expired,
        role_id=role.id,
        session=db
    )

    logger.info(
        sanitize_log_message(
            "User created by admin",
            UserID=created.id,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return await user_service.find_one_by_id(created.id, session=db)


@router.put("/update/{user}", response_model=UserResponse)
async def update_user(
    user: str,
    body: UserUpdateRequest,
    admin: User = Depends(require_admin(PermissionCode.USER_READ, PermissionCode.USER_UPDATE)),
    user_service: UserService = Depends(get_user_service)
):
    """Update a user's name."""
    record = await get_user_or_404(user, user_service)
    updated = await user_service.update_name(record.id, body.first_name, body.last_name)
    if updated is None:
        raise NotFoundException(detail="User not found", code=StatusCodeError.USER_NOT_FOUND_ERROR)
    return updated


@router.delete("/delete/{user}", response_model=UserResponse)
async def delete_user(
    user: str,
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.USER_READ, PermissionCode.USER_DELETE)),
    user_service: UserService = Depends(get_user_service)
):
    """
    Soft delete a user.

    The account disappears from every lookup and can no longer log in; its
    username, email and mobile number stay reserved.
    """
    record = await get_user_or_404(user, user_service)
    deleted = await user_service.soft_delete_one_by_id(record.id)
    if deleted is None:
        raise NotFoundException(detail="User not found", code=StatusCodeError.USER_NOT_FOUND_ERROR)

    logger.info(
        sanitize_log_message(
            "User deleted by admin",
            UserID=deleted.id,
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return deleted


@router.patch("/update/{user}/inactive", response_model=UserResponse)
async def inactive_user(
    user: str,
    admin: User = Depends(require_admin(PermissionCode.USER_READ, PermissionCode.USER_UPDATE)),
    user_service: UserService = Depends(get_user_service)
):
    """Deactivate a user."""
    record = await get_user_or_404(user, user_service)
    if not record.is_active:
        raise BadRequestException(detail="User is already inactive", code=StatusCodeError.USER_IS_INACTIVE_ERROR)
    return await user_service.inactive(record.id)


@router.patch("/update/{user}/active", response_model=UserResponse)
async def active_user(
    user: str,
    admin: User = Depends(require_admin(PermissionCode.USER_READ, PermissionCode.USER_UPDATE)),
    user_service: UserService = Depends(get_user_service)
):
    """Reactivate a user."""
    record = await get_user_or_404(user, user_service)
    if record.is_active:
        raise BadRequestException(detail="User is already active", code=StatusCodeError.USER_IS_ACTIVE_ERROR)
    return await user_service.active(record.id)


EXPORT_FIELDS = [
    "id",
    "username",
    "first_name",
    "last_name",
    "email",
    "mobile_number",
    "role",
    "access_for",
    "is_active",
    "password_expired",
    "created_at",
]


@router.post("/export")
async def export_users(
    request: Request,
    admin: User = Depends(require_admin(PermissionCode.USER_READ, PermissionCode.USER_EXPORT)),
    user_service: UserService = Depends(get_user_service)
):
    """Download every live user as CSV. Password hashes are never exported."""
    users = await user_service.find_all(sort={"created_at": SortType.ASC})
    content = write_csv(
        (
            {
                "id": user.id,
                "username": user.username,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "email": user.email,
                "mobile_number": user.mobile_number,
                "role": user.role.name if user.role else None,
                "access_for": user.role.access_for.value if user.role else None,
                "is_active": user.is_active,
                "password_expired": user.password_expired.isoformat(),
                "created_at": user.created_at.isoformat(),
            }
            for user in users
        ),
        EXPORT_FIELDS
    )

    logger.info(
        sanitize_log_message(
            "Users exported by admin",
            Count=len(users),
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="users.csv"'}
    )


def _parse_import_rows(rows: List[Dict[str, str]]) -> List[UserCreateRequest]:
    """
    Validate every row against UserCreateRequest.

    Raises:
        RequestValidationError: 422 listing the failures of every bad row; row
            numbers count the header as row 1
    """
    parsed = []
    errors = []
    for row_number, row in enumerate(rows, start=2):
        try:
            parsed.append(UserCreateRequest.model_validate(row))
        except ValidationError as e:
            # input is left out, it may hold a password
            errors.extend(
                {"loc": ("file", row_number, *error["loc"]), "msg": error["msg"], "type": error["type"]}
                for error in e.errors()
            )
    if errors:
        raise RequestValidationError(errors)
    return parsed


async def _check_import_row(
    row_number: int,
    body: UserCreateRequest,
    seen: Dict[str, set],
    role_ids: set,
    user_service: UserService,
    role_service: RoleService,
    db: AsyncSession
) -> None:
    """Same checks as a single create, plus duplicates inside the file."""
    if body.role not in role_ids:
        if await role_service.find_one_by_id(body.role, join=False, session=db) is None:
            raise NotFoundException(
                detail=f"Row {row_number}: role not found",
                code=StatusCodeError.ROLE_NOT_FOUND_ERROR
            )
        role_ids.add(body.role)

    username = body.username
    email = body.email.lower()
    mobile_number = body.mobile_number

    if username in seen["username"] or await user_service.exist_by_username(username, session=db):
        raise BadRequestException(
            detail=f"Row {row_number}: username already used",
            code=StatusCodeError.USER_USERNAME_EXISTS_ERROR
        )
    if email in seen["email"] or await user_service.exist_by_email(email, session=db):
        raise BadRequestException(
            detail=f"Row {row_number}: email already used",
            code=StatusCodeError.USER_EMAIL_EXIST_ERROR
        )
    if mobile_number and (
        mobile_number in seen["mobile_number"]
        or await user_service.exist_by_mobile_number(mobile_number, session=db)
    ):
        raise BadRequestException(
            detail=f"Row {row_number}: mobile number already used",
            code=StatusCodeError.USER_MOBILE_NUMBER_EXIST_ERROR
        )

    seen["username"].add(username)
    seen["email"].add(email)
    if mobile_number:
        seen["mobile_number"].add(mobile_number)


@router.post("/import", response_model=List[UserResponse], status_code=status.HTTP_201_CREATED)
async def import_users(
    request: Request,
    file: UploadFile = File(..., description="CSV with the columns of a user create request"),
    admin: User = Depends(
        require_admin(PermissionCode.USER_READ, PermissionCode.USER_CREATE, PermissionCode.USER_IMPORT)
    ),
    user_service: UserService = Depends(get_user_service),
    role_service: RoleService = Depends(get_role_service),
    auth_service: AuthService = Depends(get_auth_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Create users from a CSV file.

    Columns: username, first_name, last_name, email, mobile_number (optional),
    password, role (role id). The file is imported as a whole: one bad row and
    no user is created.
    """
    if file.content_type not in settings.IMPORT_ALLOWED_FILE_TYPES:
        raise BadRequestException(
            detail=f"File type {file.content_type} is not allowed. Allowed types: {settings.IMPORT_ALLOWED_FILE_TYPES}",
            code=StatusCodeError.USER_IMPORT_FILE_INVALID_ERROR
        )

    content = await file.read()
    if len(content) > settings.IMPORT_MAX_FILE_SIZE:
        raise BadRequestException(
            detail=f"File size ({len(content)} bytes) exceeds maximum allowed size ({settings.IMPORT_MAX_FILE_SIZE} bytes)",
            code=StatusCodeError.USER_IMPORT_FILE_INVALID_ERROR
        )

    try:
        rows = read_csv(content)
    except CSVFileError as e:
        raise BadRequestException(detail=str(e), code=StatusCodeError.USER_IMPORT_FILE_INVALID_ERROR)

    bodies = _parse_import_rows(rows)

    seen = {"username": set(), "email": set(), "mobile_number": set()}
    role_ids = set()
    for row_number, body in enumerate(bodies, start=2):
        await _check_import_row(row_number, body, seen, role_ids, user_service, role_service, db)

    created_ids = []
    for body in bodies:
        password, password_expired = auth_service.create_password(body.password)
        created = await user_service.create(
            username=body.username,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            mobile_number=body.mobile_number,
            password=password,
            password_expired=password_expired,
            role_id=body.role,
            session=db
        )
        created_ids.append(created.id)

    logger.info(
        sanitize_log_message(
            "Users imported by admin",
            Count=len(created_ids),
            AdminID=admin.id,
            RequestID=get_request_id(request)
        )
    )
    users = {user.id: user for user in await user_service.find_all({"id": created_ids}, session=db)}
    return [users[user_id] for user_id in created_ids]
