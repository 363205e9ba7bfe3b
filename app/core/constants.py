import enum


class AccessFor(str, enum.Enum):
    """Who a role grants access to."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    USER = "USER"


ADMIN_ACCESS = (AccessFor.SUPER_ADMIN, AccessFor.ADMIN)


class PermissionGroup(str, enum.Enum):
    API_KEY = "API_KEY"
    SETTING = "SETTING"
    PERMISSION = "PERMISSION"
    ROLE = "ROLE"
    USER = "USER"


class PermissionCode(str, enum.Enum):
    """Permission codes checked by the admin guards."""
    API_KEY_READ = "API_KEY_READ"
    API_KEY_CREATE = "API_KEY_CREATE"
    API_KEY_UPDATE = "API_KEY_UPDATE"
    API_KEY_DELETE = "API_KEY_DELETE"

    SETTING_READ = "SETTING_READ"
    SETTING_UPDATE = "SETTING_UPDATE"

    PERMISSION_READ = "PERMISSION_READ"
    PERMISSION_UPDATE = "PERMISSION_UPDATE"

    ROLE_READ = "ROLE_READ"
    ROLE_CREATE = "ROLE_CREATE"
    ROLE_UPDATE = "ROLE_UPDATE"
    ROLE_DELETE = "ROLE_DELETE"

    USER_READ = "USER_READ"
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    USER_IMPORT = "USER_IMPORT"
    USER_EXPORT = "USER_EXPORT"

    @property
    def group(self) -> PermissionGroup:
        return PermissionGroup(self.value.rsplit("_", 1)[0])


class SettingDataType(str, enum.Enum):
    BOOLEAN = "BOOLEAN"
    STRING = "STRING"
    ARRAY_OF_STRING = "ARRAY_OF_STRING"
    NUMBER = "NUMBER"


MAINTENANCE_SETTING = "maintenance"


class StatusCodeError(enum.IntEnum):
    """Numeric error codes returned next to ``detail`` in error responses."""
    UNKNOWN_ERROR = 5000
    SERVICE_UNAVAILABLE_ERROR = 5001
    REQUEST_VALIDATION_ERROR = 5002

    API_KEY_NEEDED_ERROR = 5020
    API_KEY_NOT_FOUND_ERROR = 5021
    API_KEY_INACTIVE_ERROR = 5022
    API_KEY_SCHEMA_INVALID_ERROR = 5023
    API_KEY_INVALID_ERROR = 5024
    API_KEY_IS_ACTIVE_ERROR = 5025

    AUTH_JWT_ACCESS_TOKEN_ERROR = 5040
    AUTH_JWT_REFRESH_TOKEN_ERROR = 5041
    AUTH_PERMISSION_INVALID_ERROR = 5042
    AUTH_ACCESS_FOR_INVALID_ERROR = 5043

    PERMISSION_NOT_FOUND_ERROR = 5060
    PERMISSION_IS_ACTIVE_ERROR = 5061

    ROLE_NOT_FOUND_ERROR = 5080
    ROLE_EXIST_ERROR = 5081
    ROLE_IS_ACTIVE_ERROR = 5082
    ROLE_IS_INACTIVE_ERROR = 5083
    ROLE_USED_ERROR = 5084

    SETTING_NOT_FOUND_ERROR = 5100
    SETTING_VALUE_NOT_ALLOWED_ERROR = 5101

    USER_NOT_FOUND_ERROR = 5120
    USER_USERNAME_EXISTS_ERROR = 5121
    USER_EMAIL_EXIST_ERROR = 5122
    USER_MOBILE_NUMBER_EXIST_ERROR = 5123
    USER_IS_INACTIVE_ERROR = 5124
    USER_IS_ACTIVE_ERROR = 5125
    USER_PASSWORD_NOT_MATCH_ERROR = 5126
    USER_PASSWORD_NEW_MUST_DIFFERENCE_ERROR = 5127
    USER_PASSWORD_EXPIRED_ERROR = 5128
    USER_IMPORT_FILE_INVALID_ERROR = 5129
