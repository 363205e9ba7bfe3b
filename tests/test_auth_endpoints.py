"""
Tests for the user endpoints: login, refresh, profile and password change,
plus the guards every API route goes through.
"""
from datetime import timedelta
import pytest
from app.core.constants import SettingDataType, StatusCodeError
from app.core.dates import utcnow
from app.repositories.setting import SettingRepository
from app.services.auth_service import AuthService
from app.services.setting_service import SettingService
from conftest import TEST_PASSWORD, bearer

LOGIN_URL = "/api/v1/user/login"
REFRESH_URL = "/api/v1/user/refresh"
PROFILE_URL = "/api/v1/user/profile"
CHANGE_PASSWORD_URL = "/api/v1/user/change-password"


async def login(async_client, headers, username="member", password=TEST_PASSWORD, **extra):
    return await async_client.post(
        LOGIN_URL,
        headers=headers,
        json={"username": username, "password": password, **extra}
    )


class TestApiKeyGuard:
    """Tests for the X-API-KEY check in front of every /api/v1 route."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self, async_client):
        response = await async_client.post(LOGIN_URL, json={"username": "member", "password": TEST_PASSWORD})

        assert response.status_code == 401
        assert response.json()["code"] == StatusCodeError.API_KEY_NEEDED_ERROR
        assert response.headers["WWW-Authenticate"] == "ApiKey"

    @pytest.mark.asyncio
    async def test_unknown_api_key(self, async_client, api_key_headers):
        _, encrypted = api_key_headers["X-API-KEY"].split(":", 1)

        response = await async_client.get(PROFILE_URL, headers={"X-API-KEY": f"unknown:{encrypted}"})

        assert response.status_code == 401
        assert response.json()["code"] == StatusCodeError.API_KEY_NOT_FOUND_ERROR

    @pytest.mark.asyncio
    async def test_api_key_checked_before_token(self, async_client, member):
        """Without an API key, even a valid bearer token is refused."""
        response = await async_client.get(PROFILE_URL, headers=bearer(member))

        assert response.status_code == 401
        assert response.json()["code"] == StatusCodeError.API_KEY_NEEDED_ERROR


class TestMaintenance:
    """Tests for maintenance mode."""

    @pytest.mark.asyncio
    async def test_routes_closed_during_maintenance(self, async_client, session_factory, member_headers):
        await SettingService(SettingRepository(session_factory)).create(
            "maintenance", SettingDataType.BOOLEAN, True
        )

        response = await async_client.get(PROFILE_URL, headers=member_headers)

        assert response.status_code == 503
        assert response.json()["code"] == StatusCodeError.SERVICE_UNAVAILABLE_ERROR

    @pytest.mark.asyncio
    async def test_routes_open_when_maintenance_off(self, async_client, session_factory, member_headers):
        await SettingService(SettingRepository(session_factory)).create(
            "maintenance", SettingDataType.BOOLEAN, False
        )

        response = await async_client.get(PROFILE_URL, headers=member_headers)

        assert response.status_code == 200


class TestLogin:
    """Tests for username/password login."""

    @pytest.mark.asyncio
    async def test_login_success(self, async_client, api_key_headers, member):
        response = await login(async_client, api_key_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "Bearer"
        assert data["access_for"] == "USER"
        assert data["expires_in"] == AuthService.access_token_expires_in()

        payload = AuthService.payload_access_token(data["access_token"])
        assert payload["user_id"] == member.id
        assert payload["username"] == "member"
        assert payload["role"] == member.role_id
        assert payload["permissions"] == []

        refresh_payload = AuthService.payload_refresh_token(data["refresh_token"])
        assert refresh_payload["user_id"] == member.id
        assert refresh_payload["remember_me"] is False

    @pytest.mark.asyncio
    async def test_login_remember_me(self, async_client, api_key_headers, member):
        response = await login(async_client, api_key_headers, remember_me=True)

        assert response.status_code == 200
        assert AuthService.payload_refresh_token(response.json()["refresh_token"])["remember_me"] is True

    @pytest.mark.asyncio
    async def test_unknown_user(self, async_client, api_key_headers, member):
        response = await login(async_client, api_key_headers, username="nobody")

        assert response.status_code == 404
        assert response.json()["code"] == StatusCodeError.USER_NOT_FOUND_ERROR

    @pytest.mark.asyncio
    async def test_wrong_password(self, async_client, api_key_headers, member):
        response = await login(async_client, api_key_headers, password="wrong-password")

        assert response.status_code == 400
        assert response.json()["code"] == StatusCodeError.USER_PASSWORD_NOT_MATCH_ERROR

    @pytest.mark.asyncio
    async def test_inactive_user(self, async_client, api_key_headers, member, user_service):
        await user_service.inactive(member.id)

        response = await login(async_client, api_key_headers)

        assert response.status_code == 403
        assert response.json()["code"] == StatusCodeError.USER_IS_INACTIVE_ERROR

    @pytest.mark.asyncio
    async def test_inactive_role(self, async_client, api_key_headers, member, role_service):
        await role_service.inactive(member.role_id)

        response = await login(async_client, api_key_headers)

        assert response.status_code == 403
        assert response.json()["code"] == StatusCodeError.ROLE_IS_INACTIVE_ERROR

    @pytest.mark.asyncio
    async def test_expired_password_still_gets_tokens(self, async_client, api_key_headers, member, user_service):
        """Tokens are issued with the expired code so the client can ask for a new password."""
        await user_service.update_password_expired(member.id, utcnow() - timedelta(days=1))

        response = await login(async_client, api_key_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["password_expired"] is True
        assert data["code"] == StatusCodeError.USER_PASSWORD_EXPIRED_ERROR
        assert AuthService.payload_access_token(data["access_token"])["user_id"] == member.id

    @pytest.mark.asyncio
    async def test_valid_password_has_no_code(self, async_client, api_key_headers, member):
        data = (await login(async_client, api_key_headers)).json()

        assert data["password_expired"] is False
        assert data["code"] is None

    @pytest.mark.asyncio
    async def test_deleted_user(self, async_client, api_key_headers, member, user_service):
        await user_service.soft_delete_one_by_id(member.id)

        response = await login(async_client, api_key_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_body(self, async_client, api_key_headers):
        response = await async_client.post(LOGIN_URL, headers=api_key_headers, json={"username": "member"})

        assert response.status_code == 422
        assert response.json()["code"] == StatusCodeError.REQUEST_VALIDATION_ERROR


class TestRefresh:
    """Tests for the refresh endpoint."""

    @pytest.mark.asyncio
    async def test_refresh_issues_new_pair(self, async_client, api_key_headers, member):
        tokens = (await login(async_client, api_key_headers, remember_me=True)).json()

        response = await async_client.post(
            REFRESH_URL,
            headers={**api_key_headers, "Authorization": f"Bearer {tokens['refresh_token']}"}
        )

        assert response.status_code == 200
        data = response.json()
        assert AuthService.payload_access_token(data["access_token"])["user_id"] == member.id
        assert AuthService.payload_refresh_token(data["refresh_token"])["remember_me"] is True

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, async_client, member_headers):
        response = await async_client.post(REFRESH_URL, headers=member_headers)

        assert response.status_code == 401
        assert response.json()["code"] == StatusCodeError.AUTH_JWT_REFRESH_TOKEN_ERROR

    @pytest.mark.asyncio
    async def test_refresh_rechecks_user(self, async_client, api_key_headers, member, user_service):
        tokens = (await login(async_client, api_key_headers)).json()
        await user_service.inactive(member.id)

        response = await async_client.post(
            REFRESH_URL,
            headers={**api_key_headers, "Authorization": f"Bearer {tokens['refresh_token']}"}
        )

        assert response.status_code == 403
        assert response.json()["code"] == StatusCodeError.USER_IS_INACTIVE_ERROR

    @pytest.mark.asyncio
    async def test_refresh_refuses_expired_password(self, async_client, api_key_headers, member, user_service):
        tokens = (await login(async_client, api_key_headers)).json()
        await user_service.update_password_expired(member.id, utcnow() - timedelta(days=1))

        response = await async_client.post(
            REFRESH_URL,
            headers={**api_key_headers, "Authorization": f"Bearer {tokens['refresh_token']}"}
        )

        assert response.status_code == 403
        assert response.json()["code"] == StatusCodeError.USER_PASSWORD_EXPIRED_ERROR


class TestProfile:
    """Tests for the current user's profile."""

    @pytest.mark.asyncio
    async def test_profile(self, async_client, member_headers, member):
        response = await async_client.get(PROFILE_URL, headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == member.id
        assert data["username"] == "member"
        assert data["role"]["access_for"] == "USER"
        assert "password" not in data

    @pytest.mark.asyncio
    async def test_profile_without_token(self, async_client, api_key_headers):
        response = await async_client.get(PROFILE_URL, headers=api_key_headers)

        assert response.status_code == 401
        assert response.json()["code"] == StatusCodeError.AUTH_JWT_ACCESS_TOKEN_ERROR
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_profile_with_invalid_token(self, async_client, api_key_headers):
        response = await async_client.get(
            PROFILE_URL,
            headers={**api_key_headers, "Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_of_deactivated_user(self, async_client, member_headers, member, user_service):
        """Account state is read on every request, not taken from the token."""
        await user_service.inactive(member.id)

        response = await async_client.get(PROFILE_URL, headers=member_headers)

        assert response.status_code == 403
        assert response.json()["code"] == StatusCodeError.USER_IS_INACTIVE_ERROR


class TestChangePassword:
    """Tests for changing the current user's password."""

    @pytest.mark.asyncio
    async def test_change_password(self, async_client, api_key_headers, member_headers, member):
        response = await async_client.patch(
            CHANGE_PASSWORD_URL,
            headers=member_headers,
            json={"old_password": TEST_PASSWORD, "new_password": "An0therPassw0rd!"}
        )

        assert response.status_code == 200
        assert (await login(async_client, api_key_headers, password="An0therPassw0rd!")).status_code == 200
        assert (await login(async_client, api_key_headers)).status_code == 400

    @pytest.mark.asyncio
    async def test_wrong_old_password(self, async_client, member_headers):
        response = await async_client.patch(
            CHANGE_PASSWORD_URL,
            headers=member_headers,
            json={"old_password": "wrong-password", "new_password": "An0therPassw0rd!"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == StatusCodeError.USER_PASSWORD_NOT_MATCH_ERROR

    @pytest.mark.asyncio
    async def test_same_password(self, async_client, member_headers):
        response = await async_client.patch(
            CHANGE_PASSWORD_URL,
            headers=member_headers,
            json={"old_password": TEST_PASSWORD, "new_password": TEST_PASSWORD}
        )

        assert response.status_code == 400
        assert response.json()["code"] == StatusCodeError.USER_PASSWORD_NEW_MUST_DIFFERENCE_ERROR

    @pytest.mark.asyncio
    async def test_expired_password_can_be_changed(self, async_client, api_key_headers, member, user_service):
        await user_service.update_password_expired(member.id, utcnow() - timedelta(days=1))
        tokens = (await login(async_client, api_key_headers)).json()
        headers = {**api_key_headers, "Authorization": f"Bearer {tokens['access_token']}"}

        profile = await async_client.get(PROFILE_URL, headers=headers)
        assert profile.status_code == 403
        assert profile.json()["code"] == StatusCodeError.USER_PASSWORD_EXPIRED_ERROR

        response = await async_client.patch(
            CHANGE_PASSWORD_URL,
            headers=headers,
            json={"old_password": TEST_PASSWORD, "new_password": "An0therPassw0rd!"}
        )

        assert response.status_code == 200
        assert AuthService.check_password_expired(
            (await user_service.find_one_by_id(member.id)).password_expired
        ) is False
        assert (await async_client.get(PROFILE_URL, headers=headers)).status_code == 200

        relogin = (await login(async_client, api_key_headers, password="An0therPassw0rd!")).json()
        assert relogin["password_expired"] is False
        assert relogin["code"] is None


class TestSettings:
    """Tests for the public settings endpoints."""

    @pytest.mark.asyncio
    async def test_list_and_get(self, async_client, session_factory, api_key_headers):
        setting_service = SettingService(SettingRepository(session_factory))
        await setting_service.create("maintenance", SettingDataType.BOOLEAN, False)
        tags = await setting_service.create("tags", SettingDataType.ARRAY_OF_STRING, ["a", "b"])

        response = await async_client.get("/api/v1/setting/list", headers=api_key_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_data"] == 2
        assert data["total_page"] == 1
        assert [item["name"] for item in data["data"]] == ["maintenance", "tags"]
        assert data["data"][0]["value"] is False

        response = await async_client.get(f"/api/v1/setting/get/{tags.id}", headers=api_key_headers)
        assert response.status_code == 200
        assert response.json()["value"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_get_missing(self, async_client, api_key_headers):
        response = await async_client.get("/api/v1/setting/get/missing", headers=api_key_headers)

        assert response.status_code == 404
        assert response.json()["code"] == StatusCodeError.SETTING_NOT_FOUND_ERROR

    @pytest.mark.asyncio
    async def test_invalid_sort(self, async_client, api_key_headers):
        response = await async_client.get("/api/v1/setting/list?sort=value@asc", headers=api_key_headers)

        assert response.status_code == 400
