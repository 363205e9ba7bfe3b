import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from app.core import api_key as api_key_crypto
from app.core.constants import StatusCodeError
from app.core.exceptions import ApiKeyException
from app.core.pagination import Paging, SortType
from app.models.api_key import ApiKey
from app.repositories.api_key import ApiKeyRepository
from app.repositories.base import FilterCriteria

logger = logging.getLogger(__name__)


class ApiKeyService:
    """Service for API key management and X-API-KEY header validation."""

    def __init__(self, repository: ApiKeyRepository):
        self.repository = repository

    # key material

    @staticmethod
    def create_key() -> str:
        return api_key_crypto.create_key()

    @staticmethod
    def create_secret() -> str:
        return api_key_crypto.create_secret()

    @staticmethod
    def create_passphrase() -> str:
        return api_key_crypto.create_passphrase()

    @staticmethod
    def create_encryption_key() -> str:
        return api_key_crypto.create_encryption_key()

    @staticmethod
    def create_hash(key: str, secret: str) -> str:
        return api_key_crypto.create_hash(key, secret)

    @staticmethod
    def validate_hash(hash_from_request: str, stored_hash: str) -> bool:
        return api_key_crypto.validate_hash(hash_from_request, stored_hash)

    @staticmethod
    def encrypt_api_key(payload: Dict[str, Any], encryption_key: str, passphrase: str) -> str:
        return api_key_crypto.encrypt_api_key(payload, encryption_key, passphrase)

    @staticmethod
    def decrypt_api_key(encrypted: str, encryption_key: str, passphrase: str) -> Dict[str, Any]:
        return api_key_crypto.decrypt_api_key(encrypted, encryption_key, passphrase)

    # queries

    async def find_all(
        self,
        find: Optional[FilterCriteria] = None,
        paging: Optional[Paging] = None,
        sort: Optional[Mapping[str, SortType]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[ApiKey]:
        return await self.repository.find_all(find, paging=paging, sort=sort, session=session)

    async def find_one_by_id(self, api_key_id: str, session: Optional[AsyncSession] = None) -> Optional[ApiKey]:
        return await self.repository.find_one_by_id(api_key_id, session=session)

    async def find_one(self, find: FilterCriteria, session: Optional[AsyncSession] = None) -> Optional[ApiKey]:
        return await self.repository.find_one(find, session=session)

    async def find_one_by_key(self, key: str, session: Optional[AsyncSession] = None) -> Optional[ApiKey]:
        return await self.repository.find_one({"key": key}, session=session)

    async def find_one_by_active_key(self, key: str, session: Optional[AsyncSession] = None) -> Optional[ApiKey]:
        return await self.repository.find_one({"key": key, "is_active": True}, session=session)

    async def get_total(self, find: Optional[FilterCriteria] = None, session: Optional[AsyncSession] = None) -> int:
        return await self.repository.get_total(find, session=session)

    # commands

    async def create(
        self,
        name: str,
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Tuple[ApiKey, str]:
        """
        Create an active API key with fresh key material.

        Returns:
            Tuple of (ApiKey, plain secret). The secret is not stored and can't be recovered.
        """
        return await self.create_raw(
            name=name,
            description=description,
            key=self.create_key(),
            secret=self.create_secret(),
            session=session
        )

    async def create_raw(
        self,
        name: str,
        key: str,
        secret: str,
        description: Optional[str] = None,
        encryption_key: Optional[str] = None,
        passphrase: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Tuple[ApiKey, str]:
        """
        Create an API key from caller-chosen key and secret, for seeds and fixed client credentials.

        Returns:
            Tuple of (ApiKey, plain secret)
        """
        api_key = await self.repository.create(
            {
                "name": name,
                "description": description,
                "key": key,
                "hash": self.create_hash(key, secret),
                "encryption_key": encryption_key or self.create_encryption_key(),
                "passphrase": passphrase or self.create_passphrase(),
                "is_active": True,
            },
            session=session
        )
        logger.info(f"API key created: {api_key.name} ({api_key.id})")
        return api_key, secret

    async def update_one_by_id(
        self,
        api_key_id: str,
        name: str,
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ApiKey]:
        return await self.repository.update_one_by_id(
            api_key_id,
            {"name": name, "description": description},
            session=session
        )

    async def update_hash_by_id(
        self,
        api_key: ApiKey,
        session: Optional[AsyncSession] = None
    ) -> Tuple[Optional[ApiKey], str]:
        """
        Issue a new secret for an existing key; the old secret stops working.

        Returns:
            Tuple of (updated ApiKey or None, new plain secret)
        """
        secret = self.create_secret()
        updated = await self.repository.update_one_by_id(
            api_key.id,
            {"hash": self.create_hash(api_key.key, secret)},
            session=session
        )
        if updated:
            logger.info(f"API key secret reset: {updated.id}")
        return updated, secret

    async def active(self, api_key_id: str, session: Optional[AsyncSession] = None) -> Optional[ApiKey]:
        return await self.repository.update_one_by_id(api_key_id, {"is_active": True}, session=session)

    async def inactive(self, api_key_id: str, session: Optional[AsyncSession] = None) -> Optional[ApiKey]:
        return await self.repository.update_one_by_id(api_key_id, {"is_active": False}, session=session)

    async def delete_one_by_id(self, api_key_id: str, session: Optional[AsyncSession] = None) -> Optional[ApiKey]:
        return await self.repository.delete_one_by_id(api_key_id, session=session)

    async def delete_many_by_ids(self, api_key_ids: Sequence[str], session: Optional[AsyncSession] = None) -> bool:
        return await self.repository.delete_many_by_ids(api_key_ids, session=session)

    # header validation

    async def validate_api_key(self, header_value: Optional[str], session: Optional[AsyncSession] = None) -> ApiKey:
        """
        Authenticate an X-API-KEY header value.

        Args:
            header_value: ``<key>:<encrypted>``

        Returns:
            The matching ApiKey

        Raises:
            ApiKeyException (401) with the code of the first failed check
        """
        parts = api_key_crypto.split_header(header_value)
        if parts is None:
            raise ApiKeyException(detail="API key is required", code=StatusCodeError.API_KEY_NEEDED_ERROR)
        key, encrypted = parts

        api_key = await self.find_one_by_key(key, session=session)
        if api_key is None:
            raise ApiKeyException(detail="API key not found", code=StatusCodeError.API_KEY_NOT_FOUND_ERROR)

        if not api_key.is_active:
            raise ApiKeyException(detail="API key is inactive", code=StatusCodeError.API_KEY_INACTIVE_ERROR)

        try:
            payload = self.decrypt_api_key(encrypted, api_key.encryption_key, api_key.passphrase)
        except ValueError:
            payload = None

        if not payload or any(field not in payload for field in api_key_crypto.PAYLOAD_FIELDS):
            raise ApiKeyException(detail="API key payload is invalid", code=StatusCodeError.API_KEY_SCHEMA_INVALID_ERROR)

        payload_hash = payload["hash"]
        if (
            payload["key"] != key
            or not isinstance(payload_hash, str)
            or not self.validate_hash(payload_hash, api_key.hash)
        ):
            logger.warning(f"API key rejected: {api_key.id}")
            raise ApiKeyException(detail="API key is invalid", code=StatusCodeError.API_KEY_INVALID_ERROR)

        return api_key
