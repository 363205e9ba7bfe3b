"""
API key material and the encrypted X-API-KEY payload.

Header format::

    X-API-KEY: <key>:<encrypted>

``encrypted`` is base64(AES-256-CBC(json)) of ``{"key", "timestamp", "hash"}``
where the AES key is sha256(encryption_key), the IV is the 16-character
passphrase and ``hash`` is sha256("<key>:<secret>").
"""
import base64
import binascii
import json
import secrets
from hashlib import sha256
from typing import Any, Dict, Optional, Tuple
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from app.core.dates import timestamp

API_KEY_HEADER = "X-API-KEY"
API_KEY_SEPARATOR = ":"
PAYLOAD_FIELDS = ("key", "timestamp", "hash")

PASSPHRASE_LENGTH = 16  # AES block size, used as the CBC IV


def create_key() -> str:
    """Public part of the key; url-safe so it never contains the separator."""
    return secrets.token_urlsafe(18)


def create_secret() -> str:
    return secrets.token_urlsafe(36)


def create_passphrase() -> str:
    return secrets.token_hex(PASSPHRASE_LENGTH // 2)


def create_encryption_key() -> str:
    return secrets.token_urlsafe(30)


def create_hash(key: str, secret: str) -> str:
    """sha256 of ``key:secret``; the only form in which the secret is stored."""
    return sha256(f"{key}{API_KEY_SEPARATOR}{secret}".encode("utf-8")).hexdigest()


def validate_hash(hash_from_request: str, stored_hash: str) -> bool:
    """Compare hashes in constant time."""
    return secrets.compare_digest(hash_from_request.encode("utf-8"), stored_hash.encode("utf-8"))


def _cipher(encryption_key: str, passphrase: str) -> Cipher:
    iv = passphrase.encode("utf-8")
    if len(iv) != PASSPHRASE_LENGTH:
        raise ValueError(f"Passphrase must be {PASSPHRASE_LENGTH} bytes")
    key = sha256(encryption_key.encode("utf-8")).digest()
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt_api_key(payload: Dict[str, Any], encryption_key: str, passphrase: str) -> str:
    """Encrypt a payload the way clients build the header."""
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    data = padder.update(json.dumps(payload).encode("utf-8")) + padder.finalize()

    encryptor = _cipher(encryption_key, passphrase).encryptor()
    encrypted = encryptor.update(data) + encryptor.finalize()
    return base64.b64encode(encrypted).decode("ascii")


def decrypt_api_key(encrypted: str, encryption_key: str, passphrase: str) -> Dict[str, Any]:
    """
    Decrypt and decode a header payload.

    Raises:
        ValueError if the value is not valid base64, fails to decrypt or is not a JSON object
    """
    try:
        data = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Encrypted API key is not valid base64") from e

    decryptor = _cipher(encryption_key, passphrase).decryptor()
    try:
        padded = decryptor.update(data) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        payload = json.loads(plain.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError("Encrypted API key could not be decrypted") from e

    if not isinstance(payload, dict):
        raise ValueError("Decrypted API key payload is not an object")
    return payload


def build_payload(key: str, secret: str, at: Optional[int] = None) -> Dict[str, Any]:
    return {"key": key, "timestamp": at if at is not None else timestamp(), "hash": create_hash(key, secret)}


def build_header_value(key: str, secret: str, encryption_key: str, passphrase: str) -> str:
    """Full X-API-KEY header value for a key; used by scripts and tests."""
    encrypted = encrypt_api_key(build_payload(key, secret), encryption_key, passphrase)
    return f"{key}{API_KEY_SEPARATOR}{encrypted}"


def split_header(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split ``key:encrypted``. None when the header is missing or malformed."""
    if not value:
        return None
    key, sep, encrypted = value.partition(API_KEY_SEPARATOR)
    if not sep or not key or not encrypted:
        return None
    return key, encrypted
