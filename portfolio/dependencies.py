"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portfolio.auth import AuthService
from portfolio.config import Settings, get_settings
from portfolio.errors import UnauthorizedError
from portfolio.locks import InMemoryLockProvider, LockProvider, RedisLockProvider
from portfolio.mongo_store import MongoContentStore
from portfolio.records import User
from portfolio.sql_store import SqlContentStore
from portfolio.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from portfolio.stores import ContentStore

_storage_client: Optional[StorageClient] = None
_lock_provider: Optional[LockProvider] = None
_content_store: Optional[ContentStore] = None

bearer_scheme = HTTPBearer(auto_error=False)


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.images_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.images_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    return _storage_client


def get_lock_provider() -> LockProvider:
    """
    Return the singleton lock provider serializing screen edits per project.
    """
    global _lock_provider
    if _lock_provider:
        return _lock_provider

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _lock_provider = RedisLockProvider(url=settings.redis_url)
    else:
        _lock_provider = InMemoryLockProvider()
    return _lock_provider


def build_content_store(settings: Settings) -> ContentStore:
    locks = get_lock_provider()
    if settings.content_backend == "mongo" and not settings.use_in_memory_backends:
        return MongoContentStore.from_uri(
            settings.mongodb_uri,
            settings.mongodb_database,
            locks=locks,
            url_prefix=settings.api_prefix,
        )
    return SqlContentStore(
        settings.sql_url,
        get_storage_client(),
        locks=locks,
        url_prefix=settings.api_prefix,
    )


def get_content_store() -> ContentStore:
    """
    Return a singleton content store so connections are reused across requests.
    """
    global _content_store
    if _content_store:
        return _content_store
    _content_store = build_content_store(get_settings())
    return _content_store


def get_auth_service(
    store: ContentStore = Depends(get_content_store),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(store, settings)


def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the bearer token to a user, or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token provided", reason="no_token")
    user = auth.verify(credentials.credentials)
    request.state.user = user
    return user
