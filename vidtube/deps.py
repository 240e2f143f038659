from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from redis import Redis
from sqlalchemy.orm import Session

from vidtube.config import get_settings
from vidtube.db import get_db
from vidtube.redis_client import CatalogCache, get_redis_client
from vidtube.services.identity import IdentityProvider, get_identity_provider
from vidtube.services.storage import CloudStorage, get_storage


def get_redis() -> Redis:
    return get_redis_client()


RedisDep = Annotated[Redis, Depends(get_redis)]


def get_catalog_cache(redis: RedisDep) -> CatalogCache:
    return CatalogCache(redis, get_settings().catalog_cache_ttl_seconds)


def get_cloud_storage() -> CloudStorage:
    return get_storage()


def get_identity() -> IdentityProvider:
    return get_identity_provider()


DbDep = Annotated[Session, Depends(get_db)]
CatalogDep = Annotated[CatalogCache, Depends(get_catalog_cache)]
StorageDep = Annotated[CloudStorage, Depends(get_cloud_storage)]
IdentityDep = Annotated[IdentityProvider, Depends(get_identity)]
