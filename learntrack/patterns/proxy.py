"""Proxy pattern: access control, caching, lazy loading and monitoring
in front of a learning resource."""

import asyncio
import time
from datetime import datetime
from typing import Any

import structlog

from learntrack.core.database.columns import utc_now


logger = structlog.get_logger(__name__)


class LearningResource:
    async def get_content(self) -> str:
        raise NotImplementedError

    def get_metadata(self) -> dict[str, Any]:
        raise NotImplementedError


class RealLearningResource(LearningResource):
    """A resource whose content is expensive to load.

    ``load_delay`` (seconds) simulates the load time.
    """

    def __init__(
        self,
        id: str,
        title: str,
        content: str,
        size: float,
        premium: bool = False,
        load_delay: float = 0,
    ):
        self.id = id
        self.title = title
        self.content = content
        self.size = size
        self.premium = premium
        self.load_delay = load_delay
        self.load_count = 0

    async def get_content(self) -> str:
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        self.load_count += 1
        logger.debug("resource_loaded", resource_id=self.id, size_mb=self.size)
        return self.content

    def get_metadata(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "size": self.size,
            "premium": self.premium,
            "type": "learning-resource",
        }


class AccessControlProxy(LearningResource):
    def __init__(
        self,
        real_resource: RealLearningResource,
        user_role: str,
        user_subscription: str,
    ):
        self.real_resource = real_resource
        self.user_role = user_role
        self.user_subscription = user_subscription

    @property
    def id(self) -> str:
        return self.real_resource.id

    def has_access(self) -> bool:
        if self.real_resource.premium:
            return self.user_subscription == "premium" or self.user_role == "admin"
        return self.user_role != "guest"

    def access_denied_reason(self) -> str:
        if self.user_role == "guest":
            return "Authentication required"
        if self.real_resource.premium and self.user_subscription != "premium":
            return "Premium subscription required"
        return "Unknown access restriction"

    async def get_content(self) -> str:
        """Raises PermissionError when the user may not read the resource."""
        if not self.has_access():
            raise PermissionError(f"Access denied: {self.access_denied_reason()}")
        return await self.real_resource.get_content()

    def get_metadata(self) -> dict[str, Any]:
        allowed = self.has_access()
        return {
            **self.real_resource.get_metadata(),
            "accessible": allowed,
            "access_reason": "Authorized" if allowed else self.access_denied_reason(),
        }


class CachingProxy(LearningResource):
    def __init__(self, real_resource: LearningResource, cache_timeout: float = 300):
        self.real_resource = real_resource
        self.cache_timeout = cache_timeout
        self.cache: dict[str, tuple[str, float]] = {}

    @property
    def cache_key(self) -> str:
        return f"content_{self.real_resource.id}"

    def is_cached(self) -> bool:
        entry = self.cache.get(self.cache_key)
        return entry is not None and time.monotonic() - entry[1] < self.cache_timeout

    async def get_content(self) -> str:
        if self.is_cached():
            return self.cache[self.cache_key][0]
        content = await self.real_resource.get_content()
        self.cache[self.cache_key] = (content, time.monotonic())
        return content

    def get_metadata(self) -> dict[str, Any]:
        return {**self.real_resource.get_metadata(), "cached": self.is_cached()}

    def clear_cache(self) -> None:
        self.cache.clear()


class LazyLoadingProxy(LearningResource):
    """Defers creating the real resource until content is first requested."""

    def __init__(self, resource_config: dict[str, Any]):
        self.resource_config = resource_config
        self.real_resource: RealLearningResource | None = None

    async def get_content(self) -> str:
        if self.real_resource is None:
            cfg = self.resource_config
            self.real_resource = RealLearningResource(
                cfg["id"],
                cfg["title"],
                cfg["content"],
                cfg.get("size", 0),
                cfg.get("premium", False),
            )
        return await self.real_resource.get_content()

    def get_metadata(self) -> dict[str, Any]:
        cfg = self.resource_config
        return {
            "id": cfg["id"],
            "title": cfg["title"],
            "size": cfg.get("size", 0),
            "premium": cfg.get("premium", False),
            "type": "lazy-loaded-resource",
            "loaded": self.real_resource is not None,
        }


class MonitoringProxy(LearningResource):
    def __init__(self, real_resource: LearningResource):
        self.real_resource = real_resource
        self.access_count = 0
        self.last_accessed: datetime | None = None
        self.total_load_time_ms = 0.0

    @property
    def average_load_time_ms(self) -> float:
        if not self.access_count:
            return 0
        return round(self.total_load_time_ms / self.access_count)

    async def get_content(self) -> str:
        start = time.perf_counter()
        self.access_count += 1
        self.last_accessed = utc_now()
        content = await self.real_resource.get_content()
        self.total_load_time_ms += (time.perf_counter() - start) * 1000
        return content

    def get_metadata(self) -> dict[str, Any]:
        return {
            **self.real_resource.get_metadata(),
            "monitoring": {
                "access_count": self.access_count,
                "last_accessed": self.last_accessed,
                "average_load_time": self.average_load_time_ms,
            },
        }

    def get_statistics(self) -> dict[str, Any]:
        metadata = self.real_resource.get_metadata()
        return {
            "resource_id": metadata["id"],
            "title": metadata["title"],
            "access_count": self.access_count,
            "last_accessed": self.last_accessed,
            "total_load_time": round(self.total_load_time_ms),
            "average_load_time": self.average_load_time_ms,
        }


class CompositeProxy(LearningResource):
    """Monitoring wraps caching, which wraps access control."""

    def __init__(
        self,
        real_resource: RealLearningResource,
        user_role: str,
        user_subscription: str,
    ):
        self.monitoring_proxy = MonitoringProxy(
            CachingProxy(
                AccessControlProxy(real_resource, user_role, user_subscription),
                cache_timeout=300,
            )
        )

    async def get_content(self) -> str:
        return await self.monitoring_proxy.get_content()

    def get_metadata(self) -> dict[str, Any]:
        return self.monitoring_proxy.get_metadata()

    def get_statistics(self) -> dict[str, Any]:
        return self.monitoring_proxy.get_statistics()


class LearningResourceManager:
    def __init__(self) -> None:
        self.resources: dict[str, RealLearningResource] = {}

    def add_resource(
        self,
        id: str,
        title: str,
        content: str,
        size: float,
        premium: bool = False,
    ) -> RealLearningResource:
        resource = RealLearningResource(id, title, content, size, premium)
        self.resources[id] = resource
        return resource

    def get_resource(
        self,
        id: str,
        user_role: str = "guest",
        user_subscription: str = "free",
    ) -> CompositeProxy:
        """Raises KeyError for unknown resources."""
        resource = self.resources.get(id)
        if resource is None:
            raise KeyError(f"Resource not found: {id}")
        return CompositeProxy(resource, user_role, user_subscription)

    def create_lazy_resource(self, config: dict[str, Any]) -> LazyLoadingProxy:
        return LazyLoadingProxy(config)

    def list_resources(self) -> list[str]:
        return list(self.resources)
