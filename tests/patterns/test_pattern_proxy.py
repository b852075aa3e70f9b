"""Tests for learning resource proxies."""

import pytest

from learntrack.patterns.proxy import (
    AccessControlProxy,
    CachingProxy,
    LearningResourceManager,
    MonitoringProxy,
    RealLearningResource,
)


@pytest.fixture
def resource():
    return RealLearningResource("intro", "Intro", "hello", 5)


@pytest.fixture
def premium():
    return RealLearningResource("adv", "Advanced", "secret", 50, premium=True)


class TestAccessControl:
    @pytest.mark.asyncio
    async def test_guest_denied(self, resource) -> None:
        proxy = AccessControlProxy(resource, "guest", "free")
        with pytest.raises(PermissionError, match="Authentication required"):
            await proxy.get_content()

    @pytest.mark.asyncio
    async def test_premium_requires_subscription(self, premium) -> None:
        proxy = AccessControlProxy(premium, "student", "free")

        with pytest.raises(PermissionError, match="Premium subscription required"):
            await proxy.get_content()
        assert proxy.get_metadata()["accessible"] is False

    @pytest.mark.asyncio
    async def test_admin_reads_premium(self, premium) -> None:
        proxy = AccessControlProxy(premium, "admin", "free")
        assert await proxy.get_content() == "secret"
        assert proxy.get_metadata()["access_reason"] == "Authorized"


class TestCaching:
    @pytest.mark.asyncio
    async def test_loads_once(self, resource) -> None:
        proxy = CachingProxy(resource)

        assert await proxy.get_content() == "hello"
        assert await proxy.get_content() == "hello"

        assert resource.load_count == 1
        assert proxy.get_metadata()["cached"] is True

    @pytest.mark.asyncio
    async def test_expired_entries_reload(self, resource) -> None:
        proxy = CachingProxy(resource, cache_timeout=0)
        await proxy.get_content()
        await proxy.get_content()
        assert resource.load_count == 2

    @pytest.mark.asyncio
    async def test_clear_cache(self, resource) -> None:
        proxy = CachingProxy(resource)
        await proxy.get_content()
        proxy.clear_cache()
        assert proxy.is_cached() is False


class TestMonitoring:
    @pytest.mark.asyncio
    async def test_statistics(self, resource) -> None:
        proxy = MonitoringProxy(resource)
        assert proxy.average_load_time_ms == 0

        await proxy.get_content()
        await proxy.get_content()

        stats = proxy.get_statistics()
        assert stats["resource_id"] == "intro"
        assert stats["access_count"] == 2
        assert stats["last_accessed"] is not None


class TestManager:
    @pytest.mark.asyncio
    async def test_composite_proxy(self) -> None:
        manager = LearningResourceManager()
        resource = manager.add_resource("intro", "Intro", "hello", 5)

        proxy = manager.get_resource("intro", "student", "free")
        await proxy.get_content()
        await proxy.get_content()

        assert resource.load_count == 1
        assert proxy.get_statistics()["access_count"] == 2
        assert proxy.get_metadata()["accessible"] is True
        assert manager.list_resources() == ["intro"]

    def test_unknown_resource(self) -> None:
        with pytest.raises(KeyError):
            LearningResourceManager().get_resource("missing")

    @pytest.mark.asyncio
    async def test_lazy_loading(self) -> None:
        lazy = LearningResourceManager().create_lazy_resource(
            {"id": "lazy", "title": "Lazy", "content": "later"}
        )

        assert lazy.get_metadata()["loaded"] is False
        assert await lazy.get_content() == "later"
        assert lazy.get_metadata()["loaded"] is True
