"""Tests for the shared-instance helpers."""

import pytest

from learntrack.patterns.singleton import (
    ApplicationStateManager,
    ConfigurationManager,
    DatabaseConnection,
    Logger,
    SystemStatus,
)


SINGLETONS = (DatabaseConnection, ConfigurationManager, Logger, ApplicationStateManager)


@pytest.fixture(autouse=True)
def fresh_instances():
    for cls in SINGLETONS:
        cls.reset_instance()
    yield
    for cls in SINGLETONS:
        cls.reset_instance()


class TestSingleton:
    def test_same_instance(self) -> None:
        assert DatabaseConnection.get_instance() is DatabaseConnection.get_instance()

    def test_each_class_has_its_own_instance(self) -> None:
        assert DatabaseConnection.get_instance() is not ConfigurationManager.get_instance()
        assert isinstance(Logger.get_instance(), Logger)

    def test_reset(self) -> None:
        first = ConfigurationManager.get_instance()
        ConfigurationManager.reset_instance()
        assert ConfigurationManager.get_instance() is not first


class TestDatabaseConnection:
    def test_connect_once(self) -> None:
        db = DatabaseConnection.get_instance()
        db.connect("cassandra://a").connect("cassandra://b")

        assert db.get_status() == {
            "connected": True,
            "connection_string": "cassandra://a",
            "total_connections": 1,
        }

    def test_query_requires_connection(self) -> None:
        db = DatabaseConnection.get_instance()
        with pytest.raises(RuntimeError, match="not connected"):
            db.query("SELECT 1")
        assert db.connect("x").query("SELECT 1")["result"] == "query result"


class TestConfigurationManager:
    def test_get_set_reset(self) -> None:
        config = ConfigurationManager.get_instance()

        config.set("cache.ttl", 60).set("feature.x", True)

        assert config.get("cache.ttl") == 60
        assert config.has("feature.x")
        assert config.get("missing", "default") == "default"
        config.reset()
        assert config.get("cache.ttl") == 300
        assert not config.has("feature.x")


class TestLogger:
    def test_buffer_is_bounded(self) -> None:
        log = Logger(max_logs=2)
        log.info("one").warn("two").error("three")

        assert [e["message"] for e in log.get_logs()] == ["two", "three"]
        assert [e["message"] for e in log.get_logs(level="ERROR")] == ["three"]

    def test_limit_and_clear(self) -> None:
        log = Logger.get_instance()
        for n in range(5):
            log.debug(f"m{n}")

        assert [e["message"] for e in log.get_logs(limit=2)] == ["m3", "m4"]
        assert log.clear_logs().get_logs() == []


class TestApplicationStateManager:
    def test_initial_state(self) -> None:
        state = ApplicationStateManager.get_instance().get_state()
        assert state["system_status"] == SystemStatus.INITIALIZING.value
        assert state["active_connections"] == 0

    def test_subscribers_see_changes(self) -> None:
        manager = ApplicationStateManager.get_instance()
        seen = []
        unsubscribe = manager.subscribe(
            lambda new, old: seen.append((old["current_user"], new["current_user"]))
        )

        manager.set_current_user("ada")
        unsubscribe()
        manager.set_current_user("bob")

        assert seen == [(None, "ada")]
        assert manager.get_current_user() == "bob"

    def test_failing_subscriber_is_skipped(self) -> None:
        manager = ApplicationStateManager.get_instance()

        def broken(new, old):
            raise ValueError("nope")

        manager.subscribe(broken)
        manager.increment_connections()

        assert manager.get_state()["active_connections"] == 1

    def test_connections_never_negative(self) -> None:
        manager = ApplicationStateManager.get_instance()
        manager.increment_connections().decrement_connections().decrement_connections()
        assert manager.get_state()["active_connections"] == 0

    def test_features_and_cache(self) -> None:
        manager = ApplicationStateManager.get_instance()

        manager.enable_feature("analytics").enable_feature("badges")
        manager.disable_feature("badges")
        manager.set_cache("k", 1)

        assert manager.is_feature_enabled("analytics")
        assert not manager.is_feature_enabled("badges")
        assert manager.get_cache("k") == 1
        assert manager.get_cache("missing") is None
