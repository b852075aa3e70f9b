"""Singleton pattern: one shared instance per class via ``get_instance()``."""

import threading
from collections import deque
from collections.abc import Callable
from enum import Enum
from typing import Any

import structlog

from learntrack.core.database.columns import utc_now


logger = structlog.get_logger(__name__)


class SystemStatus(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    MAINTENANCE = "maintenance"
    ERROR = "error"
    SHUTDOWN = "shutdown"


class Singleton:
    """Mixin providing a lazily created, thread-safe shared instance."""

    _instance: Any = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls):
        # Each subclass gets its own slot because the assignment below
        # lands on ``cls`` rather than on Singleton.
        if cls.__dict__.get("_instance") is None:
            with Singleton._lock:
                if cls.__dict__.get("_instance") is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the shared instance (used by tests)."""
        with Singleton._lock:
            cls._instance = None


class DatabaseConnection(Singleton):
    def __init__(self) -> None:
        self.connection_string: str | None = None
        self.is_connected = False
        self.connection_count = 0

    def connect(self, connection_string: str) -> "DatabaseConnection":
        if self.is_connected:
            logger.debug("database_already_connected")
            return self
        self.connection_string = connection_string
        self.is_connected = True
        self.connection_count += 1
        logger.info(
            "database_connected",
            connection_string=connection_string,
            total_connections=self.connection_count,
        )
        return self

    def disconnect(self) -> "DatabaseConnection":
        self.is_connected = False
        return self

    def query(self, statement: str) -> dict[str, Any]:
        """Raises RuntimeError when not connected."""
        if not self.is_connected:
            raise RuntimeError("Database not connected")
        logger.debug("database_query", statement=statement)
        return {"result": "query result", "timestamp": utc_now()}

    def get_status(self) -> dict[str, Any]:
        return {
            "connected": self.is_connected,
            "connection_string": self.connection_string,
            "total_connections": self.connection_count,
        }


DEFAULT_CONFIG: dict[str, Any] = {
    "app.name": "Learning Progress Tracker",
    "app.version": "1.0.0",
    "database.host": "localhost",
    "database.port": 9042,
    "cache.ttl": 300,
    "auth.secret": "default-secret",
    "features.analytics": True,
    "features.notifications": True,
}


class ConfigurationManager(Singleton):
    def __init__(self) -> None:
        self.config: dict[str, Any] = dict(DEFAULT_CONFIG)

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> "ConfigurationManager":
        old = self.config.get(key)
        self.config[key] = value
        logger.info("config_updated", key=key, value=value, previous=old)
        return self

    def has(self, key: str) -> bool:
        return key in self.config

    def get_all(self) -> dict[str, Any]:
        return dict(self.config)

    def reset(self) -> "ConfigurationManager":
        self.config = dict(DEFAULT_CONFIG)
        return self


class Logger(Singleton):
    """In-memory log buffer holding the most recent ``max_logs`` entries."""

    LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

    def __init__(self, max_logs: int = 1000) -> None:
        self.level = "INFO"
        self.logs: deque[dict[str, Any]] = deque(maxlen=max_logs)

    def set_level(self, level: str) -> "Logger":
        self.level = level
        return self

    def log(self, level: str, message: str, data: Any = None) -> "Logger":
        self.logs.append(
            {
                "timestamp": utc_now().isoformat(),
                "level": level,
                "message": message,
                "data": data,
            }
        )
        return self

    def error(self, message: str, data: Any = None) -> "Logger":
        return self.log("ERROR", message, data)

    def warn(self, message: str, data: Any = None) -> "Logger":
        return self.log("WARN", message, data)

    def info(self, message: str, data: Any = None) -> "Logger":
        return self.log("INFO", message, data)

    def debug(self, message: str, data: Any = None) -> "Logger":
        return self.log("DEBUG", message, data)

    def get_logs(self, level: str | None = None, limit: int = 100) -> list[dict]:
        entries = [e for e in self.logs if level is None or e["level"] == level]
        return entries[-limit:]

    def clear_logs(self) -> "Logger":
        self.logs.clear()
        return self


StateCallback = Callable[[dict[str, Any], dict[str, Any]], None]


class ApplicationStateManager(Singleton):
    def __init__(self) -> None:
        self.state: dict[str, Any] = {
            "current_user": None,
            "active_connections": 0,
            "system_status": SystemStatus.INITIALIZING.value,
            "features": set(),
            "cache": {},
        }
        self.subscribers: list[StateCallback] = []

    def set_state(self, **updates: Any) -> "ApplicationStateManager":
        old = dict(self.state)
        self.state = {**self.state, **updates}
        for callback in list(self.subscribers):
            try:
                callback(self.state, old)
            except Exception as e:
                logger.warning("state_subscriber_failed", error=str(e))
        return self

    def get_state(self) -> dict[str, Any]:
        return dict(self.state)

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        self.subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self.subscribers:
                self.subscribers.remove(callback)

        return unsubscribe

    def set_current_user(self, user: Any) -> "ApplicationStateManager":
        return self.set_state(current_user=user)

    def get_current_user(self) -> Any:
        return self.state["current_user"]

    def increment_connections(self) -> "ApplicationStateManager":
        return self.set_state(active_connections=self.state["active_connections"] + 1)

    def decrement_connections(self) -> "ApplicationStateManager":
        return self.set_state(
            active_connections=max(0, self.state["active_connections"] - 1)
        )

    def enable_feature(self, feature: str) -> "ApplicationStateManager":
        return self.set_state(features=self.state["features"] | {feature})

    def disable_feature(self, feature: str) -> "ApplicationStateManager":
        return self.set_state(features=self.state["features"] - {feature})

    def is_feature_enabled(self, feature: str) -> bool:
        return feature in self.state["features"]

    def set_cache(self, key: str, value: Any) -> "ApplicationStateManager":
        return self.set_state(cache={**self.state["cache"], key: value})

    def get_cache(self, key: str) -> Any:
        return self.state["cache"].get(key)
