"""Smoke test for the pattern walk-through."""

import pytest

from learntrack.patterns.demo import run_all
from learntrack.patterns.singleton import ConfigurationManager, DatabaseConnection


@pytest.fixture(autouse=True)
def fresh_singletons():
    DatabaseConnection.reset_instance()
    ConfigurationManager.reset_instance()
    yield
    DatabaseConnection.reset_instance()
    ConfigurationManager.reset_instance()


@pytest.mark.asyncio
async def test_run_all() -> None:
    results = await run_all()

    assert set(results) == {
        "factory",
        "observer",
        "proxy",
        "strategy",
        "singleton",
        "decorator",
        "adapter",
        "facade",
        "prototype",
        "middleware",
    }
    assert results["factory"] == {"content_count": 5, "total_duration": 85}
    assert results["observer"]["stats"] == {
        "progress_updates": 3,
        "milestones_achieved": 5,
        "enrollments": 2,
        "assignments_completed": 1,
    }
    assert results["observer"]["badges"] == [
        "Welcome Aboard",
        "25% Complete",
        "50% Complete",
        "Perfect Score",
    ]
    assert results["proxy"]["statistics"]["access_count"] == 2
    assert results["proxy"]["denied"] == "Access denied: Premium subscription required"
    assert results["proxy"]["lazy_loaded"] == (False, True)
    assert results["strategy"]["sequential_first"] == 2
    assert results["strategy"]["adaptive_first"] == 1
    assert results["strategy"]["pass_fail"] == "PASS"
    assert results["singleton"]["same_database"] is True
    assert results["decorator"]["price"] == 214
    assert results["facade"]["enrollment"]["success"] is True
    assert results["prototype"]["course"]["title"] == "React Fundamentals"
    assert results["middleware"] == {
        "ok": 200,
        "cached": True,
        "unauthenticated": 401,
        "invalid": 400,
    }
