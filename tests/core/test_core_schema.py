"""Tests for keyspace and table creation."""

import pytest

from learntrack.core.database.async_cassandra import SCHEMA, create_schema, keyspace_cql


def test_keyspace_replication() -> None:
    assert "SimpleStrategy" in keyspace_cql("lt", production=False)
    assert "NetworkTopologyStrategy" in keyspace_cql("lt", production=True)
    assert keyspace_cql("lt", production=False).startswith(
        "CREATE KEYSPACE IF NOT EXISTS lt "
    )


@pytest.mark.asyncio
async def test_create_schema_formats_every_statement(mock_session) -> None:
    await create_schema(mock_session, "lt_test")

    statements = [call.args[0] for call in mock_session.aexecute.call_args_list]
    assert len(statements) == sum(len(cql) for _, cql in SCHEMA)
    assert all("{keyspace}" not in cql for cql in statements)
    assert any("lt_test.quizzes" in cql for cql in statements)
