"""Cassandra connection management and column helpers.

Import the connection functions from ``learntrack.core.database.async_cassandra``;
that module pulls in every domain's table definitions, which in turn depend
on ``learntrack.core.database.columns``.
"""
