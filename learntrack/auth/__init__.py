"""Authentication and user management."""
