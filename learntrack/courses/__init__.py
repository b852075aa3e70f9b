"""Course catalog and enrollment."""
