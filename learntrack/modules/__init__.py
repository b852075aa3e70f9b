"""Course modules and their content."""
