"""Business logic: catalog import and search, request queue handling."""
