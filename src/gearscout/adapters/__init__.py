"""Adapters binding domain ports to HTTP, SQL and filesystem implementations."""
