"""API subpackage - FastAPI service around the rental engine."""
