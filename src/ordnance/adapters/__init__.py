"""Adapters binding the domain ports to HTTP providers and SQLAlchemy storage."""
