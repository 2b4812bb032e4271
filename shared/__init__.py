"""
Shared utilities for the admin data access layer.

This package aggregates common building blocks:

- config: Client configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- test_helpers: Raw payload samples for tests

Do not import from data_access into shared/.
"""
