"""
Application package initializer.

Each domain (parking, rides, payments, ...) exposes a router from
``api/v1/endpoints`` and keeps its business logic in ``services``.
"""

from .main import app  # noqa: F401
