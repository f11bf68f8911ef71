"""API helper utilities."""
from api.helpers.errors import service_errors

__all__ = ["service_errors"]
