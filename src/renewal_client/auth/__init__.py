"""Authentication strategies applied before each request is sent."""
from .base import AuthStrategy
from .bearer import StoredBearerAuth

__all__ = ["AuthStrategy", "StoredBearerAuth"]
