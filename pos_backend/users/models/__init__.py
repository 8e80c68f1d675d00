# users/models/__init__.py

from .user import User, UserManager

__all__ = ["User", "UserManager"]
