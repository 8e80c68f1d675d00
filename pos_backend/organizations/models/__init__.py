# organizations/models/__init__.py

from .branch import Branch
from .organization import Organization

__all__ = ["Organization", "Branch"]
