"""
Request Context

The acting identity is passed explicitly into every mutating operation.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class Actor(BaseModel):
    """Identity performing an operation, scoped to one tenant"""
    user_id: UUID
    tenant_id: UUID
    name: Optional[str] = None


__all__ = ["Actor"]
