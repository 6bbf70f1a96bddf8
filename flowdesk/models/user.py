"""Authenticated caller identity."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """Identity extracted from a hosted-auth access token."""

    id: UUID
    email: Optional[str] = None
    role: Optional[str] = None
