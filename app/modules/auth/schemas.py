from pydantic import BaseModel
from typing import Optional
from uuid import UUID


class Actor(BaseModel):
    """Quién ejecuta la mutación; se estampa en cada entrada del historial."""
    user_id: Optional[UUID] = None
    user_name: str


class AuthContext(BaseModel):
    user_id: Optional[UUID] = None
    user_name: str
    tenant_id: UUID

    @property
    def actor(self) -> Actor:
        return Actor(user_id=self.user_id, user_name=self.user_name)
