from pydantic import BaseModel, Field
from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    CAJERO = "cajero"
    SUPERVISOR = "supervisor"


ALL_ROLES = [UserRole.ADMIN.value, UserRole.CAJERO.value, UserRole.SUPERVISOR.value]


# Auth context schemas
class AuthContext(BaseModel):
    """Identidad del actor, necesaria para atribuir ventas y turnos."""
    user_id: str = Field(..., min_length=1)
    user_name: str = Field(..., min_length=1)
    user_role: UserRole

    @property
    def is_supervisor(self) -> bool:
        return self.user_role in (UserRole.SUPERVISOR, UserRole.ADMIN)
