"""Контекст текущего пользователя, передаваемый в сервисы явно."""

from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    """Роль пользователя."""
    ADMIN = "ADMIN"
    USER = "USER"
    VIEWER = "VIEWER"


@dataclass(frozen=True)
class SessionContext:
    """Кто выполняет операцию."""

    user_id: str
    email: str = ""
    name: str = ""
    role: UserRole = UserRole.USER

    @property
    def actor(self) -> str:
        """Значение для полей created_by/approved_by."""
        return self.email or self.user_id

    @property
    def can_write(self) -> bool:
        return self.role != UserRole.VIEWER
