from dataclasses import dataclass
from typing import Optional

from utils.errors import NotAuthenticated


@dataclass(frozen=True)
class SessionContext:
    """The authenticated principal, passed explicitly to services"""
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def is_vendor(self) -> bool:
        return self.role == "vendor"

    @property
    def is_supplier(self) -> bool:
        return self.role == "supplier"


def require_session(session: Optional[SessionContext]) -> SessionContext:
    if session is None or not session.user_id:
        raise NotAuthenticated()
    return session
