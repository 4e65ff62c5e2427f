"""
Caller identity for chat requests
"""
from typing import Optional, Protocol

from ...utils.generate_key import generate_user_id


class IdentityProvider(Protocol):
    def get_user_id(self) -> str:
        ...


class SessionIdentityProvider:
    """Generates one user id on first use and returns it for the lifetime of the instance"""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id

    def get_user_id(self) -> str:
        if self._user_id is None:
            self._user_id = generate_user_id()
        return self._user_id
