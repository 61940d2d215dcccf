"""Current-actor identity."""

from typing import List

from pydantic import BaseModel, Field


class Actor(BaseModel):
    """The back end user performing a versioned operation."""

    username: str = ""
    user_id: int = 0
    is_admin: bool = False
    modules: List[str] = Field(default_factory=list)

    def has_module(self, module: str) -> bool:
        """Admins can access every module."""
        return self.is_admin or module in self.modules


ANONYMOUS = Actor()
