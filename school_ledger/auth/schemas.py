from typing import Dict

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Caller identity as asserted by the identity service's access token."""

    id: str
    role: str
    permissions: Dict[str, Dict[str, bool]] = {}
