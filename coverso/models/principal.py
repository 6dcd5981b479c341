from typing import Optional
from pydantic import BaseModel, ConfigDict


class Principal(BaseModel):
    """Authenticated identity as reported by the identity provider."""
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
