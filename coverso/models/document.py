from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class NewDocument(BaseModel):
    """Payload for creating a generated document."""
    model_config = ConfigDict(frozen=True)

    file_name: str
    content: str
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    key_focus_points: List[str] = []


class GeneratedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    file_name: str
    content: str
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    key_focus_points: List[str] = []
    created_at: datetime
    updated_at: datetime
