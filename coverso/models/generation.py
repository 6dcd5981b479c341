from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Cover letter request as submitted from the generate form."""
    model_config = ConfigDict(frozen=True)

    full_name: Optional[str] = None
    user_location: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    linkedin_url: Optional[str] = None
    cv: Optional[str] = Field(None, description="CV text or data:<mime>;base64,... URI")
    job_description: Optional[str] = None
    supporting_documents: List[str] = []
    portfolio_urls: List[str] = []
    tone: Optional[str] = None
    must_have_info: Optional[str] = None
    page_length: Optional[float] = None


class GenerationInput(GenerationRequest):
    """Validated request with the CV and supporting documents decoded to text."""
    cv_text: str


class GenerationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    cover_letter: str
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    key_focus_points: List[str] = []
