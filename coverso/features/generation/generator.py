"""
Document generators.

DocumentGenerator is the black box the generation service calls. The Groq
implementation summarises the CV first, then asks for the letter and the
job analysis as one JSON object.
"""

import json
import logging
import os
from typing import Optional, Protocol

import groq

from coverso.core.config import settings
from coverso.features.generation.prompts import (
    COVER_LETTER_SYSTEM,
    CV_SUMMARY_SYSTEM,
    build_cover_letter_prompt,
)
from coverso.models.generation import GenerationInput, GenerationResult


logger = logging.getLogger("coverso")


class GeneratorError(Exception):
    """The generator could not produce a usable result."""
    pass


class DocumentGenerator(Protocol):
    def generate(self, request: GenerationInput) -> GenerationResult:
        ...


class GroqGenerator:

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.api_key = api_key or os.getenv("GROQ_API_KEY") or settings.GROQ_API_KEY
        self.model = model or settings.GROQ_MODEL
        if client is None:
            if not self.api_key:
                raise GeneratorError("GROQ_API_KEY not configured")
            client = groq.Groq(api_key=self.api_key)
        self.client = client

    def _complete(self, system: str, user: str, json_mode: bool = False) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=0.7,
                **kwargs,
            )
        except groq.GroqError as e:
            raise GeneratorError(f"Groq request failed: {e}")
        return (response.choices[0].message.content or "").strip()

    def summarize_cv(self, cv_text: str) -> str:
        summary = self._complete(CV_SUMMARY_SYSTEM, cv_text)
        if not summary:
            raise GeneratorError("Empty CV summary")
        return summary

    def generate(self, request: GenerationInput) -> GenerationResult:
        cv_summary = self.summarize_cv(request.cv_text)
        content = self._complete(
            COVER_LETTER_SYSTEM,
            build_cover_letter_prompt(request, cv_summary),
            json_mode=True,
        )
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise GeneratorError(f"Generator returned invalid JSON: {e}")

        cover_letter = (data.get("coverLetter") or "").strip()
        if not cover_letter:
            raise GeneratorError("Generator returned no cover letter")

        return GenerationResult(
            cover_letter=cover_letter,
            job_title=data.get("jobTitle"),
            company_name=data.get("companyName"),
            key_focus_points=[str(p) for p in data.get("keyFocusPoints") or []],
        )


def get_generator() -> Optional[DocumentGenerator]:
    """Groq generator if configured, else None."""
    try:
        return GroqGenerator()
    except GeneratorError:
        return None
