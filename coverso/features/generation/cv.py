"""CV artifact decoding: plain text or a base64 data URI (PDF or text/*)."""

import base64
import binascii
import io

import PyPDF2
from PyPDF2.errors import PdfReadError

from coverso.core.errors import ValidationError


DATA_URI_PREFIX = "data:"


def _split_data_uri(value: str):
    header, sep, payload = value.partition(",")
    if not sep or ";base64" not in header:
        raise ValidationError("CV must be a base64 data URI (data:<mime>;base64,...)")
    mime = header[len(DATA_URI_PREFIX):].split(";", 1)[0].strip().lower()
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Could not decode the uploaded CV")
    return mime, raw


def _pdf_text(raw: bytes) -> str:
    try:
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(raw))
        extracted_pages = [page.extract_text() or "" for page in pdf_reader.pages]
    except PdfReadError:
        raise ValidationError("Could not read the uploaded PDF")
    return "\n".join(extracted_pages).strip()


def extract_cv_text(cv: str) -> str:
    """
    Text content of a CV artifact.

    Raises:
        ValidationError: Undecodable payload, unsupported type, or no text
    """
    value = (cv or "").strip()
    if not value.startswith(DATA_URI_PREFIX):
        text = value
    else:
        mime, raw = _split_data_uri(value)
        if mime == "application/pdf":
            text = _pdf_text(raw)
        elif mime.startswith("text/"):
            try:
                text = raw.decode("utf-8").strip()
            except UnicodeDecodeError:
                raise ValidationError("Could not decode the uploaded CV")
        else:
            raise ValidationError("Unsupported CV file type. Upload a PDF or text file.")

    if not text:
        raise ValidationError("Could not read any text from the uploaded CV")
    return text
