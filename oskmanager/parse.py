"""
Parsing (pasted free text -> structured student fields).

Staff often get student details as an unstructured message (e-mail, SMS).
This module sends the text to the Gemini `generateContent` REST endpoint with
a JSON response schema and maps the answer onto the student form fields.

The service is an opaque boundary: text in, fields out, or ParseServiceError.
Fields the service could not find come back as empty strings.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Optional

import requests

from oskmanager import config
from oskmanager.errors import ParseServiceError

logger = logging.getLogger(__name__)


STUDENT_FIELDS = ("name", "pesel", "pkk", "phone", "email", "address")

_FIELD_DESCRIPTIONS = {
    "name": "Imię i nazwisko kursanta.",
    "pesel": "Numer PESEL.",
    "pkk": "Numer PKK (Profil Kandydata na Kierowcę).",
    "phone": "Numer telefonu.",
    "email": "Adres e-mail.",
    "address": "Pełen adres zamieszkania.",
}

PROMPT = (
    "Przeanalizuj poniższy tekst i wyodrębnij z niego informacje o kursancie. "
    "Zwróć dane w formacie JSON. Tekst jest w języku polskim. "
    "Zidentyfikuj imię i nazwisko, numer PESEL, numer PKK, numer telefonu, adres e-mail i adres. "
    "Jeśli brakuje którejś informacji, zwróć dla niej pusty ciąg znaków.\n\n"
    'Tekst: "{text}"'
)


def _response_schema() -> Dict:
    return {
        "type": "OBJECT",
        "properties": {
            name: {"type": "STRING", "description": desc} for name, desc in _FIELD_DESCRIPTIONS.items()
        },
    }


class StudentTextParser:
    """
    Thin HTTP client for the parsing service.

    A requests.Session can be injected (tests, connection reuse).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else config.GEMINI_API_KEY
        self.model = model or config.GEMINI_MODEL
        self.api_base = (api_base or config.GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else config.PARSE_TIMEOUT
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def build_payload(self, text: str) -> Dict:
        return {
            "contents": [{"parts": [{"text": PROMPT.format(text=text)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": _response_schema(),
            },
        }

    def parse(self, text: str) -> Dict[str, str]:
        """
        Extract student fields from `text`.

        Raises ParseServiceError on missing configuration, HTTP/network errors
        or an answer that is not the expected JSON object.
        """
        if not self.api_key:
            raise ParseServiceError("Parsing service is not configured (set GEMINI_API_KEY).")

        try:
            resp = self.session.post(
                self.url,
                params={"key": self.api_key},
                json=self.build_payload(text),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Parsing service request failed: {e}")
            raise ParseServiceError(f"Parsing service request failed: {e}") from e
        except ValueError as e:
            raise ParseServiceError("Parsing service returned a non-JSON response.") from e

        try:
            answer = body["candidates"][0]["content"]["parts"][0]["text"]
            parsed = json.loads(answer)
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            logger.error(f"Unexpected parsing service answer: {body!r}")
            raise ParseServiceError("Parsing service returned an unexpected answer.") from e

        if not isinstance(parsed, dict):
            raise ParseServiceError("Parsing service returned an unexpected answer.")

        fields = {name: str(parsed.get(name) or "") for name in STUDENT_FIELDS}
        found = ", ".join(k for k, v in fields.items() if v) or "none"
        logger.info(f"Parsed student fields: {found}")
        return fields
