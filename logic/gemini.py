"""
Generative-AI provider calls with structured JSON output.

Both calls return the parsed JSON (or None when the model sent no text) and
let every provider/transport exception propagate; callers decide how a
failure is surfaced.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-flash-preview"
SEMANTIC_TOP_K = 3

CLASSIFICATION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "specialty": types.Schema(type=types.Type.STRING,
                                  description="La spécialité radiologique"),
        "difficulty": types.Schema(type=types.Type.STRING,
                                   description="Le niveau de difficulté suggéré"),
        "summary": types.Schema(type=types.Type.STRING,
                                description="Un court résumé professionnel du cas."),
    },
    required=["specialty", "difficulty", "summary"],
)

SEMANTIC_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "matches": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "id": types.Schema(type=types.Type.STRING),
                    "reason": types.Schema(type=types.Type.STRING,
                                           description="Pourquoi ce cas est pertinent ?"),
                },
                required=["id", "reason"],
            ),
        ),
        "suggestedKeywords": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
            description="Mots-clés médicaux reliés à la recherche.",
        ),
    },
    required=["matches", "suggestedKeywords"],
)


def classification_prompt(clinical_note: str) -> str:
    return (
        "Analyse la note clinique suivante en radiologie et suggère la spécialité "
        "et le niveau de difficulté.\n"
        f'Note clinique: "{clinical_note}"'
    )


def semantic_prompt(query: str, cases_summary: List[Dict[str, Any]]) -> str:
    return (
        f'Tu es un expert en radiologie. Analyse la requête de l\'utilisateur: "{query}".\n'
        f"Parmi la liste de cas suivante, identifie les {SEMANTIC_TOP_K} cas les plus "
        "pertinents sémantiquement, même si les mots exacts ne correspondent pas.\n"
        f"Liste des cas: {json.dumps(cases_summary, ensure_ascii=False)}"
    )


class GeminiProvider:
    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, client=None):
        if client is None and not api_key:
            raise RuntimeError("Missing GEMINI_API_KEY in environment or .env file")
        self.model = model
        self.client = client if client is not None else genai.Client(api_key=api_key)

    def _generate_json(self, prompt: str, schema: types.Schema) -> Optional[Any]:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        text = response.text
        if not text:
            logger.info("[Gemini] Empty response from %s", self.model)
            return None
        return json.loads(text.strip())

    def analyze_case(self, clinical_note: str) -> Optional[Dict[str, Any]]:
        return self._generate_json(classification_prompt(clinical_note), CLASSIFICATION_SCHEMA)

    def semantic_search(self, query: str, cases_summary: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return self._generate_json(semantic_prompt(query, cases_summary), SEMANTIC_SCHEMA)
