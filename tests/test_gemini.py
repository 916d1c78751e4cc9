"""
Tests for the Gemini provider with a stand-in client.
"""
import json
from types import SimpleNamespace

import pytest

from logic.gemini import (
    CLASSIFICATION_SCHEMA,
    SEMANTIC_SCHEMA,
    GeminiProvider,
    semantic_prompt,
)


class FakeModels:
    def __init__(self, text):
        self.text = text
        self.requests = []

    def generate_content(self, model, contents, config):
        self.requests.append(SimpleNamespace(model=model, contents=contents, config=config))
        if isinstance(self.text, Exception):
            raise self.text
        return SimpleNamespace(text=self.text)


def provider_answering(text):
    models = FakeModels(text)
    return GeminiProvider(api_key=None, model="test-model", client=SimpleNamespace(models=models)), models


def test_analyze_case_requests_structured_json():
    answer = {"specialty": "Neuroradiologie", "difficulty": "Avancé", "summary": "Gliome"}
    provider, models = provider_answering(json.dumps(answer))
    assert provider.analyze_case("céphalées") == answer
    req = models.requests[0]
    assert req.model == "test-model"
    assert "céphalées" in req.contents
    assert req.config.response_mime_type == "application/json"
    assert req.config.response_schema == CLASSIFICATION_SCHEMA


def test_semantic_search_embeds_cases():
    provider, models = provider_answering('{"matches": [], "suggestedKeywords": ["IRM"]}')
    result = provider.semantic_search("tumeur", [{"id": "a", "diagnosis": "Gliome", "note": ""}])
    assert result == {"matches": [], "suggestedKeywords": ["IRM"]}
    assert '"id": "a"' in models.requests[0].contents
    assert models.requests[0].config.response_schema == SEMANTIC_SCHEMA


def test_empty_text_is_none():
    provider, _ = provider_answering("")
    assert provider.analyze_case("x") is None


def test_errors_propagate():
    provider, _ = provider_answering(RuntimeError("quota"))
    with pytest.raises(RuntimeError):
        provider.analyze_case("x")


def test_missing_key_without_client():
    with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
        GeminiProvider(api_key=None)


def test_prompt_asks_for_top_three():
    assert "3 cas" in semantic_prompt("q", [])
