"""
Best-effort AI assistance: case classification and semantic ranking.

Every failure (network, HTTP error, provider error, malformed JSON) is logged
and turned into None; callers treat None as "no suggestion".
"""
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from model.models import Case, Classification, SemanticMatch, SemanticResult

logger = logging.getLogger(__name__)

ACTION_ANALYZE = "analyzeCase"
ACTION_SEMANTIC = "semanticSearch"


class AIUnavailable(RuntimeError):
    pass


# -----------------------------------------------------------------------------
# Transports
# -----------------------------------------------------------------------------

class RelayTransport:
    """POSTs {action, payload} to the relay endpoint."""

    def __init__(self, url: str, timeout: Optional[float] = None, session=None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def call(self, action: str, payload: Dict[str, Any]) -> Any:
        resp = self.session.post(
            self.url,
            json={"action": action, "payload": payload},
            timeout=self.timeout,
        )
        if not resp.ok:
            try:
                detail = resp.json().get("error")
            except (ValueError, AttributeError):
                detail = resp.text[:200]
            raise AIUnavailable(f"relay answered {resp.status_code}: {detail}")
        return resp.json()


class DirectTransport:
    """Calls the provider in-process (no relay)."""

    def __init__(self, provider):
        self.provider = provider

    def call(self, action: str, payload: Dict[str, Any]) -> Any:
        if action == ACTION_ANALYZE:
            return self.provider.analyze_case(payload["clinicalNote"])
        if action == ACTION_SEMANTIC:
            return self.provider.semantic_search(payload["query"], payload["casesSummary"])
        raise AIUnavailable(f"Unknown action {action}")


class NullTransport:
    def call(self, action: str, payload: Dict[str, Any]) -> Any:
        raise AIUnavailable("AI assistance is not configured (set AI_RELAY_URL or GEMINI_API_KEY)")


# -----------------------------------------------------------------------------
# Result parsing
# -----------------------------------------------------------------------------

def parse_classification(raw: Any) -> Optional[Classification]:
    if not isinstance(raw, dict):
        return None
    fields = [raw.get(k) for k in ("specialty", "difficulty", "summary")]
    if not all(isinstance(v, str) for v in fields):
        return None
    return Classification(*fields)


def parse_semantic_result(raw: Any) -> Optional[SemanticResult]:
    if not isinstance(raw, dict):
        return None
    matches = raw.get("matches")
    keywords = raw.get("suggestedKeywords")
    if not isinstance(matches, list) or not isinstance(keywords, list):
        return None
    parsed: List[SemanticMatch] = []
    for m in matches:
        if not isinstance(m, dict) or not isinstance(m.get("id"), str):
            return None
        reason = m.get("reason")
        parsed.append(SemanticMatch(id=m["id"], reason=reason if isinstance(reason, str) else ""))
    return SemanticResult(
        matches=parsed,
        suggested_keywords=[k for k in keywords if isinstance(k, str)],
    )


def cases_summary(cases: Sequence[Any]) -> List[Dict[str, str]]:
    out = []
    for c in cases:
        if isinstance(c, Case):
            out.append({"id": c.id, "diagnosis": c.diagnosis, "note": c.clinical_note})
        else:
            out.append({"id": str(c["id"]), "diagnosis": str(c.get("diagnosis", "")),
                        "note": str(c.get("note", ""))})
    return out


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------

class AIProxyClient:
    def __init__(self, transport=None):
        self.transport = transport or NullTransport()

    @property
    def available(self) -> bool:
        return not isinstance(self.transport, NullTransport)

    def classify(self, clinical_note: str) -> Optional[Classification]:
        if not (clinical_note or "").strip():
            return None
        try:
            raw = self.transport.call(ACTION_ANALYZE, {"clinicalNote": clinical_note})
        except Exception as e:
            logger.warning("[AI] Case analysis failed: %s", e)
            return None
        result = parse_classification(raw)
        if result is None and raw is not None:
            logger.warning("[AI] Malformed analysis result: %r", raw)
        return result

    def rank(self, query: str, cases: Sequence[Any]) -> Optional[SemanticResult]:
        if not cases:
            return None
        payload = {"query": query, "casesSummary": cases_summary(cases)}
        try:
            raw = self.transport.call(ACTION_SEMANTIC, payload)
        except Exception as e:
            logger.warning("[AI] Semantic search failed: %s", e)
            return None
        result = parse_semantic_result(raw)
        if result is None and raw is not None:
            logger.warning("[AI] Malformed semantic search result: %r", raw)
        return result


def build_ai_client(settings) -> AIProxyClient:
    if settings.relay_url:
        logger.info("[AI] Using relay at %s", settings.relay_url)
        return AIProxyClient(RelayTransport(settings.relay_url, timeout=settings.relay_timeout))
    if settings.gemini_api_key:
        from logic.gemini import GeminiProvider
        logger.info("[AI] Calling %s directly", settings.gemini_model)
        return AIProxyClient(DirectTransport(GeminiProvider(settings.gemini_api_key, settings.gemini_model)))
    logger.info("[AI] No relay URL or API key, AI assistance disabled")
    return AIProxyClient()


# -----------------------------------------------------------------------------
# Single-outstanding-call guard
# -----------------------------------------------------------------------------

class CallSite:
    """
    Runs one AI call at a time off the UI loop.

    `schedule` hands a callback back to the UI loop (it may be called from a
    worker thread). start() refuses while a call is outstanding; `busy` and
    `on_done` are only touched on the UI loop.
    """

    def __init__(self, schedule: Callable[[Callable[[], None]], None],
                 executor: Optional[Executor] = None):
        self._schedule = schedule
        self._executor = executor or _shared_executor()
        self.busy = False

    def start(self, fn: Callable[..., Any], *args, on_done: Callable[[Any], None]) -> bool:
        if self.busy:
            return False
        self.busy = True
        future = self._executor.submit(fn, *args)
        future.add_done_callback(lambda f: self._schedule(lambda: self._finish(f, on_done)))
        return True

    def _finish(self, future: Future, on_done: Callable[[Any], None]) -> None:
        self.busy = False
        try:
            result = future.result()
        except Exception:
            logger.exception("[AI] Background call failed")
            result = None
        on_done(result)


_EXECUTOR: Optional[ThreadPoolExecutor] = None


def _shared_executor() -> ThreadPoolExecutor:
    global _EXECUTOR
    if _EXECUTOR is None:
        _EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="ai-call")
    return _EXECUTOR
