"""
HTTP relay between the desktop client and the generative-AI provider.

    POST /api/gemini  {"action": "analyzeCase" | "semanticSearch", "payload": {...}}

200 with the provider's JSON (or null), 400 for an unknown action or a bad
payload, 405 for other methods, 500 {"error": "Gemini error"} when the
provider fails.
"""
import argparse
import logging
from typing import Any, Dict, Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from logic.ai_client import ACTION_ANALYZE, ACTION_SEMANTIC
from logic.gemini import GeminiProvider
from logic.settings import Settings, configure_logging

logger = logging.getLogger(__name__)

RELAY_PATH = "/api/gemini"


def dispatch(provider, action: Any, payload: Any) -> Tuple[int, Any]:
    if action not in (ACTION_ANALYZE, ACTION_SEMANTIC):
        return 400, {"error": "Unknown action"}
    if not isinstance(payload, dict):
        return 400, {"error": "Invalid payload"}

    try:
        if action == ACTION_ANALYZE:
            args = (payload["clinicalNote"],)
        else:
            args = (payload["query"], payload["casesSummary"])
    except KeyError:
        return 400, {"error": "Invalid payload"}
    if not isinstance(args[0], str) or (len(args) > 1 and not isinstance(args[1], list)):
        return 400, {"error": "Invalid payload"}

    try:
        if action == ACTION_ANALYZE:
            return 200, provider.analyze_case(*args)
        return 200, provider.semantic_search(*args)
    except Exception:
        logger.exception("[Relay] %s failed", action)
        return 500, {"error": "Gemini error"}


def create_app(provider) -> FastAPI:
    app = FastAPI(title="RadioArchive AI relay")

    @app.post(RELAY_PATH)
    async def relay(request: Request):
        try:
            body: Dict[str, Any] = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
        if not isinstance(body, dict):
            body = {}
        status, content = dispatch(provider, body.get("action"), body.get("payload"))
        return JSONResponse(status_code=status, content=content)

    @app.api_route(RELAY_PATH, methods=["GET", "PUT", "PATCH", "DELETE"])
    async def wrong_method():
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})

    return app


def main():
    parser = argparse.ArgumentParser(description="RadioArchive AI relay")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings)
    provider = GeminiProvider(settings.gemini_api_key, model=settings.gemini_model)

    logger.info("[Relay] Serving %s on %s:%d", RELAY_PATH, args.host, args.port)
    uvicorn.run(create_app(provider), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
