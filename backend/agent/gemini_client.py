from __future__ import annotations
from typing import Optional, Sequence
import asyncio, time

import google.generativeai as genai

from services.context_builder import Part
from services.errors import ConfigurationError, InvocationError
from services.logger import get_logger

log = get_logger(__name__)


def get_gemini(api_key: str, model_name: str = "gemini-2.0-flash-lite"):
    if not api_key:
        raise ConfigurationError("GOOGLE_API_KEY environment variable is not set")
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(model_name=model_name)


class GeminiInvoker:
    """
    Payload in, raw text out. Provider details stop here: callers only ever
    see a string or an InvocationError. No retries and no timeout of our own.
    """
    def __init__(self, api_key: str, model_name: str):
        self.api_key = api_key
        self.model_name = model_name
        self.model = None  # lazy init

    def _ensure_model(self):
        if self.model is None:
            self.model = get_gemini(self.api_key, self.model_name)

    def invoke(self, payload: Sequence[Part]) -> str:
        self._ensure_model()
        contents = [p.to_gemini() for p in payload]
        t0 = time.perf_counter()
        try:
            resp = self.model.generate_content(contents)
            text: Optional[str] = resp.text
        except Exception as e:
            log.error("Gemini call failed after %.0f ms: %s", (time.perf_counter() - t0) * 1000, e)
            raise InvocationError(str(e) or e.__class__.__name__) from e
        log.info("Gemini answered %d parts in %.0f ms", len(contents), (time.perf_counter() - t0) * 1000)
        return text or ""

    async def ainvoke(self, payload: Sequence[Part]) -> str:
        return await asyncio.to_thread(self.invoke, payload)
