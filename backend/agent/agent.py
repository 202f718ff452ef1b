from __future__ import annotations
from typing import Optional, Sequence, Union

from agent.gemini_client import GeminiInvoker
from agent.prompt import SYSTEM_PROMPT
from schemas import AssistantTurn, MatchResponse, UserTurn
from services.catalog_loader import CatalogLoader
from services.config import Settings
from services.context_builder import UploadedImage, build_request
from services.errors import ConfigurationError, InputError
from services.logger import get_logger
from services.response_parser import normalize

log = get_logger(__name__)


class MatchAgent:
    """
    One conversational turn against the catalog:
    validate input, assemble the grounded prompt, ask the model once,
    and hand back the normalized match list.
    """
    def __init__(self, loader: CatalogLoader, settings: Settings, invoker=None):
        self.loader = loader
        self.settings = settings
        self.invoker = invoker  # lazy init unless injected

    def _ensure_invoker(self):
        if self.invoker is None:
            if not self.settings.google_api_key:
                raise ConfigurationError("GOOGLE_API_KEY environment variable is not set")
            self.invoker = GeminiInvoker(self.settings.google_api_key, self.settings.model_name)
        return self.invoker

    async def analyze(
        self,
        message: Optional[str] = None,
        image: Optional[UploadedImage] = None,
        history: Sequence[Union[UserTurn, AssistantTurn]] = (),
    ) -> MatchResponse:
        if not message and image is None:
            raise InputError("Please provide a message or an image")

        invoker = self._ensure_invoker()

        catalog = self.loader.load_context()
        if not catalog:
            raise ConfigurationError("No catalog images found. Please add images to the catalog.")

        parts = build_request(SYSTEM_PROMPT, catalog, history, new_text=message, new_image=image)
        log.debug("Prompt has %d parts (%d history turns)", len(parts), len(history))

        raw = await invoker.ainvoke(parts)
        result = normalize(raw, self.loader.load_metadata())
        log.info("Returning %d matches", len(result.matches))
        return result
