"""Structured extraction orchestrator.

``ExtractHandler.extract`` captures the page as text annotations, asks the
configured backend for schema-shaped output plus a ``completed`` flag, and
returns the data only when the model reports the extraction as complete.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from pageextract.browser.dom_extractor import DomAnnotationExtractor
from pageextract.exceptions import ExtractionIncompleteError
from pageextract.extraction.prompts import build_extraction_schema, build_messages
from pageextract.llm.base import LLMClient
from pageextract.llm.factory import LLMClientFactory
from pageextract.models.completion import CompletionRequest, ResponseSchema
from pageextract.models.extraction import ExtractionRequest

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

EXTRACTION_SCHEMA_NAME = "Extraction"


class ExtractHandler:
    """Run one instruction-driven extraction against the current page.

    Args:
        extractor: Produces the page text fed to the model.
        llm_factory: Resolves model names to backend adapters.
        default_model_name: Model used when the request names none.
        temperature: Sampling temperature for extraction calls.
        max_tokens: Output token cap; ``None`` leaves the backend default.
    """

    def __init__(
        self,
        extractor: DomAnnotationExtractor,
        llm_factory: LLMClientFactory,
        *,
        default_model_name: str,
        temperature: float = 0.1,
        max_tokens: int | None = None,
    ) -> None:
        self.extractor = extractor
        self.llm_factory = llm_factory
        self.default_model_name = default_model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, page: Page, llm_factory: LLMClientFactory | None = None) -> "ExtractHandler":
        """Create a handler for *page* from settings."""
        from pageextract.browser.page_bridge import PlaywrightPageBridge
        from pageextract.settings import get_settings

        s = get_settings()
        extractor = DomAnnotationExtractor(
            PlaywrightPageBridge(page),
            debug_dom=s.dom.debug_dom,
            settle_timeout_ms=s.dom.settle_timeout_ms,
        )
        return cls(
            extractor,
            llm_factory or LLMClientFactory.from_settings(),
            default_model_name=s.llm.default_model,
            temperature=s.llm.temperature,
            max_tokens=s.llm.max_tokens,
        )

    async def extract(self, request: ExtractionRequest) -> dict[str, Any]:
        """Extract data shaped like ``request.schema`` from the current page.

        When debug instrumentation is enabled it spans the capture, the model
        call and schema validation, and is torn down once on every exit path.

        Returns:
            The validated data as a plain ``dict``, without the ``completed`` flag.

        Raises:
            ExtractionIncompleteError: The model reported ``completed=false``.
            pydantic.ValidationError: The returned data does not fit the schema.
        """
        model_name = request.model_name or self.default_model_name
        context = {
            "instruction": request.instruction,
            "modelName": model_name,
            "requestId": request.request_id,
        }
        logger.info("starting extraction", extra={"category": "extraction", "auxiliary": context})

        # Resolve the backend before the page is touched
        try:
            client = self.llm_factory.get_client(model_name)
        except Exception:
            logger.exception("could not resolve LLM client", extra={"category": "extraction", "auxiliary": context})
            raise

        async with self.extractor.debug_session():
            return await self._extract_with(client, request, context)

    async def _extract_with(self, client: LLMClient, request: ExtractionRequest, context: dict[str, Any]) -> dict[str, Any]:
        try:
            dom_elements = await self.extractor.capture(request.dom_settle_timeout_ms)
        except Exception:
            logger.exception("page capture failed", extra={"category": "extraction", "auxiliary": context})
            raise

        completion_request = CompletionRequest(
            model=context["modelName"],
            messages=build_messages(request.instruction, dom_elements, request.prior_content),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_schema=ResponseSchema(
                name=EXTRACTION_SCHEMA_NAME,
                schema=build_extraction_schema(request.schema),
            ),
            request_id=request.request_id,
        )

        try:
            response = await client.complete(completion_request)
        except Exception:
            logger.exception("extraction call failed", extra={"category": "extraction", "auxiliary": context})
            raise

        output = dict(response)
        completed = bool(output.pop("completed", False))
        logger.info(
            "received extraction response",
            extra={"category": "extraction", "auxiliary": {**context, "extractionResponse": response}},
        )

        if not completed:
            logger.error(
                "extraction not completed",
                extra={"category": "extraction", "auxiliary": {**context, "extractionResponse": response}},
            )
            raise ExtractionIncompleteError(request.instruction, output)

        try:
            validated = request.schema.model_validate(output)
        except ValidationError:
            logger.exception(
                "extraction response failed schema validation",
                extra={"category": "extraction", "auxiliary": {**context, "extractionResponse": response}},
            )
            raise

        logger.info("got response", extra={"category": "extraction", "auxiliary": context})
        return validated.model_dump()
