"""
Gemini-backed waste classifier

Sends a photo to Google Gemini and asks for a structured JSON verdict on
whether waste is present, how confident the model is, and which category the
waste belongs to.
"""

import asyncio
import logging
from typing import Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel, Field, ValidationError

from wastewatch.classification.client import (
    ClassificationClient,
    ClassificationResult,
    MockClassificationClient,
)
from wastewatch.core.config import settings
from wastewatch.core.constants import WasteType
from wastewatch.core.exceptions import ClassificationUnavailable

logger = logging.getLogger(__name__)


ANALYSIS_PROMPT = (
    "You are an environmental waste classifier. Look at the photo and decide "
    "whether it shows discarded waste or litter. Respond with ONLY a JSON "
    "object with these keys: "
    '"isWastePresent" (boolean), '
    '"confidenceScore" (number from 0 to 100), '
    '"wasteType" (one of: ' + ", ".join(f'"{t.value}"' for t in WasteType) + "). "
    "If no waste is visible, set isWastePresent to false and omit wasteType."
)


class WasteAnalysis(BaseModel):
    """Response schema requested from the model."""
    isWastePresent: bool
    confidenceScore: float = Field(ge=0, le=100)
    wasteType: Optional[str] = None


class GeminiClassificationClient(ClassificationClient):
    """
    Classification client using the Google Gen AI SDK.

    Usage:
        client = GeminiClassificationClient(api_key="your_key")
        result = await client.classify(image_bytes, "image/jpeg")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name
            timeout_seconds: Per-request timeout
        """
        self.api_key = api_key or settings.gemini_api_key
        if not self.api_key:
            raise ValueError("Gemini API key is required")

        self.model = model or settings.gemini_model
        self.timeout_seconds = timeout_seconds or settings.classification_timeout_seconds
        self._client = genai.Client(api_key=self.api_key)

    async def classify(
        self,
        image_bytes: bytes,
        media_type: str
    ) -> ClassificationResult:
        """
        Classify a waste photo.

        Raises:
            ClassificationUnavailable: On timeout, API error, or malformed reply
        """
        request = self._client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=media_type),
                ANALYSIS_PROMPT,
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=WasteAnalysis,
                temperature=0.1,
            ),
        )

        try:
            response = await asyncio.wait_for(request, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.warning(f"Gemini classification timed out after {self.timeout_seconds}s")
            raise ClassificationUnavailable("Classification timed out") from e
        except (genai_errors.APIError, httpx.HTTPError) as e:
            logger.error(f"Gemini classification failed: {e}")
            raise ClassificationUnavailable(str(e)) from e

        if not response.text:
            logger.error("Empty response from Gemini")
            raise ClassificationUnavailable("Empty response from classification service")

        try:
            analysis = WasteAnalysis.model_validate_json(response.text)
        except ValidationError as e:
            logger.error(f"Failed to parse Gemini response: {response.text}")
            raise ClassificationUnavailable("Malformed classification response") from e

        result = ClassificationResult.from_dict(analysis.model_dump())
        logger.info(f"Classification result: {result.to_dict()}")
        return result


def get_classification_client() -> ClassificationClient:
    """
    Get classification client instance.

    Returns mock client if Gemini is not configured.
    """
    if not settings.gemini_api_key:
        logger.warning("Gemini not configured, using mock classification client")
        return MockClassificationClient()

    return GeminiClassificationClient()
