"""
Classification client contract for waste photos

Defines the result record returned by the external image-classification
service, the image payload handed to it, and the async client interface the
submission and verification flows depend on.
"""

import asyncio
import base64
import binascii
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Optional

import httpx

from wastewatch.core.config import settings
from wastewatch.core.constants import (
    CONFIDENCE_RANGE,
    MIN_ACCEPTANCE_CONFIDENCE,
    WasteType,
)

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ClassificationResult:
    """Judgment of whether and what waste appears in an image."""
    is_waste_present: bool
    confidence_score: float
    waste_type: Optional[WasteType] = None

    @property
    def is_acceptable(self) -> bool:
        """Whether the result may be used as the automatic waste type."""
        return (
            self.is_waste_present and
            self.confidence_score >= MIN_ACCEPTANCE_CONFIDENCE
        )

    @classmethod
    def unavailable(cls) -> "ClassificationResult":
        """Result reported when no image could be classified."""
        return cls(is_waste_present=False, confidence_score=0.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassificationResult":
        """
        Build a result from the service's JSON shape.

        Accepts camelCase (isWastePresent, confidenceScore, wasteType) as sent
        by the service and snake_case as produced by to_dict(). Confidence is
        clamped into [0, 100]; unknown labels map to Other.
        """
        present = data.get("isWastePresent", data.get("is_waste_present", False))
        score = data.get("confidenceScore", data.get("confidence_score", 0.0))
        label = data.get("wasteType", data.get("waste_type"))

        low, high = CONFIDENCE_RANGE
        confidence = min(high, max(low, float(score or 0.0)))

        return cls(
            is_waste_present=bool(present),
            confidence_score=confidence,
            waste_type=WasteType.parse(label) if label else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "is_waste_present": self.is_waste_present,
            "confidence_score": self.confidence_score,
            "waste_type": self.waste_type.value if self.waste_type else None,
        }


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus media type, as consumed by the classifier."""
    data: bytes
    media_type: str = DEFAULT_MEDIA_TYPE

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        """Encode as a data: URL usable as a display preview."""
        return f"data:{self.media_type};base64,{self.to_base64()}"

    @classmethod
    def from_data_url(cls, url: str) -> "ImagePayload":
        """
        Decode a base64 data: URL.

        Raises:
            ValueError: If the URL is not a base64 data: URL
        """
        if not url.startswith("data:") or "," not in url:
            raise ValueError("Not a data URL")

        header, encoded = url[5:].split(",", 1)
        parts = header.split(";")
        if "base64" not in parts[1:]:
            raise ValueError("Only base64 data URLs are supported")

        try:
            data = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e

        return cls(data=data, media_type=parts[0] or DEFAULT_MEDIA_TYPE)


async def load_image_payload(
    image_url: Optional[str],
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None
) -> Optional[ImagePayload]:
    """
    Resolve a stored image reference into classifiable bytes.

    Embedded data: URLs are decoded locally; anything else is fetched over
    HTTP. Returns None when the image is missing or cannot be loaded.

    Args:
        image_url: Stored image reference
        http_client: Client to reuse for the fetch
        timeout: Fetch timeout in seconds

    Returns:
        ImagePayload or None
    """
    if not image_url:
        return None

    if image_url.startswith("data:"):
        try:
            return ImagePayload.from_data_url(image_url)
        except ValueError as e:
            logger.warning(f"Failed to decode embedded image: {e}")
            return None

    timeout = timeout or settings.image_fetch_timeout_seconds
    client = http_client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.get(image_url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch image {image_url}: {e}")
        return None
    finally:
        if http_client is None:
            await client.aclose()

    content_type = response.headers.get("content-type", "")
    media_type = content_type.split(";")[0].strip() or DEFAULT_MEDIA_TYPE
    return ImagePayload(data=response.content, media_type=media_type)


class ClassificationClient(ABC):
    """
    Async interface to an external image-classification capability.

    Implementations raise ClassificationUnavailable on any service failure.
    """

    @abstractmethod
    async def classify(
        self,
        image_bytes: bytes,
        media_type: str
    ) -> ClassificationResult:
        """Classify the waste shown in an image."""


class MockClassificationClient(ClassificationClient):
    """
    Mock classifier for demos and testing.

    Returns a fixed result after an optional delay. Only the most recent
    payloads are kept in `calls`; `call_count` counts every call.
    """

    def __init__(
        self,
        result: Optional[ClassificationResult] = None,
        delay_seconds: float = 0.0,
        history_size: int = 5
    ):
        self.result = result or ClassificationResult(
            is_waste_present=True,
            confidence_score=80.0,
            waste_type=WasteType.PLASTIC,
        )
        self.delay_seconds = delay_seconds
        self.calls: Deque[ImagePayload] = deque(maxlen=history_size)
        self.call_count = 0
        logger.info("Mock classification client initialized")

    async def classify(
        self,
        image_bytes: bytes,
        media_type: str
    ) -> ClassificationResult:
        self.call_count += 1
        self.calls.append(ImagePayload(data=image_bytes, media_type=media_type))
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        return self.result
