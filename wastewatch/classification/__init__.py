"""
WasteWatch - Classification Module
Contract and adapters for the external waste-photo classifier.
"""

from wastewatch.classification.client import (
    ClassificationClient,
    ClassificationResult,
    ImagePayload,
    MockClassificationClient,
    load_image_payload,
)
from wastewatch.classification.gemini_client import (
    GeminiClassificationClient,
    get_classification_client,
)

__all__ = [
    "ClassificationClient",
    "ClassificationResult",
    "ImagePayload",
    "MockClassificationClient",
    "load_image_payload",
    "GeminiClassificationClient",
    "get_classification_client",
]
