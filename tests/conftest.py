"""
Pytest configuration and fixtures
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from wastewatch.classification.client import ClassificationResult, MockClassificationClient
from wastewatch.core.constants import WasteType
from wastewatch.crowdsource.report_handler import Organization, ReportHandler, User


@pytest.fixture
def plastic_result():
    """Confident plastic classification."""
    return ClassificationResult(
        is_waste_present=True,
        confidence_score=92.0,
        waste_type=WasteType.PLASTIC,
    )


@pytest.fixture
def no_waste_result():
    """Classification with no waste in frame."""
    return ClassificationResult(is_waste_present=False, confidence_score=88.0)


@pytest.fixture
def mock_classifier(plastic_result):
    """Classifier returning a confident plastic result."""
    return MockClassificationClient(result=plastic_result)


@pytest.fixture
def reporter():
    """Reporting user with an existing GreenUnits balance."""
    return User(id="u1", name="sriram", email="sriram@example.com", green_units=980)


@pytest.fixture
def report_handler(reporter):
    """Report registry with the reporting user registered."""
    handler = ReportHandler()
    handler.register_user(reporter)
    return handler


@pytest.fixture
def organization():
    """Reviewing organization."""
    return Organization(id="org-1", name="Clean Earth Foundation", email="contact@cleanearth.org")


@pytest.fixture
def sample_image():
    """Small fake JPEG payload."""
    return b"\xff\xd8\xff\xe0fake-jpeg-bytes"
