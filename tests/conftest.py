"""
Shared pytest fixtures and configuration for all tests
"""
import base64
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path for imports
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Smallest valid PNG (1x1 transparent pixel)
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
RESULT_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture
def project_root():
    """Provide the repository root"""
    return project_dir


@pytest.fixture
def png_bytes():
    """Provide the bytes of a tiny PNG image"""
    return PNG_BYTES


@pytest.fixture
def result_url():
    """Provide an image reference as returned by the image service"""
    return RESULT_URL


@pytest.fixture
def uploaded_image(png_bytes):
    """Provide an UploadedImage for the edit flow"""
    from image_flows import UploadedImage
    return UploadedImage(content=png_bytes, mime_type="image/png", name="cat.png", source_id="file-1")


@pytest.fixture
def image_service(result_url):
    """Provide a mocked image service that succeeds"""
    service = MagicMock()
    service.model = "gpt-4.1"
    service.edit_image = AsyncMock(return_value=result_url)
    service.generate_image = AsyncMock(return_value=result_url)
    return service
