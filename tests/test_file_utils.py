"""
Tests for the file encoder
"""
import base64
import io

import pytest

from file_utils import (
    ExtractionError,
    ReadError,
    decode_image_reference,
    extract_base64,
    file_to_base64,
    guess_mime_type,
    read_as_data_url,
)


class BrokenFile:
    name = "broken.png"
    type = "image/png"

    def read(self):
        raise OSError("disk on fire")


class NamedBytesIO(io.BytesIO):
    def __init__(self, data, name, type=None):
        super().__init__(data)
        self.name = name
        if type:
            self.type = type


class TestFileToBase64:
    """Tests for file_to_base64"""

    @pytest.mark.asyncio
    async def test_strips_data_url_prefix(self, png_bytes):
        payload = await file_to_base64(NamedBytesIO(png_bytes, "cat.png", "image/png"))

        assert "," not in payload
        assert not payload.startswith("data:")
        assert payload == base64.b64encode(png_bytes).decode("ascii")

    @pytest.mark.asyncio
    async def test_reprefixed_payload_decodes_to_original_bytes(self, png_bytes):
        payload = await file_to_base64(NamedBytesIO(png_bytes, "cat.png", "image/png"))

        data_url = f"data:image/png;base64,{payload}"
        assert decode_image_reference(data_url) == png_bytes

    @pytest.mark.asyncio
    async def test_accepts_uploaded_image(self, uploaded_image, png_bytes):
        payload = await file_to_base64(uploaded_image)
        assert base64.b64decode(payload) == png_bytes

    @pytest.mark.asyncio
    async def test_read_failure_raises_read_error(self):
        with pytest.raises(ReadError, match="disk on fire"):
            await file_to_base64(BrokenFile())

    @pytest.mark.asyncio
    async def test_empty_file_raises_extraction_error(self):
        with pytest.raises(ExtractionError):
            await file_to_base64(NamedBytesIO(b"", "empty.png", "image/png"))


class TestDataUrls:
    """Tests for the data URL helpers"""

    def test_extract_without_comma_fails(self):
        with pytest.raises(ExtractionError):
            extract_base64("data:image/png;base64")

    def test_extract_splits_at_first_comma(self):
        assert extract_base64("data:image/webp;base64,QUJD") == "QUJD"

    def test_read_as_data_url_uses_declared_type(self, png_bytes):
        data_url = read_as_data_url(NamedBytesIO(png_bytes, "photo.bin", "image/webp"))
        assert data_url.startswith("data:image/webp;base64,")

    def test_mime_type_guessed_from_name(self):
        assert guess_mime_type(NamedBytesIO(b"x", "photo.jpg")) == "image/jpeg"

    def test_mime_type_fallback(self):
        assert guess_mime_type(io.BytesIO(b"x")) == "application/octet-stream"

    def test_decode_bare_base64(self):
        assert decode_image_reference("QUJD") == b"ABC"

    def test_decode_invalid_reference(self):
        with pytest.raises(ExtractionError):
            decode_image_reference("data:image/png;base64,not base64!")
