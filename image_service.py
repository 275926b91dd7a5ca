"""
OpenAI image service module
Wraps the Responses API image generation tool for editing and generating images
"""

import os
import logging
from typing import Any, Dict, List, Optional
from openai import AsyncOpenAI, OpenAIError
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_MODEL = os.getenv("IMAGE_STUDIO_MODEL", "gpt-4.1")
IMAGE_SIZE = os.getenv("IMAGE_STUDIO_SIZE", "1024x1024")
IMAGE_QUALITY = os.getenv("IMAGE_STUDIO_QUALITY", "high")
RESULT_MIME_TYPE = "image/png"


class ExternalCallError(Exception):
    """The image API rejected the request or returned no image."""


def _image_generation_tool() -> Dict[str, Any]:
    return {
        "type": "image_generation",
        "size": IMAGE_SIZE,
        "quality": IMAGE_QUALITY,
    }


def _extract_image_from_response(response: Any) -> str:
    """Return the base64 image of the first image_generation_call output."""
    for output in getattr(response, "output", []) or []:
        if getattr(output, "type", None) == "image_generation_call":
            result = getattr(output, "result", None)
            if result:
                return result
    raise ExternalCallError("No image data returned from the API")


def to_data_url(image_base64: str, mime_type: str = RESULT_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{image_base64}"


class ImageService:
    """Async client for the image edit and image generation calls."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        if client is None:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("No API key provided. Set OPENAI_API_KEY environment variable or pass api_key parameter.")
            client = AsyncOpenAI(api_key=api_key)

        self.client = client
        self.model = model or DEFAULT_MODEL

    async def _create(self, request_input: Any) -> str:
        try:
            logger.debug(f"Calling OpenAI Responses API with model: {self.model}")
            response = await self.client.responses.create(
                model=self.model,
                input=request_input,
                tools=[_image_generation_tool()],
            )
        except OpenAIError as e:
            message = getattr(e, "message", None) or str(e)
            logger.error(f"Error in OpenAI API call: {message}")
            raise ExternalCallError(message) from e

        image_base64 = _extract_image_from_response(response)
        logger.debug(f"Received image of length: {len(image_base64)}")
        return to_data_url(image_base64)

    async def edit_image(self, encoded_image: str, mime_type: str, prompt: str) -> str:
        """
        Edit an image according to a natural-language instruction.

        Args:
            encoded_image: Base64 image payload without the data URL prefix
            mime_type: MIME type of the source image
            prompt: The edit instruction

        Returns:
            A ``data:image/png;base64,...`` reference to the edited image
        """
        content: List[Dict[str, Any]] = [
            {"type": "input_text", "text": prompt},
            {"type": "input_image", "image_url": to_data_url(encoded_image, mime_type)},
        ]
        logger.info(f"Editing {mime_type} image: {prompt[:60]}")
        return await self._create([{"role": "user", "content": content}])

    async def generate_image(self, prompt: str) -> str:
        """Generate a new image from a text prompt and return its data URL."""
        logger.info(f"Generating image: {prompt[:60]}")
        return await self._create(prompt)
