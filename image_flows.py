"""
Request orchestration for the edit and generate flows
Each flow owns a single FlowState and moves it through
idle -> validating -> loading -> success/failure
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from file_utils import file_to_base64, guess_mime_type

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
EDIT_VALIDATION_MESSAGE = "Please upload an image and provide an edit prompt."
GENERATE_VALIDATION_MESSAGE = "Please provide a prompt to generate an image."
NO_SERVICE_MESSAGE = "Please set your OpenAI API key first."


class ValidationError(Exception):
    """Required user input is missing."""


class Phase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class FlowState:
    """Tagged flow state; image_url only in SUCCESS, error only in FAILURE."""

    phase: Phase = Phase.IDLE
    image_url: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self):
        if (self.image_url is not None) != (self.phase is Phase.SUCCESS):
            raise ValueError(f"image_url must be set exactly in the success phase, got {self.phase.value}")
        if (self.error is not None) != (self.phase is Phase.FAILURE):
            raise ValueError(f"error must be set exactly in the failure phase, got {self.phase.value}")

    @classmethod
    def idle(cls) -> "FlowState":
        return cls(Phase.IDLE)

    @classmethod
    def validating(cls) -> "FlowState":
        return cls(Phase.VALIDATING)

    @classmethod
    def loading(cls) -> "FlowState":
        return cls(Phase.LOADING)

    @classmethod
    def success(cls, image_url: str) -> "FlowState":
        return cls(Phase.SUCCESS, image_url=image_url)

    @classmethod
    def failure(cls, message: str) -> "FlowState":
        return cls(Phase.FAILURE, error=message)

    @property
    def is_loading(self) -> bool:
        return self.phase is Phase.LOADING


@dataclass(frozen=True)
class UploadedImage:
    """An image selected for editing."""

    content: bytes = field(repr=False)
    mime_type: str
    name: str = ""
    source_id: Optional[str] = None

    @classmethod
    def from_upload(cls, uploaded: Any) -> "UploadedImage":
        """Build from a Streamlit UploadedFile (or any file-like with a name)."""
        content = uploaded.getvalue() if hasattr(uploaded, "getvalue") else uploaded.read()
        return cls(
            content=content,
            mime_type=guess_mime_type(uploaded),
            name=getattr(uploaded, "name", "") or "",
            source_id=getattr(uploaded, "file_id", None),
        )


def error_message(error: BaseException) -> str:
    """Display text for a failed operation."""
    message = getattr(error, "message", None)
    if not message and error.args:
        message = error.args[0]
    return str(message) if message else UNKNOWN_ERROR_MESSAGE


class ImageFlow:
    """Base orchestrator: validation, dispatch and result/error state for one flow."""

    name = "image"

    def __init__(self, service: Any = None):
        self.service = service
        self.prompt = ""
        self.runs = 0
        self._state = FlowState.idle()
        self._generation = 0
        self._closed = False

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state.is_loading

    @property
    def closed(self) -> bool:
        return self._closed

    def can_submit(self) -> bool:
        """Whether the trigger control should be enabled."""
        if self.is_busy or self._closed:
            return False
        try:
            self.validate()
        except ValidationError:
            return False
        return True

    def set_prompt(self, prompt: str):
        if prompt == self.prompt:
            return
        self.prompt = prompt
        self._clear_result()

    def _clear_result(self):
        if not self.is_busy:
            self._state = FlowState.idle()

    def reset(self):
        """Drop the current result and any in-flight update."""
        self._generation += 1
        self._state = FlowState.idle()

    def close(self):
        """Tear the flow down; a late result from a pending call is discarded."""
        self._closed = True
        self.reset()

    def validate(self):
        raise NotImplementedError

    async def dispatch(self) -> str:
        raise NotImplementedError

    async def submit(self) -> FlowState:
        """
        Validate inputs and run the external call.

        Returns:
            The resulting state. Errors never propagate; they become a FAILURE state.
        """
        if self.is_busy:
            logger.warning(f"{self.name} flow is already loading; ignoring submit")
            return self._state
        if self._closed:
            logger.warning(f"{self.name} flow is closed; ignoring submit")
            return self._state

        self._state = FlowState.validating()
        try:
            self.validate()
            if self.service is None:
                raise ValidationError(NO_SERVICE_MESSAGE)
        except ValidationError as e:
            self._state = FlowState.failure(str(e))
            return self._state

        self._state = FlowState.loading()
        self._generation += 1
        generation = self._generation
        self.runs += 1

        # Cancellation leaves the result idle; the busy flag is always cleared.
        result = FlowState.idle()
        try:
            image_url = await self.dispatch()
            if not image_url:
                raise ValueError("No image was returned.")
            result = FlowState.success(image_url)
        except Exception as e:
            logger.error(f"{self.name} flow failed: {e!r}")
            result = FlowState.failure(error_message(e))
        finally:
            if generation == self._generation:
                self._state = result
            else:
                logger.info(f"Discarding stale {self.name} result")

        return self._state


class EditImageFlow(ImageFlow):
    """Edit an uploaded image with a natural-language instruction."""

    name = "edit"

    def __init__(self, service: Any = None):
        super().__init__(service)
        self.image: Optional[UploadedImage] = None

    def select_image(self, image: Optional[UploadedImage]):
        """Replace the source image and clear any displayed result."""
        self.image = image
        self._clear_result()

    def validate(self):
        if self.image is None or not self.prompt.strip():
            raise ValidationError(EDIT_VALIDATION_MESSAGE)

    async def dispatch(self) -> str:
        image, prompt = self.image, self.prompt
        encoded_image = await file_to_base64(image)
        return await self.service.edit_image(encoded_image, image.mime_type, prompt)

    def close(self):
        super().close()
        self.image = None


class GenerateImageFlow(ImageFlow):
    """Generate a new image from a text prompt."""

    name = "generate"

    def validate(self):
        if not self.prompt.strip():
            raise ValidationError(GENERATE_VALIDATION_MESSAGE)

    async def dispatch(self) -> str:
        return await self.service.generate_image(self.prompt)
