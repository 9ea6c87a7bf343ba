"""Speech-to-text for voice notes via the OpenAI transcription endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from feelgood.event_bus import EventBus
from feelgood.result import Result
from feelgood.transport import Sender, TransportError, encode_multipart_formdata, post

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.openai.com/v1/audio/transcriptions"
DEFAULT_MODEL = "whisper-1"
DEFAULT_TIMEOUT = 30.0


class TranscriptionError(RuntimeError):
    """Raised when a recording cannot be turned into text."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TranscriptionClient:
    """Sends one recording per request to the speech-to-text API."""

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str = DEFAULT_MODEL,
        response_format: str = "json",
        timeout: float = DEFAULT_TIMEOUT,
        sender: Sender = post,
        on_complete: Callable[[str], None] | None = None,
    ) -> None:
        """Configure the transcription client.

        Args:
            api_key: Bearer token for the API.
            endpoint: Transcription endpoint URL.
            model: Model identifier sent with every request.
            response_format: Requested response format.
            timeout: Request timeout in seconds.
            sender: Coroutine performing the HTTP POST.
            on_complete: Callback invoked with the text of every success.

        Raises:
            ValueError: If the API key is empty.

        """
        if not api_key:
            raise ValueError("Transcription API key must be provided")
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.response_format = response_format
        self.timeout = timeout
        self.on_complete = on_complete
        self._send = sender

    async def transcribe(
        self, audio: bytes, *, filename: str = "audio.m4a", content_type: str = "audio/m4a"
    ) -> str:
        """Transcribe ``audio`` and return the trimmed text.

        Raises:
            TranscriptionError: On empty audio, transport failure, a non-200
                status or an unparseable response body.

        """
        if not audio:
            raise TranscriptionError("Audio file is empty")
        boundary, body = encode_multipart_formdata(
            {"model": self.model, "response_format": self.response_format},
            {"file": (filename, audio, content_type)},
        )
        headers = {
            "Content-Type": f"multipart/form-data; boundary={boundary}",
            "Authorization": f"Bearer {self.api_key}",
        }
        logger.info("Sending %d bytes of audio for transcription", len(audio))
        try:
            response = await self._send(self.endpoint, body, headers, timeout=self.timeout)
        except TransportError as exc:
            raise TranscriptionError(str(exc)) from exc

        if response.status != 200:
            logger.error("Transcription API error (%s): %s", response.status, response.text())
            raise TranscriptionError(f"API Error: {response.status}", status=response.status)
        try:
            text = response.json()["text"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TranscriptionError("Failed to parse API response") from exc
        if not isinstance(text, str):
            raise TranscriptionError("Failed to parse API response")

        cleaned = text.strip()
        if self.on_complete is not None:
            self.on_complete(cleaned)
        return cleaned

    async def transcribe_file(self, path: Path | str) -> str:
        """Transcribe a recorded file and delete it afterwards."""
        audio_path = Path(path)
        try:
            try:
                audio = audio_path.read_bytes()
            except FileNotFoundError as exc:
                raise TranscriptionError("Audio file not found") from exc
            return await self.transcribe(audio, filename=audio_path.name)
        finally:
            audio_path.unlink(missing_ok=True)
            logger.debug("Removed temporary audio file %s", audio_path)


@dataclass(slots=True)
class TranscriptionService:
    """Observable transcription state for one recording at a time."""

    bus: EventBus
    client: TranscriptionClient
    is_transcribing: bool = field(init=False, default=False)
    transcription: str = field(init=False, default="")
    error_message: str | None = field(init=False, default=None)

    async def transcribe_recording(self, path: Path | str) -> Result[str]:
        """Transcribe the recording at ``path``.

        Overlapping calls are refused rather than queued.

        """
        if self.is_transcribing:
            return Result.failure("A transcription is already in progress")
        self.is_transcribing = True
        self.error_message = None
        try:
            text = await self.client.transcribe_file(path)
        except TranscriptionError as exc:
            self.error_message = f"Transcription failed: {exc}"
            logger.warning(self.error_message)
            await self.bus.publish(
                "transcription.failed", {"message": self.error_message, "status": exc.status}
            )
            return Result.failure(self.error_message)
        finally:
            self.is_transcribing = False
        self.transcription = text
        await self.bus.publish("transcription.completed", {"text": text})
        return Result.success(text)

    def reset(self) -> None:
        self.is_transcribing = False
        self.transcription = ""
        self.error_message = None


__all__ = [
    "TranscriptionClient",
    "TranscriptionError",
    "TranscriptionService",
]
