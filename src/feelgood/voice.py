"""Conversational voice assistant session relay.

The voice platform SDK is not a dependency of this package. Integrations
implement :class:`VoiceSession` on top of their SDK and import
:class:`VoiceAssistant` from this module directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from feelgood.event_bus import EventBus
from feelgood.result import Result

logger = logging.getLogger(__name__)

DEFAULT_ASSISTANT_NAME = "Bobby"


class VoiceSessionError(RuntimeError):
    """Raised by a voice session that cannot start."""


class VoiceEventKind(str, Enum):
    CALL_STARTED = "call-started"
    CALL_ENDED = "call-ended"
    TRANSCRIPT = "transcript"
    ERROR = "error"
    SPEECH_UPDATE = "speech-update"
    FUNCTION_CALL = "function-call"
    MODEL_OUTPUT = "model-output"


@dataclass(slots=True)
class VoiceEvent:
    """One event emitted by the voice platform."""

    kind: VoiceEventKind
    text: str | None = None
    role: str | None = None
    is_final: bool = True
    data: dict[str, Any] = field(default_factory=dict)


class VoiceSession(Protocol):
    """Boundary of the third-party real-time voice SDK."""

    def on_event(self, handler: Callable[[VoiceEvent], Any]) -> None:
        """Register the callback receiving every :class:`VoiceEvent`."""

    async def start(self, assistant_id: str) -> None:
        """Open a call with ``assistant_id``; may raise :class:`VoiceSessionError`."""

    async def stop(self) -> None:
        """Hang up the current call; may raise :class:`VoiceSessionError`."""


@dataclass(slots=True)
class VoiceAssistant:
    """Tracks call state and the transcript of the conversation.

    Only call lifecycle, final transcript fragments and errors reach the rest
    of the application; other event kinds are logged and dropped.
    """

    bus: EventBus
    session: VoiceSession
    assistant_id: str
    assistant_name: str = DEFAULT_ASSISTANT_NAME
    is_call_active: bool = field(init=False, default=False)
    is_loading: bool = field(init=False, default=False)
    transcripts: list[str] = field(init=False, default_factory=list)
    error: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        """Receive events from the voice session."""
        self.session.on_event(self.handle_event)

    async def start_call(self) -> Result[None]:
        """Start a call unless one is already starting or running."""
        if self.is_loading:
            return Result.failure("A call is already starting")
        if self.is_call_active:
            return Result.failure("A call is already active")
        self.is_loading = True
        self.error = None
        logger.info("Starting call with assistant %s", self.assistant_id)
        try:
            await self.session.start(self.assistant_id)
        except VoiceSessionError as exc:
            self.error = str(exc)
            self.is_loading = False
            logger.warning("Failed to start call: %s", exc)
            await self.bus.publish("voice.error", {"message": self.error})
            return Result.failure(self.error)
        return Result.success()

    async def end_call(self) -> Result[None]:
        """Hang up and clear the transcript, even if the session fails to stop."""
        logger.info("Ending call")
        try:
            await self.session.stop()
        except VoiceSessionError as exc:
            self.error = str(exc)
            logger.warning("Failed to end call: %s", exc)
            await self.bus.publish("voice.error", {"message": self.error})
            return Result.failure(self.error)
        finally:
            self.transcripts.clear()
        return Result.success()

    async def toggle_call(self) -> Result[None]:
        """Stop an active call or start a new one."""
        if self.is_call_active:
            return await self.end_call()
        return await self.start_call()

    async def handle_event(self, event: VoiceEvent) -> None:
        """Fold one session event into state and relay the relevant ones."""
        if event.kind is VoiceEventKind.CALL_STARTED:
            self.is_call_active = True
            self.is_loading = False
            await self.bus.publish("voice.call_started", {"assistant_id": self.assistant_id})
        elif event.kind is VoiceEventKind.CALL_ENDED:
            self.is_call_active = False
            self.is_loading = False
            await self.bus.publish("voice.call_ended", {"assistant_id": self.assistant_id})
        elif event.kind is VoiceEventKind.TRANSCRIPT:
            if not event.is_final or not event.text:
                return
            speaker = self.assistant_name if event.role == "assistant" else "You"
            line = f"{speaker}: {event.text}"
            self.transcripts.append(line)
            await self.bus.publish("voice.transcript", {"line": line, "role": event.role})
        elif event.kind is VoiceEventKind.ERROR:
            self.error = event.text or "Voice session error"
            self.is_loading = False
            await self.bus.publish("voice.error", {"message": self.error})
        else:
            logger.debug("Dropping voice event %s: %s", event.kind.value, event.text or event.data)


__all__ = [
    "VoiceAssistant",
    "VoiceEvent",
    "VoiceEventKind",
    "VoiceSession",
    "VoiceSessionError",
]
