"""
Dispatch decisions - the branch one inbound event ended in.

Ephemeral: built by the pipeline per event, returned to the caller for
logging and tests, never persisted.
"""

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class Command:
    kind: ClassVar[str] = "command"
    name: str
    args: str


@dataclass(frozen=True)
class MaintenanceBlocked:
    kind: ClassVar[str] = "maintenance"


@dataclass(frozen=True)
class NoCredential:
    kind: ClassVar[str] = "no_credential"


@dataclass(frozen=True)
class UsageHint:
    kind: ClassVar[str] = "usage_hint"
    prefix: str


@dataclass(frozen=True)
class TooLong:
    kind: ClassVar[str] = "too_long"
    length: int


@dataclass(frozen=True)
class TtsRequest:
    """A synthesis request that passed validation.

    deletes_original and announce are both True for the attributed
    (voiceme) form and False for the direct (tts) form.
    """

    kind: ClassVar[str] = "tts"
    text: str
    voice_id: str
    deletes_original: bool = False
    announce: bool = False


@dataclass(frozen=True)
class Ignored:
    kind: ClassVar[str] = "ignored"
    reason: str = ""


@dataclass(frozen=True)
class Failed:
    """Unhandled error caught at the top of the pipeline."""

    kind: ClassVar[str] = "failed"
    error: str


DispatchDecision = Union[
    Command, MaintenanceBlocked, NoCredential, UsageHint, TooLong, TtsRequest, Ignored, Failed
]
