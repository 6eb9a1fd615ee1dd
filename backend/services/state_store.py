"""
State Store - Durable bot state with atomic JSON snapshots.

Holds the admin set, the ElevenLabs API key pool with its rotation cursor,
per-user voice overrides and the maintenance flag. Every mutation is applied
in memory and then flushed to disk; a failed flush rolls the in-memory change
back, so in-memory and durable state never diverge for longer than one
operation.

Snapshot: a single JSON object written to a sibling ``.tmp`` file and
renamed over the target (``os.replace``), so a concurrent reader never sees a
partial write.

Usage:
    from services.state_store import StateStore

    store = StateStore(Path("data/bot_state.json"), env_admins=[123])
    store.load(initial_credentials=["sk_..."])
    await store.add_credential("sk_new")
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from errors import BotError, ErrorCode, NotFoundError, PersistenceCorruptError, ValidationError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass
class BotState:
    """
    In-memory bot state.

    The rotation cursor is only advanced through rotate() and re-anchored
    by discard_credential(); it is never assigned from outside.
    """

    admins: Set[int] = field(default_factory=set)
    credentials: List[str] = field(default_factory=list)
    user_voices: Dict[int, str] = field(default_factory=dict)
    maintenance: bool = False
    _cursor: int = field(default=0, repr=False)

    @property
    def rotation_cursor(self) -> int:
        return self._cursor

    def rotate(self) -> Optional[str]:
        """Return the credential under the cursor and advance it (round robin).

        Read and advance happen with no suspension point in between, so two
        concurrent dispatch tasks never observe the same cursor value.
        """
        if not self.credentials:
            self._cursor = 0
            return None
        if not 0 <= self._cursor < len(self.credentials):
            self._cursor = 0
        key = self.credentials[self._cursor]
        self._cursor = (self._cursor + 1) % len(self.credentials)
        return key

    def peek(self) -> Optional[str]:
        """Credential the next rotate() will hand out."""
        if not self.credentials:
            return None
        return self.credentials[self._cursor % len(self.credentials)]

    def discard_credential(self, index: int) -> str:
        """Remove the credential at index, keeping the rotation order intact."""
        removed = self.credentials.pop(index)
        if index < self._cursor:
            self._cursor -= 1
        if not self.credentials or self._cursor >= len(self.credentials):
            self._cursor = 0
        return removed

    def restore_credential(self, index: int, key: str, cursor: int) -> None:
        """Undo discard_credential()."""
        self.credentials.insert(index, key)
        self._cursor = cursor if 0 <= cursor < len(self.credentials) else 0

    def is_admin(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self.admins

    def voice_for(self, user_id: Optional[int], default: str) -> str:
        if user_id is None:
            return default
        return self.user_voices.get(user_id, default)

    def to_dict(self) -> Dict[str, Any]:
        """Export as a JSON-ready dict (user ids become string keys)."""
        return {
            "version": SNAPSHOT_VERSION,
            "admins": sorted(self.admins),
            "credentials": list(self.credentials),
            "rotation_cursor": self._cursor,
            "user_voices": {str(uid): voice for uid, voice in sorted(self.user_voices.items())},
            "maintenance": self.maintenance,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "BotState":
        """
        Build state from a snapshot dict.

        Missing fields take their defaults. Fields of the wrong type raise
        ValueError; the caller turns that into PersistenceCorruptError.
        """
        if not isinstance(data, dict):
            raise ValueError(f"snapshot must be a JSON object, got {type(data).__name__}")

        admins_raw = data.get("admins", [])
        if not isinstance(admins_raw, list) or not all(_is_int(a) for a in admins_raw):
            raise ValueError("'admins' must be a list of integers")

        credentials = data.get("credentials", [])
        if not isinstance(credentials, list) or not all(isinstance(k, str) and k.strip() for k in credentials):
            raise ValueError("'credentials' must be a list of non-empty strings")

        cursor = data.get("rotation_cursor", 0)
        if not _is_int(cursor):
            raise ValueError("'rotation_cursor' must be an integer")
        if not 0 <= cursor < max(len(credentials), 1):
            logger.warning(f"Snapshot rotation cursor {cursor} out of range, resetting to 0")
            cursor = 0

        voices_raw = data.get("user_voices", {})
        if not isinstance(voices_raw, dict):
            raise ValueError("'user_voices' must be an object")
        user_voices = {}
        for uid, voice in voices_raw.items():
            if not isinstance(voice, str) or not voice:
                raise ValueError(f"voice for user {uid!r} must be a non-empty string")
            try:
                user_voices[int(uid)] = voice
            except (TypeError, ValueError):
                raise ValueError(f"user id {uid!r} is not an integer")

        maintenance = data.get("maintenance", False)
        if not isinstance(maintenance, bool):
            raise ValueError("'maintenance' must be a boolean")

        return cls(
            admins=set(admins_raw),
            credentials=list(credentials),
            user_voices=user_voices,
            maintenance=maintenance,
            _cursor=cursor,
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class StateStore:
    """
    Owns the BotState and its durable snapshot.

    Passed explicitly to every component that reads or mutates state.
    Durable writes are serialized by an asyncio.Lock; each write serializes
    the live state while holding the lock, so the last write to finish
    always reflects every mutation made before it started.
    """

    def __init__(
        self,
        path: Path,
        state: Optional[BotState] = None,
        env_admins: Iterable[int] = (),
    ):
        """
        Args:
            path: Snapshot file location
            state: Pre-built state (tests); defaults to an empty BotState
            env_admins: Admin ids from ADMIN_IDS, merged on every boot
        """
        self.path = Path(path)
        self.state = state if state is not None else BotState()
        self._env_admins = frozenset(env_admins)
        self.state.admins.update(self._env_admins)
        self._write_lock = asyncio.Lock()
        self._write_count = 0

    @property
    def env_admins(self) -> frozenset:
        return self._env_admins

    @property
    def write_count(self) -> int:
        return self._write_count

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self, initial_credentials: Iterable[str] = ()) -> bool:
        """
        Hydrate state from the snapshot.

        Missing file is not an error: state keeps its defaults and
        initial_credentials (ELEVENLABS_API_KEYS) seed the pool. Once a
        snapshot exists the persisted pool wins, so keys removed by an
        admin stay removed across restarts.

        Admins are the union of env_admins and the persisted set.

        Returns:
            True if a snapshot was loaded

        Raises:
            PersistenceCorruptError: snapshot exists but cannot be parsed
        """
        if not self.path.exists():
            seeds = [k.strip() for k in initial_credentials if k and k.strip()]
            self.state.credentials.extend(seeds)
            logger.info(f"No state snapshot at {self.path}, starting fresh ({len(seeds)} seeded key(s))")
            return False

        try:
            raw = self.path.read_text(encoding="utf-8")
            loaded = BotState.from_dict(json.loads(raw))
        except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
            raise PersistenceCorruptError(
                "State snapshot is corrupt",
                details=str(e),
                path=str(self.path),
            ) from e

        loaded.admins.update(self._env_admins)
        self.state = loaded
        logger.info(
            f"State loaded: {len(loaded.credentials)} key(s), {len(loaded.admins)} admin(s), "
            f"{len(loaded.user_voices)} voice override(s), maintenance={loaded.maintenance}"
        )
        return True

    def serialize(self) -> str:
        """Snapshot text for the current state (stable key order)."""
        return json.dumps(self.state.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"

    def _write_atomic(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    async def persist(self) -> None:
        """
        Atomically write the full current state. Safe to call repeatedly.

        Raises:
            BotError: PERSISTENCE_WRITE_FAILED if the file cannot be written
        """
        async with self._write_lock:
            payload = self.serialize()
            try:
                await asyncio.to_thread(self._write_atomic, payload)
            except OSError as e:
                raise BotError(
                    "Failed to write state snapshot",
                    details=str(e),
                    code=ErrorCode.PERSISTENCE_WRITE_FAILED,
                    path=str(self.path),
                ) from e
            self._write_count += 1
            logger.debug(f"State persisted to {self.path} (write #{self._write_count})")

    async def _commit(self, rollback: Callable[[], Any]) -> None:
        """Persist a mutation already applied in memory, undoing it if the write fails."""
        try:
            await self.persist()
        except BotError:
            rollback()
            logger.warning("State write failed, in-memory change rolled back")
            raise

    # =========================================================================
    # Credentials
    # =========================================================================

    async def add_credential(self, key: str) -> int:
        """Append an API key to the pool. Returns the new pool size."""
        key = (key or "").strip()
        if not key:
            raise ValidationError("API key must not be empty", parameter="key")
        if any(ch.isspace() for ch in key):
            raise ValidationError("API key must not contain whitespace", parameter="key")

        index = len(self.state.credentials)
        self.state.credentials.append(key)
        await self._commit(lambda: self.state.discard_credential(index))
        logger.info(f"API key added (pool size {len(self.state.credentials)})")
        return len(self.state.credentials)

    async def remove_credential(self, key_or_index: str) -> str:
        """
        Remove an API key by exact value or by 1-based position.

        An exact key match wins over a numeric position. Returns the removed key.

        Raises:
            ValidationError: empty argument
            NotFoundError: no such key or position
        """
        ref = (key_or_index or "").strip()
        if not ref:
            raise ValidationError("API key or index must not be empty", parameter="key")

        credentials = self.state.credentials
        if ref in credentials:
            index = credentials.index(ref)
        elif ref.isascii() and ref.isdigit() and 1 <= int(ref) <= len(credentials):
            index = int(ref) - 1
        else:
            raise NotFoundError(
                "API key not found",
                details=f"Pool has {len(credentials)} key(s); use /listkeys",
                resource_type="credential",
            )

        cursor = self.state.rotation_cursor
        removed = self.state.discard_credential(index)
        await self._commit(lambda: self.state.restore_credential(index, removed, cursor))
        logger.info(f"API key #{index + 1} removed (pool size {len(credentials)})")
        return removed

    # =========================================================================
    # Voices
    # =========================================================================

    async def set_user_voice(self, user_id: int, voice_id: str) -> None:
        voice_id = (voice_id or "").strip()
        if not voice_id:
            raise ValidationError("Voice id must not be empty", parameter="voice_id")

        previous = self.state.user_voices.get(user_id)

        def rollback():
            if previous is None:
                self.state.user_voices.pop(user_id, None)
            else:
                self.state.user_voices[user_id] = previous

        self.state.user_voices[user_id] = voice_id
        await self._commit(rollback)
        logger.info(f"Voice for user {user_id} set to {voice_id}")

    async def reset_user_voice(self, user_id: int) -> str:
        """Drop a user's voice override. Returns the removed voice id."""
        if user_id not in self.state.user_voices:
            raise NotFoundError(
                f"User {user_id} has no custom voice",
                resource_type="voice",
                resource_id=str(user_id),
            )
        removed = self.state.user_voices.pop(user_id)
        await self._commit(lambda: self.state.user_voices.__setitem__(user_id, removed))
        logger.info(f"Voice override for user {user_id} removed")
        return removed

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def set_maintenance(self, enabled: bool) -> bool:
        """Set the maintenance flag. Returns True if the value changed."""
        previous = self.state.maintenance
        self.state.maintenance = enabled

        def rollback():
            self.state.maintenance = previous

        await self._commit(rollback)
        changed = previous != enabled
        logger.info(f"Maintenance mode {'ON' if enabled else 'OFF'}")
        return changed

    # =========================================================================
    # Admins
    # =========================================================================

    async def add_admin(self, user_id: int) -> bool:
        """Grant admin rights. Returns False if the user already was an admin."""
        if user_id in self.state.admins:
            return False
        self.state.admins.add(user_id)
        await self._commit(lambda: self.state.admins.discard(user_id))
        logger.info(f"Admin added: {user_id}")
        return True

    async def remove_admin(self, user_id: int) -> None:
        """
        Revoke admin rights.

        Raises:
            NotFoundError: user is not an admin
            ValidationError: user is seeded from ADMIN_IDS, or is the last admin
        """
        if user_id not in self.state.admins:
            raise NotFoundError(
                f"User {user_id} is not an admin",
                resource_type="admin",
                resource_id=str(user_id),
            )
        if user_id in self._env_admins:
            raise ValidationError(
                f"User {user_id} is configured in ADMIN_IDS",
                details="Remove it from the environment and restart instead",
                parameter="user_id",
            )
        if len(self.state.admins) == 1:
            raise ValidationError("Cannot remove the last admin", parameter="user_id")

        self.state.admins.discard(user_id)
        await self._commit(lambda: self.state.admins.add(user_id))
        logger.info(f"Admin removed: {user_id}")
