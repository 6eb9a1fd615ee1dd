"""
Tests for the durable state store: snapshot round trips, corruption
handling, mutations and rotation cursor bookkeeping.
"""

import asyncio
import json
from unittest.mock import patch

import pytest

from errors import BotError, ErrorCode, NotFoundError, PersistenceCorruptError, ValidationError
from services.state_store import BotState, StateStore


class TestBotState:
    """Pure in-memory behaviour."""

    def test_rotate_empty_pool(self):
        state = BotState()
        assert state.rotate() is None
        assert state.rotation_cursor == 0

    def test_rotate_round_robin(self):
        state = BotState(credentials=["A", "B", "C"])
        assert [state.rotate() for _ in range(4)] == ["A", "B", "C", "A"]
        assert state.rotation_cursor == 1

    def test_peek_does_not_advance(self):
        state = BotState(credentials=["A", "B"])
        assert state.peek() == "A"
        assert state.peek() == "A"
        assert state.rotation_cursor == 0

    def test_discard_before_cursor_keeps_order(self):
        """Removing a key before the cursor must not skip the next key."""
        state = BotState(credentials=["A", "B", "C"])
        state.rotate()
        state.rotate()  # cursor -> C
        state.discard_credential(0)
        assert state.peek() == "C"

    def test_discard_last_resets_cursor(self):
        state = BotState(credentials=["A", "B"])
        state.rotate()  # cursor -> B
        state.discard_credential(1)
        assert state.rotation_cursor == 0
        state.discard_credential(0)
        assert state.rotation_cursor == 0
        assert state.rotate() is None

    def test_voice_for_default(self):
        state = BotState(user_voices={42: "voiceX"})
        assert state.voice_for(42, "default") == "voiceX"
        assert state.voice_for(7, "default") == "default"
        assert state.voice_for(None, "default") == "default"

    def test_dict_round_trip(self):
        state = BotState(
            admins={2, 1},
            credentials=["k1", "k2"],
            user_voices={42: "v"},
            maintenance=True,
        )
        state.rotate()
        data = state.to_dict()
        assert data["admins"] == [1, 2]
        assert data["user_voices"] == {"42": "v"}
        assert data["rotation_cursor"] == 1

        restored = BotState.from_dict(json.loads(json.dumps(data)))
        assert restored.admins == {1, 2}
        assert restored.credentials == ["k1", "k2"]
        assert restored.user_voices == {42: "v"}
        assert restored.maintenance is True
        assert restored.rotation_cursor == 1

    def test_from_dict_out_of_range_cursor_resets(self):
        restored = BotState.from_dict({"credentials": ["a"], "rotation_cursor": 5})
        assert restored.rotation_cursor == 0

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"admins": "1"},
            {"admins": [True]},
            {"credentials": ["ok", ""]},
            {"rotation_cursor": "0"},
            {"user_voices": {"abc": "v"}},
            {"user_voices": {"1": ""}},
            {"maintenance": "yes"},
        ],
    )
    def test_from_dict_rejects_bad_types(self, data):
        with pytest.raises(ValueError):
            BotState.from_dict(data)


class TestSnapshot:
    """load()/persist() against the filesystem."""

    def test_missing_file_is_not_an_error(self, tmp_path):
        store = StateStore(tmp_path / "none.json", env_admins=[1])
        assert store.load(initial_credentials=["seed1", " ", "seed2"]) is False
        assert store.state.credentials == ["seed1", "seed2"]
        assert store.state.admins == {1}

    def test_round_trip(self, tmp_path):
        path = tmp_path / "state.json"
        store = StateStore(path, env_admins=[1])

        async def mutate():
            await store.add_credential("key-one")
            await store.add_credential("key-two")
            await store.set_user_voice(42, "voiceX")
            await store.set_maintenance(True)
            await store.add_admin(5)

        asyncio.run(mutate())
        store.state.rotate()
        asyncio.run(store.persist())

        reloaded = StateStore(path)
        assert reloaded.load() is True
        assert reloaded.state.credentials == ["key-one", "key-two"]
        assert reloaded.state.rotation_cursor == 1
        assert reloaded.state.user_voices == {42: "voiceX"}
        assert reloaded.state.maintenance is True
        assert reloaded.state.admins == {1, 5}

    def test_persist_is_idempotent(self, tmp_path):
        path = tmp_path / "state.json"
        store = StateStore(path, env_admins=[1])
        store.state.credentials.append("k")

        asyncio.run(store.persist())
        first = path.read_bytes()
        asyncio.run(store.persist())
        assert path.read_bytes() == first
        assert store.write_count == 2

    def test_persist_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        store = StateStore(path)
        asyncio.run(store.persist())
        assert path.exists()
        assert not (tmp_path / "nested" / "state.json.tmp").exists()

    def test_snapshot_format(self, tmp_path):
        path = tmp_path / "state.json"
        store = StateStore(path, env_admins=[2, 1])
        asyncio.run(store.set_user_voice(42, "v"))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert list(data) == sorted(data)
        assert data == {
            "admins": [1, 2],
            "credentials": [],
            "maintenance": False,
            "rotation_cursor": 0,
            "user_voices": {"42": "v"},
            "version": 1,
        }

    def test_corrupt_json_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceCorruptError) as exc_info:
            StateStore(path).load()
        assert exc_info.value.code == ErrorCode.PERSISTENCE_CORRUPT
        assert exc_info.value.context["path"] == str(path)

    def test_wrong_field_type_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"credentials": "k1,k2"}), encoding="utf-8")
        with pytest.raises(PersistenceCorruptError):
            StateStore(path).load()

    def test_admins_are_union_of_env_and_snapshot(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"admins": [5, 6]}), encoding="utf-8")
        store = StateStore(path, env_admins=[1])
        store.load()
        assert store.state.admins == {1, 5, 6}

    def test_seed_keys_ignored_once_snapshot_exists(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"credentials": ["kept"]}), encoding="utf-8")
        store = StateStore(path)
        store.load(initial_credentials=["seed"])
        assert store.state.credentials == ["kept"]

    def test_write_failure_raises_bot_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        store = StateStore(blocker / "state.json")
        with pytest.raises(BotError) as exc_info:
            asyncio.run(store.persist())
        assert exc_info.value.code == ErrorCode.PERSISTENCE_WRITE_FAILED

    def test_concurrent_persists_reflect_all_mutations(self, tmp_path):
        path = tmp_path / "state.json"
        store = StateStore(path)

        async def run():
            await asyncio.gather(*(store.add_credential(f"key-{i}") for i in range(10)))

        asyncio.run(run())
        data = json.loads(path.read_text(encoding="utf-8"))
        assert sorted(data["credentials"]) == sorted(f"key-{i}" for i in range(10))


class TestMutations:
    """Validation rules on store mutations."""

    @pytest.fixture
    def store(self, tmp_path):
        return StateStore(tmp_path / "state.json", env_admins=[1])

    def test_add_credential_rejects_empty(self, store):
        with pytest.raises(ValidationError):
            asyncio.run(store.add_credential("   "))
        assert store.state.credentials == []

    def test_add_credential_rejects_whitespace(self, store):
        with pytest.raises(ValidationError):
            asyncio.run(store.add_credential("two words"))

    def test_add_duplicate_credential_is_accepted(self, store):
        asyncio.run(store.add_credential("same"))
        assert asyncio.run(store.add_credential("same")) == 2

    def test_remove_credential_by_value_and_index(self, store):
        async def run():
            for key in ("alpha", "beta", "gamma"):
                await store.add_credential(key)
            by_value = await store.remove_credential("beta")
            by_index = await store.remove_credential("2")
            return by_value, by_index

        assert asyncio.run(run()) == ("beta", "gamma")
        assert store.state.credentials == ["alpha"]

    def test_remove_absent_credential(self, store):
        asyncio.run(store.add_credential("alpha"))
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(store.remove_credential("nope"))
        assert exc_info.value.code == ErrorCode.NOT_FOUND_CREDENTIAL
        with pytest.raises(NotFoundError):
            asyncio.run(store.remove_credential("5"))

    def test_set_voice_rejects_empty(self, store):
        with pytest.raises(ValidationError):
            asyncio.run(store.set_user_voice(42, ""))

    def test_reset_voice(self, store):
        asyncio.run(store.set_user_voice(42, "v"))
        assert asyncio.run(store.reset_user_voice(42)) == "v"
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(store.reset_user_voice(42))
        assert exc_info.value.code == ErrorCode.NOT_FOUND_VOICE

    def test_set_maintenance_reports_change(self, store):
        assert asyncio.run(store.set_maintenance(True)) is True
        assert asyncio.run(store.set_maintenance(True)) is False
        assert store.state.maintenance is True

    def test_add_existing_admin_does_not_persist(self, store):
        assert asyncio.run(store.add_admin(1)) is False
        assert store.write_count == 0

    def test_remove_admin_rules(self, store):
        asyncio.run(store.add_admin(5))
        asyncio.run(store.remove_admin(5))
        assert store.state.admins == {1}

        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(store.remove_admin(5))
        assert exc_info.value.code == ErrorCode.NOT_FOUND_ADMIN

        # Seeded from ADMIN_IDS
        with pytest.raises(ValidationError):
            asyncio.run(store.remove_admin(1))

    def test_cannot_remove_last_admin(self, tmp_path):
        store = StateStore(tmp_path / "state.json")
        asyncio.run(store.add_admin(9))
        with pytest.raises(ValidationError):
            asyncio.run(store.remove_admin(9))
        assert store.state.admins == {9}

    def test_every_mutation_persists(self, store):
        async def run():
            await store.add_credential("k")
            await store.remove_credential("k")
            await store.set_user_voice(42, "v")
            await store.reset_user_voice(42)
            await store.set_maintenance(True)
            await store.add_admin(7)
            await store.remove_admin(7)

        asyncio.run(run())
        assert store.write_count == 7

    def test_non_ascii_digit_is_not_an_index(self, store):
        asyncio.run(store.add_credential("alpha"))
        with pytest.raises(NotFoundError):
            asyncio.run(store.remove_credential("²"))
        assert store.state.credentials == ["alpha"]


class TestWriteFailureRollback:
    """A failed snapshot write leaves memory matching the file on disk."""

    @pytest.fixture
    def store(self, tmp_path):
        store = StateStore(tmp_path / "state.json", env_admins=[1])
        asyncio.run(store.add_credential("alpha"))
        asyncio.run(store.add_credential("beta"))
        asyncio.run(store.set_user_voice(42, "voiceA"))
        asyncio.run(store.add_admin(5))
        store.state.rotate()
        asyncio.run(store.persist())
        return store

    def _fail_writes(self, store, mutation):
        with patch.object(store, "_write_atomic", side_effect=OSError("disk full")):
            with pytest.raises(BotError) as exc_info:
                asyncio.run(mutation)
        assert exc_info.value.code == ErrorCode.PERSISTENCE_WRITE_FAILED
        on_disk = json.loads(store.path.read_text(encoding="utf-8"))
        assert store.state.to_dict() == on_disk

    def test_add_credential(self, store):
        self._fail_writes(store, store.add_credential("sk_new"))
        assert store.state.credentials == ["alpha", "beta"]

    def test_remove_credential_keeps_cursor(self, store):
        self._fail_writes(store, store.remove_credential("alpha"))
        assert store.state.credentials == ["alpha", "beta"]
        assert store.state.peek() == "beta"

    def test_set_user_voice(self, store):
        self._fail_writes(store, store.set_user_voice(42, "voiceB"))
        self._fail_writes(store, store.set_user_voice(7, "voiceC"))
        assert store.state.user_voices == {42: "voiceA"}

    def test_reset_user_voice(self, store):
        self._fail_writes(store, store.reset_user_voice(42))
        assert store.state.user_voices == {42: "voiceA"}

    def test_set_maintenance(self, store):
        self._fail_writes(store, store.set_maintenance(True))
        assert store.state.maintenance is False

    def test_admins(self, store):
        self._fail_writes(store, store.add_admin(9))
        self._fail_writes(store, store.remove_admin(5))
        assert store.state.admins == {1, 5}
