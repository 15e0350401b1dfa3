"""Tests for time-ordered identifiers."""

import threading
import uuid
from unittest.mock import patch

import pytest

from hookcatch.core import identifiers
from hookcatch.core.identifiers import is_valid_id, new_id


class TestNewId:
    @pytest.fixture(autouse=True)
    def restore_clock_state(self, monkeypatch):
        monkeypatch.setattr(identifiers, "_last_ms", identifiers._last_ms)
        monkeypatch.setattr(identifiers, "_counter", identifiers._counter)

    def test_is_uuid_version_7(self):
        value = uuid.UUID(new_id())
        assert value.version == 7
        assert value.variant == uuid.RFC_4122

    def test_canonical_lowercase_form(self):
        identifier = new_id()
        assert identifier == identifier.lower()
        assert len(identifier) == 36
        assert is_valid_id(identifier)

    def test_sequence_is_strictly_increasing(self):
        ids = [new_id() for _ in range(2000)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_increasing_when_clock_steps_backwards(self):
        now_ns = 1_800_000_000_000 * 1_000_000
        with patch.object(identifiers.time, "time_ns", return_value=now_ns):
            first = new_id()
        with patch.object(identifiers.time, "time_ns", return_value=now_ns - 5_000_000_000):
            second = new_id()
        assert second > first

    def test_counter_overflow_moves_to_next_millisecond(self):
        now_ns = 1_900_000_000_000 * 1_000_000
        with patch.object(identifiers.time, "time_ns", return_value=now_ns):
            ids = [new_id() for _ in range(5000)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)
        # The 48-bit timestamp prefix advanced
        assert ids[-1][:13] > ids[0][:13]

    def test_unique_across_threads(self):
        results: list[str] = []
        lock = threading.Lock()

        def worker():
            local = [new_id() for _ in range(500)]
            with lock:
                results.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 4000
        assert len(set(results)) == 4000


class TestIdHelpers:
    def test_is_valid_id_rejects_other_versions(self):
        assert not is_valid_id(str(uuid.uuid4()))

    def test_is_valid_id_rejects_garbage(self):
        assert not is_valid_id("not-an-id")
        assert not is_valid_id("")

    def test_is_valid_id_rejects_uppercase(self):
        assert not is_valid_id(new_id().upper())
