"""Tests for SessionManager and its settings-table persistence."""

import json

import pytest

from mindcanvas.session import Session, SessionManager, SESSION_KEY


class TestSession:

    def test_dict_round_trip(self, alice):
        assert Session.from_dict(alice.to_dict()) == alice

    @pytest.mark.parametrize("blob", [
        {"user": {"id": "u1"}},
        {"token": "", "user": {"id": "u1"}},
        {"token": "t", "user": {}},
        {"token": "t", "user": {"id": ""}},
        {"token": 42, "user": {"id": "u1"}},
    ])
    def test_incomplete_blobs_are_rejected(self, blob):
        with pytest.raises((KeyError, TypeError, ValueError)):
            Session.from_dict(blob)


class TestSessionManager:

    def test_starts_logged_out(self, sessions):
        assert sessions.current is None
        assert sessions.restore() is None

    def test_begin_persists(self, db, alice):
        SessionManager(db).begin(alice)
        restored = SessionManager(db).restore()
        assert restored == alice

    def test_end_clears_storage(self, db, sessions, alice):
        sessions.begin(alice)
        sessions.end()
        assert sessions.current is None
        assert db.get_raw_setting(SESSION_KEY) is None
        assert SessionManager(db).restore() is None

    def test_malformed_blob_is_cleared(self, db):
        db.set_raw_setting(SESSION_KEY, "{not json")
        manager = SessionManager(db)
        assert manager.restore() is None
        assert db.get_raw_setting(SESSION_KEY) is None

    def test_blob_without_token_is_cleared(self, db):
        db.set_raw_setting(SESSION_KEY, json.dumps({"user": {"id": "u1"}}))
        assert SessionManager(db).restore() is None
        assert db.get_raw_setting(SESSION_KEY) is None

    def test_generation_moves_on_every_change(self, sessions, alice):
        seen = [sessions.generation]
        sessions.begin(alice)
        seen.append(sessions.generation)
        sessions.end()
        seen.append(sessions.generation)
        sessions.begin(alice)
        seen.append(sessions.generation)
        assert len(set(seen)) == 4
        assert sessions.is_current(seen[-1])
        assert not sessions.is_current(seen[1])

    def test_observers(self, sessions, alice):
        started, ended = [], []
        sessions.on_started.append(started.append)
        sessions.on_ended.append(ended.append)
        sessions.begin(alice)
        sessions.end("unauthorized")
        assert started == [alice]
        assert ended == ["unauthorized"]

    def test_restore_notifies(self, db, alice):
        SessionManager(db).begin(alice)
        manager = SessionManager(db)
        started = []
        manager.on_started.append(started.append)
        manager.restore()
        assert started == [alice]
        assert manager.generation == 1

    def test_without_database(self, alice):
        manager = SessionManager()
        manager.begin(alice)
        assert manager.current == alice
        assert manager.restore() is None
        manager.end()
        assert manager.current is None
