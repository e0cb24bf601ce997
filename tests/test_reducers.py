"""
Tests for the pure session reducers.
"""

import pytest

from hybridchat.core.reducers import (
    TITLE_LENGTH, append_error_message, append_user_message, apply_delta,
    finalize_message, upsert_message,
)
from hybridchat.models.session import ChatSession, Message, MessageState, Role


@pytest.fixture
def session():
    return ChatSession(created_at=1000, updated_at=1000)


class TestAppendUserMessage:
    def test_first_message_sets_title(self, session):
        text = "Explain quantum physics in simple terms please"
        updated = append_user_message(session, Message(role=Role.USER, content=text), now=2000)

        assert updated.title == text[:TITLE_LENGTH]
        assert updated.title == "Explain quantum physics in sim"
        assert updated.updated_at == 2000
        assert len(updated.messages) == 1

    def test_short_first_message_is_whole_title(self, session):
        updated = append_user_message(session, Message(role=Role.USER, content="Hi"))
        assert updated.title == "Hi"

    def test_later_messages_keep_title(self, session):
        first = append_user_message(session, Message(role=Role.USER, content="First topic"))
        second = append_user_message(first, Message(role=Role.USER, content="Something else"))
        assert second.title == "First topic"

    def test_input_not_mutated(self, session):
        append_user_message(session, Message(role=Role.USER, content="Hi"), now=2000)
        assert session.messages == []
        assert session.title == "New Chat"
        assert session.updated_at == 1000


class TestApplyDelta:
    def test_first_delta_creates_pending_model_message(self, session):
        updated = apply_delta(session, "r1", "Hel")

        message = updated.find_message("r1")
        assert message.role == Role.MODEL
        assert message.content == "Hel"
        assert message.state == MessageState.PENDING

    def test_deltas_accumulate(self, session):
        updated = session
        for delta in ["Hel", "lo", "!"]:
            updated = apply_delta(updated, "r1", delta)

        assert updated.find_message("r1").content == "Hello!"
        assert len(updated.messages) == 1
        assert session.messages == []

    def test_creating_pending_message_refreshes_updated_at(self, session):
        created = apply_delta(session, "r1", "Hel", now=2000)
        assert created.updated_at == 2000

        extended = apply_delta(created, "r1", "lo", now=3000)
        assert extended.updated_at == 2000

    def test_final_message_cannot_change(self, session):
        updated = finalize_message(apply_delta(session, "r1", "done"), "r1")
        with pytest.raises(ValueError):
            apply_delta(updated, "r1", "more")


class TestFinalizeMessage:
    def test_finalize_with_content(self, session):
        updated = finalize_message(apply_delta(session, "r1", "draft"), "r1", content="final")
        message = updated.find_message("r1")
        assert message.state == MessageState.FINAL
        assert message.content == "final"

    def test_unknown_id_is_noop(self, session):
        assert finalize_message(session, "missing") is session


class TestUpsertMessage:
    def test_append_refreshes_updated_at(self, session):
        updated = upsert_message(session, Message(role=Role.MODEL, content="x"), now=5000)
        assert updated.updated_at == 5000
        assert updated.messages[0].state == MessageState.FINAL

    def test_replace_by_id(self, session):
        pending = apply_delta(session, "r1", "part")
        updated = upsert_message(pending, Message(id="r1", role=Role.MODEL, content="whole"), now=5000)

        assert len(updated.messages) == 1
        assert updated.messages[0].content == "whole"
        assert updated.messages[0].state == MessageState.FINAL
        assert updated.updated_at == session.updated_at

    def test_idempotent(self, session):
        message = Message(role=Role.MODEL, content="x")
        once = upsert_message(session, message, now=5000)
        twice = upsert_message(once, message, now=6000)
        assert twice.messages == once.messages


class TestAppendErrorMessage:
    def test_error_record(self, session):
        updated = append_error_message(session, "Network down")
        message = updated.messages[-1]
        assert message.role == Role.MODEL
        assert message.content == "Error: Network down"
        assert message.is_error is True

    def test_error_flag_serialized_camel_case(self, session):
        record = append_error_message(session, "x").to_record()
        assert record["messages"][0]["isError"] is True
        assert "state" not in record["messages"][0]
