"""
Pure session reducers. Each takes a session and returns a new one; the input
is never mutated.
"""

from typing import Optional

from ..models.session import ChatSession, Message, MessageState, Role, now_ms

TITLE_LENGTH = 30


def append_user_message(session: ChatSession, message: Message, now: Optional[int] = None) -> ChatSession:
    """
    Append a user message and refresh ``updated_at``.

    The first message of a session also names it: the title is its first
    ``TITLE_LENGTH`` characters. Later messages never touch the title.
    """
    title = message.content[:TITLE_LENGTH] if not session.messages else session.title
    return session.model_copy(update={
        "messages": [*session.messages, message],
        "title": title,
        "updated_at": now if now is not None else now_ms(),
    })


def apply_delta(session: ChatSession, response_id: str, delta: str, now: Optional[int] = None) -> ChatSession:
    """
    Fold one streamed delta into the pending response message.

    The first delta of a turn creates the pending model message and refreshes
    ``updated_at``; every later delta extends it. Final messages are never
    modified.
    """
    messages = list(session.messages)
    for index, message in enumerate(messages):
        if message.id == response_id:
            if not message.is_pending:
                raise ValueError(f"Message {response_id} is final and cannot change")
            messages[index] = message.model_copy(update={"content": message.content + delta})
            return session.model_copy(update={"messages": messages})

    messages.append(Message(
        id=response_id,
        role=Role.MODEL,
        content=delta,
        state=MessageState.PENDING,
    ))
    return session.model_copy(update={
        "messages": messages,
        "updated_at": now if now is not None else now_ms(),
    })


def finalize_message(session: ChatSession, message_id: str, content: Optional[str] = None) -> ChatSession:
    """Mark a pending message final, optionally replacing its content."""
    messages = list(session.messages)
    for index, message in enumerate(messages):
        if message.id == message_id:
            update = {"state": MessageState.FINAL}
            if content is not None:
                update["content"] = content
            messages[index] = message.model_copy(update=update)
            return session.model_copy(update={"messages": messages})
    return session


def upsert_message(session: ChatSession, message: Message, now: Optional[int] = None) -> ChatSession:
    """
    Replace the message with the same id, or append it.
    Appending refreshes ``updated_at``.
    """
    final = message.model_copy(update={"state": MessageState.FINAL})
    messages = list(session.messages)
    for index, existing in enumerate(messages):
        if existing.id == message.id:
            messages[index] = final
            return session.model_copy(update={"messages": messages})

    messages.append(final)
    return session.model_copy(update={
        "messages": messages,
        "updated_at": now if now is not None else now_ms(),
    })


def append_error_message(session: ChatSession, error_text: str) -> ChatSession:
    """Append a visible error record to the conversation."""
    message = Message(
        role=Role.MODEL,
        content=f"Error: {error_text}",
        is_error=True,
    )
    return upsert_message(session, message)
