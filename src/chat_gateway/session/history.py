"""会话历史：有界、有序的消息记录。

Conversation history with a single system prompt and a hard size cap.

Invariants:
- at most one system message, always at the front
- after any append the history holds at most MAX_HISTORY messages;
  trimming keeps every system message and the most recent non-system ones
"""

from __future__ import annotations

import threading

from chat_gateway.types.message import Message, MessageRole

MAX_HISTORY = 20


class ChatSession:
    """Ordered message history owned by one conversation.

    Mutators and ``snapshot`` are serialized so a request envelope always
    sees a consistent history.

    Example:
        >>> session = ChatSession()
        >>> session.set_system_prompt("You are a shop assistant.")
        >>> session.append_user("Where is my parcel?")
        >>> [m.role for m in session.snapshot()]
        ['system', 'user']
    """

    def __init__(self, max_messages: int = MAX_HISTORY) -> None:
        if max_messages < 2:
            raise ValueError("max_messages must be at least 2")
        self._max_messages = max_messages
        self._messages: list[Message] = []
        self._lock = threading.RLock()

    @property
    def max_messages(self) -> int:
        """Hard cap on the number of stored messages."""
        return self._max_messages

    @property
    def system_prompt(self) -> str | None:
        """Current system prompt text, if any."""
        with self._lock:
            for msg in self._messages:
                if msg.is_system:
                    return msg.content
        return None

    def set_system_prompt(self, text: str) -> None:
        """Replace the system prompt and move it to the front."""
        with self._lock:
            others = [m for m in self._messages if not m.is_system]
            self._messages = [Message.system(text), *others]

    def append_user(self, text: str) -> None:
        """Append a user message, then trim."""
        self._append(Message.user(text))

    def append_assistant(self, text: str) -> None:
        """Append an assistant message, then trim."""
        self._append(Message.assistant(text))

    def _append(self, message: Message) -> None:
        with self._lock:
            self._messages.append(message)
            if len(self._messages) > self._max_messages:
                self._trim()

    def _trim(self) -> None:
        system = [m for m in self._messages if m.is_system]
        others = [m for m in self._messages if not m.is_system]
        keep = self._max_messages - 1
        self._messages = [*system, *others[-keep:]]

    def clear_history(self) -> None:
        """Drop everything except the system prompt."""
        with self._lock:
            self._messages = [m for m in self._messages if m.is_system]

    def snapshot(self) -> tuple[Message, ...]:
        """Immutable ordered copy of the current history."""
        with self._lock:
            return tuple(self._messages)

    def get_history(self) -> list[Message]:
        """Copy of the history for display."""
        return list(self.snapshot())

    def count(self, role: MessageRole | str) -> int:
        """Number of stored messages with the given role."""
        wanted = MessageRole(role).value
        with self._lock:
            return sum(1 for m in self._messages if m.role == wanted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def __repr__(self) -> str:
        return f"ChatSession(messages={len(self)}, max_messages={self._max_messages})"
