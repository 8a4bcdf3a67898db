"""Conversation history with a pinned system prompt and turn-aware pruning."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from .config import DEFAULT_MAX_MESSAGES
from .errors import InvalidConfigurationError
from .models import ConversationMetadata, Message, ToolCall
from .prompts import get_default_system_prompt
from .tokens import estimate_message_tokens, group_turns

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationStore:
    """Ordered message log; index 0 is always the system message.

    ``message_count`` counts user/assistant exchanges (one per user message,
    tool messages never count). Pruning drops whole turns, oldest first, and
    never the system message or the newest turn.
    """

    def __init__(
        self,
        system_prompt: str | None = None,
        max_messages: int | None = DEFAULT_MAX_MESSAGES,
        max_tokens: int | None = None,
        token_estimator: Callable[[Sequence[Message]], int] = estimate_message_tokens,
    ) -> None:
        if max_messages is not None and max_messages < 2:
            raise InvalidConfigurationError("max_messages must be at least 2")
        if max_tokens is not None and max_tokens < 1:
            raise InvalidConfigurationError("max_tokens must be positive")

        self._system_message = Message(
            role="system",
            content=system_prompt if system_prompt is not None else get_default_system_prompt(),
        )
        self._max_messages = max_messages
        self._max_tokens = max_tokens
        self._estimate = token_estimator
        self._messages: list[Message] = [self._system_message.model_copy()]

        now = _utc_now()
        self._metadata = ConversationMetadata(
            id=f"conv_{uuid.uuid4().hex}",
            started_at=now,
            last_interaction_at=now,
            message_count=0,
            total_tokens=self._estimate(self._messages),
        )
        logger.info(
            "Conversation %s initialized (max_messages=%s, max_tokens=%s)",
            self._metadata.id,
            max_messages,
            max_tokens,
        )

    @property
    def id(self) -> str:
        return self._metadata.id

    @property
    def system_prompt(self) -> str:
        return self._system_message.content or ""

    def __len__(self) -> int:
        return len(self._messages)

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------

    def add_user_message(self, text: str) -> None:
        self._metadata.message_count += 1
        self._metadata.last_interaction_at = _utc_now()
        self._append(Message(role="user", content=text))
        logger.debug("Conversation %s: user message added (%d chars)", self.id, len(text))

    def add_assistant_message(
        self, content: str | None, tool_calls: Sequence[ToolCall] | None = None
    ) -> None:
        calls = [tc.model_copy(deep=True) for tc in tool_calls] if tool_calls else None
        self._append(Message(role="assistant", content=content, tool_calls=calls))
        logger.debug(
            "Conversation %s: assistant message added (tool_calls=%d)",
            self.id,
            len(calls or []),
        )

    def add_tool_message(self, tool_call_id: str, tool_name: str, content: str) -> None:
        self._append(
            Message(role="tool", content=content, tool_call_id=tool_call_id, tool_name=tool_name)
        )
        logger.debug(
            "Conversation %s: tool message added for %s (%s)", self.id, tool_name, tool_call_id
        )

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        self._prune()
        self._metadata.total_tokens = self.get_token_count()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_messages(self) -> list[Message]:
        """Deep copy of the ordered message list."""
        return [m.model_copy(deep=True) for m in self._messages]

    def _last_with_role(self, role: str) -> Message | None:
        for m in reversed(self._messages):
            if m.role == role:
                return m.model_copy(deep=True)
        return None

    def get_last_user_message(self) -> Message | None:
        return self._last_with_role("user")

    def get_last_assistant_message(self) -> Message | None:
        return self._last_with_role("assistant")

    def get_metadata(self) -> ConversationMetadata:
        return self._metadata.model_copy()

    def get_token_count(self) -> int:
        return self._estimate(self._messages)

    def is_within_limits(self) -> bool:
        if self._max_messages is not None and len(self._messages) > self._max_messages:
            return False
        if self._max_tokens is not None and self.get_token_count() > self._max_tokens:
            return False
        return True

    def to_json(self) -> dict[str, Any]:
        return {
            "metadata": self._metadata.model_dump(mode="json"),
            "messages": [m.model_dump(mode="json", exclude_none=True) for m in self._messages],
        }

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self._messages = [self._system_message.model_copy()]
        self._metadata.message_count = 0
        self._metadata.total_tokens = self.get_token_count()
        logger.info("Conversation %s cleared", self.id)

    def _prune(self) -> None:
        if self.is_within_limits():
            return

        head = self._messages[0]
        turns = group_turns(self._messages[1:])
        removed = 0

        def flat() -> list[Message]:
            return [head] + [m for t in turns for m in t]

        if self._max_messages is not None:
            while len(turns) > 1 and 1 + sum(len(t) for t in turns) > self._max_messages:
                removed += len(turns.pop(0))

        if self._max_tokens is not None:
            while len(turns) > 1 and self._estimate(flat()) > self._max_tokens:
                removed += len(turns.pop(0))

        if removed:
            self._messages = flat()
            logger.info(
                "Conversation %s pruned %d messages (now %d)",
                self.id,
                removed,
                len(self._messages),
            )
