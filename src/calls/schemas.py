"""Pydantic schemas for the call transcript."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict

Role = Literal["system", "user", "assistant"]


class Turn(BaseModel):
    """One message of the conversation transcript."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def to_chat_messages(turns: Iterable[Turn]) -> list[dict[str, str]]:
    """Render turns in the chat completion message format, preserving order."""

    return [turn.as_message() for turn in turns]
