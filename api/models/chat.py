"""Pydantic models for the chat store's REST and streaming endpoints."""

from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from messaging.models import HistoryMessage, Role
from messaging.trees.data import ChatSnapshot, ConversationTree

# =============================================================================
# Message Types
# =============================================================================


class HistoryMessagePayload(BaseModel):
    message_uuid: str
    role: Role
    content: str = ""

    @model_validator(mode="before")
    @classmethod
    def coerce_none_content(cls, data: Any) -> Any:
        """Backend returns content: null for empty system prompts."""
        if isinstance(data, dict) and data.get("content") is None:
            return {**data, "content": ""}
        return data

    def to_domain(self) -> HistoryMessage:
        return HistoryMessage(id=self.message_uuid, role=self.role, content=self.content)


class StreamMessageRequest(BaseModel):
    content: str
    parent_message_uuid: str | None = None
    model_id: str | None = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be blank")
        return v.strip()

    @field_validator("parent_message_uuid", "model_id", mode="before")
    @classmethod
    def parse_optional_str(cls, v):
        if v == "":
            return None
        return v


# =============================================================================
# Snapshot Types
# =============================================================================


class CompleteChatData(BaseModel):
    """Response of ``GET /api/v1/chats/{chat_uuid}/complete``."""

    chat_uuid: str
    title: str | None = None
    system_prompt: str | None = None
    messages: list[HistoryMessagePayload] = []
    tree_structure: dict[str, Any]
    metadata: dict[str, Any] = {}

    @field_validator("tree_structure")
    @classmethod
    def validate_tree_root(cls, v: dict[str, Any]) -> dict[str, Any]:
        missing = [k for k in ("role", "children") if k not in v]
        if "uuid" not in v and "id" not in v:
            missing.append("uuid")
        if missing or not isinstance(v.get("children"), list):
            raise ValueError(f"tree_structure is not a tree node (missing {missing})")
        return v

    def to_snapshot(self) -> ChatSnapshot:
        """Build the immutable snapshot; raises InvalidTreeError on a bad tree."""
        return ChatSnapshot(
            chat_id=self.chat_uuid,
            tree=ConversationTree.from_dict(self.tree_structure),
            messages=tuple(m.to_domain() for m in self.messages),
            title=self.title or "New Chat",
            system_prompt=self.system_prompt or None,
            metadata=dict(self.metadata),
        )
