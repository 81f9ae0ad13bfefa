"""Parameter models for the ``comments`` family (threaded comments and notes)."""

from __future__ import annotations

from sheetpilot.protocol.params.base import ActionParams, EmptyParams, Text


class ContentParams(ActionParams):
    content: Text
    author: str | None = None


class ResolveCommentParams(ActionParams):
    resolved: bool = True


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "addComment": ContentParams,
    "addNote": ContentParams,
    "editComment": ContentParams,
    "editNote": ContentParams,
    "deleteComment": EmptyParams,
    "deleteNote": EmptyParams,
    "replyToComment": ContentParams,
    "resolveComment": ResolveCommentParams,
}
