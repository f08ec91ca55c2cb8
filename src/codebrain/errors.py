"""Exception taxonomy shared by the ingestion pipeline, retrieval and the CLI."""

from __future__ import annotations


class CodebrainError(Exception):
    """Base class for all domain errors raised by codebrain."""


class UnsupportedFileTypeError(CodebrainError):
    """Raised by document extraction for an extension it cannot read."""


class InsufficientContextError(CodebrainError):
    """Retrieval found no context and the conversation has no history."""


class ProjectNotFoundError(CodebrainError):
    pass


class TaskNotFoundError(CodebrainError):
    pass


class ConversationNotFoundError(CodebrainError):
    pass


class InvalidTaskStatusError(CodebrainError):
    pass
