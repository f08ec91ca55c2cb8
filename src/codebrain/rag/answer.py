"""Question answering: retrieve, assemble, and stream the model's reply."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from codebrain.config import RetrievalCfg
from codebrain.db.models import Source
from codebrain.db.vectors import to_blob
from codebrain.errors import InsufficientContextError
from codebrain.rag.assembler import assemble
from codebrain.rag.retriever import retrieve

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.rag.llm_client import ModelGateway

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert AI software engineer. Answer the user's question based ONLY on "
    "the provided context and conversation history. Context may include past decisions, "
    "project documents, tasks, commits, and code snippets. Be concise, accurate, and "
    "provide code snippets in Markdown format when relevant. If the context and history "
    "are insufficient, state that clearly."
)


@dataclass
class Answer:
    """A streamed answer and the entities that informed it.

    ``stream`` is lazy: nothing is sent to the model until it is iterated.
    """

    stream: Iterator[str]
    sources: list[Source] = field(default_factory=list)
    context: str = ""


def build_messages(question: str, context: str, history: list[dict]) -> list[dict]:
    """System instruction, prior turns, then the context-bearing user turn."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        *({"role": m["role"], "content": m["content"]} for m in history),
        {"role": "user", "content": f"CONTEXT:\n{context}\n\nQUESTION:\n{question}"},
    ]


def get_answer(
    db: Database,
    project_id: int,
    question: str,
    history: list[dict],
    gateway: ModelGateway,
    limits: RetrievalCfg | None = None,
) -> Answer:
    """Answer *question* from the project index and the conversation *history*.

    The question is embedded once and the same vector drives every sub-search.

    Raises:
        InsufficientContextError: No context was found and *history* is empty.
    """
    embedding = to_blob(gateway.embed(question))
    hits = retrieve(db, project_id, embedding, limits)
    context = assemble(hits)

    if context.is_empty and not history:
        raise InsufficientContextError(
            "No relevant context found for this question "
            "(no notes, tasks, commits, documents or code, and no conversation history)."
        )
    logger.debug(
        "Answering with %d source(s), %d history message(s)", len(context.sources), len(history)
    )
    messages = build_messages(question, context.text, history)
    return Answer(
        stream=gateway.complete_stream(messages),
        sources=context.sources,
        context=context.text,
    )
