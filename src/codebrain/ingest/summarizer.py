"""File summarizer: one-sentence purpose summary per indexed file.

Called once per changed file inside that file's transaction. The summary
vector drives the first stage of two-stage code retrieval, so a failed
summary fails the file: errors propagate and the caller rolls back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codebrain.rag.llm_client import ModelGateway

_SUMMARY_PROMPT = """\
Summarize the purpose of the following code file in one sentence. Be concise \
and focus on the file's primary role or responsibility.

File Path: {path}

--- CODE START ---
{content}
--- CODE END ---

One-sentence summary:"""

_MAX_CONTENT_CHARS = 24_000
_MAX_TOKENS = 100
_FALLBACK_SUMMARY = "Could not generate a summary."


class FileSummarizer:
    """Generate a one-sentence summary for a project file.

    Args:
        gateway: Model gateway; its ``summary_model`` is used.
        max_tokens: Maximum tokens in the generated summary.
    """

    def __init__(self, gateway: ModelGateway, max_tokens: int = _MAX_TOKENS) -> None:
        self._gateway = gateway
        self._max_tokens = max_tokens

    def summarize(self, path: str, content: str) -> str:
        """Return the summary for *path*; an empty model reply gets a placeholder."""
        prompt = _SUMMARY_PROMPT.format(path=path, content=content[:_MAX_CONTENT_CHARS])
        summary = self._gateway.complete(
            [{"role": "user", "content": prompt}],
            model=self._gateway.summary_model,
            max_tokens=self._max_tokens,
        )
        return summary.strip() or _FALLBACK_SUMMARY
