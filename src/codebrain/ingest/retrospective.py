"""Retrospective task generation from commit diffs, and task-closing references.

Model output is untrusted: it must be the exact sentinel ``NULL`` or a JSON
object with string ``title`` and ``category`` fields. Anything else is a
parse failure, reported to the caller as ``TaskDraftError``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from codebrain.db.models import TASK_CATEGORIES

if TYPE_CHECKING:
    from codebrain.rag.llm_client import ModelGateway

# "closes #12", "Fixed #3", "resolves #40"; case-insensitive.
CLOSING_RE = re.compile(r"\b(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s+#(\d+)", re.IGNORECASE)

NULL_SENTINEL = "NULL"
_FALLBACK_CATEGORY = "chore"
_MAX_DIFF_CHARS = 20_000
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

_TASK_PROMPT = """\
You are an expert software engineering project manager analyzing a git commit. \
Your goal is to generate a concise task title and categorize the work based on \
the provided commit message and code diff.

Rules:
1. Respond ONLY with a single JSON object. No explanatory text, no markdown.
2. If the diff is truly trivial (a typo in a comment, a whitespace change), \
respond with the exact string "NULL" instead of a JSON object.
3. The JSON object has the keys "title", "category" and "description".
   - "title": starts with an imperative verb ("Add", "Fix", "Refactor", \
"Update", "Implement"); one concise line; no commit hash or author.
   - "category": exactly one of 'feature', 'fix', 'refactor', 'chore', 'docs', 'test'.
   - "description": one or two sentences describing the work that was done.

COMMIT MESSAGE:
```
{message}
```

GIT DIFF:
```diff
{diff}
```
"""


class TaskDraftError(ValueError):
    """The model reply was neither ``NULL`` nor a valid task object."""


@dataclass
class TaskDraft:
    title: str
    category: str
    description: str | None = None

    @property
    def embedding_text(self) -> str:
        return f"{self.title}\n\n{self.description}" if self.description else self.title


def find_closed_task(message: str) -> int | None:
    """Return the task number referenced by a closing keyword, if any."""
    match = CLOSING_RE.search(message)
    return int(match.group(1)) if match else None


def is_trivial(patch: str, min_patch_chars: int) -> bool:
    return len(patch.strip()) < min_patch_chars


def parse_task_draft(reply: str) -> TaskDraft | None:
    """Validate a model reply. ``None`` means the model judged the commit trivial.

    Raises:
        TaskDraftError: On invalid JSON or missing/ill-typed fields.
    """
    text = _CODE_FENCE_RE.sub("", reply.strip()).strip()
    if text.strip('"').upper() == NULL_SENTINEL:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TaskDraftError(f"Task reply is not valid JSON: {exc.msg}") from None
    if not isinstance(data, dict):
        raise TaskDraftError("Task reply is not a JSON object")

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise TaskDraftError("Task reply has no 'title' string")
    category = data.get("category")
    if not isinstance(category, str):
        raise TaskDraftError("Task reply has no 'category' string")
    category = category.strip().lower()
    if category not in TASK_CATEGORIES:
        category = _FALLBACK_CATEGORY

    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        description = None
    return TaskDraft(title=title.strip(), category=category, description=description and description.strip())


def draft_task(gateway: ModelGateway, message: str, patch: str) -> TaskDraft | None:
    """Ask the task model for a retrospective task describing one commit."""
    prompt = _TASK_PROMPT.format(message=message, diff=patch[:_MAX_DIFF_CHARS])
    reply = gateway.complete(
        [{"role": "user", "content": prompt}],
        model=gateway.task_model,
        max_tokens=400,
    )
    return parse_task_draft(reply)
