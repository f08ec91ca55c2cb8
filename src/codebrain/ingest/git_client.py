"""Git client — clone/pull, log, name-status and patch via the git executable.

Security requirements:
- shell=False always (no command injection).
- URL scheme whitelist: https://, http://, git@ only.
- GIT_TOKEN injected into URL in-memory; never logged, never in error output.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import urllib.parse
from collections.abc import Callable
from pathlib import Path

from codebrain.db.models import CommitInfo

logger = logging.getLogger(__name__)

# URL schemes that are allowed for remote git repositories.
_ALLOWED_SCHEMES = {"https", "http"}
_GIT_SSH_PREFIX = "git@"
_SSH_RE = re.compile(r"^git@([^:]+):(.+)$")

# Regex to sanitise clone URLs in error messages (strip credentials).
_CRED_RE = re.compile(r"(https?://)([^@/]+@)", re.IGNORECASE)

# Unit and record separators keep multi-line commit bodies intact.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = "--format=%H%x1f%an%x1f%ae%x1f%aI%x1f%B%x1e"


class GitError(RuntimeError):
    """A git command failed; the message never contains credentials."""


def sanitise_url(url: str) -> str:
    """Remove embedded credentials from a URL for safe logging / error messages."""
    return _CRED_RE.sub(r"\1***@", url)


def is_remote(source: str) -> bool:
    # Any source with a :// scheme or git@ prefix is treated as remote.
    # Unknown schemes are caught by validate_url().
    return "://" in source or source.startswith(_GIT_SSH_PREFIX)


def validate_url(url: str) -> None:
    """Raise ValueError if *url* uses a disallowed scheme."""
    if url.startswith(_GIT_SSH_PREFIX):
        return  # git@ SSH is allowed
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValueError(
            f"Unsupported URL scheme '{parsed.scheme}'. Allowed: https://, http://, git@"
        )


def inject_token(url: str) -> str:
    """Inject GIT_TOKEN into an HTTPS/HTTP URL for private repo auth.

    The modified URL is only used for the git call itself and is never
    logged or included in exception messages.
    """
    token = os.environ.get("GIT_TOKEN", "")
    if not token or not url.startswith(("https://", "http://")):
        return url
    parsed = urllib.parse.urlparse(url)
    return parsed._replace(netloc=f"{token}@{parsed.netloc}").geturl()


def workspace_path(source: str, workspace_dir: Path) -> Path:
    """Map a remote URL to a stable checkout directory under *workspace_dir*.

    ``https://github.com/acme/app.git`` → ``<workspace>/github.com/acme/app``;
    ``git@github.com:acme/app.git`` → the same layout. Anything else is
    flattened to a single safe directory name.
    """
    workspace_dir = Path(workspace_dir)
    ssh = _SSH_RE.match(source)
    if ssh:
        host, repo_path = ssh.group(1), ssh.group(2)
    else:
        parsed = urllib.parse.urlparse(source)
        if not parsed.hostname:
            return workspace_dir / re.sub(r"[^a-zA-Z0-9]", "_", source)
        host, repo_path = parsed.hostname, parsed.path
    repo_path = re.sub(r"\.git$", "", repo_path.strip("/"))
    parts = [p for p in repo_path.split("/") if p not in ("", ".", "..")]
    return workspace_dir.joinpath(host, *parts)


def parse_log(output: str) -> list[CommitInfo]:
    """Parse ``git log`` output produced with ``_LOG_FORMAT``."""
    commits: list[CommitInfo] = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        fields = record.split(_FIELD_SEP, 4)
        if len(fields) != 5:
            logger.warning("Skipping malformed git log record: %r", record[:80])
            continue
        commit_hash, author_name, author_email, date, message = fields
        commits.append(
            CommitInfo(
                hash=commit_hash.strip(),
                author_name=author_name,
                author_email=author_email,
                date=date,
                message=message.strip(),
            )
        )
    return commits


def parse_name_status(output: str) -> list[tuple[str, str]]:
    """Parse ``git show --name-status`` into ``(change_type, path)`` pairs.

    Renames and copies (``R100\\told\\tnew``) report the new path.
    """
    changes: list[tuple[str, str]] = []
    for line in output.splitlines():
        parts = line.strip("\n").split("\t")
        if len(parts) < 2 or not parts[0].strip():
            continue
        change_type = parts[0].strip()
        path = parts[-1].strip() if change_type[:1] in ("R", "C") else parts[1].strip()
        if path:
            changes.append((change_type, path))
    return changes


class GitRepository:
    """Thin wrapper over the git executable for one working tree.

    Args:
        path: Working tree (need not exist yet when used via ``clone_or_pull``).
        progress: Optional callable receiving human-readable progress lines.
    """

    def __init__(self, path: Path, progress: Callable[[str], None] | None = None) -> None:
        self.path = Path(path)
        self._progress = progress or (lambda _msg: None)

    @classmethod
    def clone_or_pull(
        cls,
        source: str,
        workspace_dir: Path,
        progress: Callable[[str], None] | None = None,
    ) -> GitRepository:
        """Clone *source* into the workspace, or pull if a checkout exists."""
        validate_url(source)
        target = workspace_path(source, workspace_dir)
        repo = cls(target, progress)
        safe = sanitise_url(source)
        if (target / ".git").exists():
            repo._progress(f"Found existing repository. Fetching updates from {safe}...")
            repo._run("pull", "--ff-only", context=f"git pull for {safe}")
            repo._progress("-> Updates pulled successfully.")
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            repo._progress(f"Cloning repository from {safe}...")
            _run_git(
                ["clone", "--", inject_token(source), str(target)],
                cwd=None,
                context=f"git clone for {safe}",
            )
            repo._progress("-> Cloned successfully.")
        return repo

    @classmethod
    def open(cls, path: Path) -> GitRepository:
        """Open an existing local working tree; raises ValueError if it is not one."""
        repo_path = Path(path).resolve()
        if not repo_path.is_dir():
            raise ValueError(f"Repository path does not exist: {path}")
        return cls(repo_path)

    def is_repository(self) -> bool:
        return (self.path / ".git").exists()

    def log(self) -> list[CommitInfo]:
        """All commits reachable from HEAD, newest first. Empty for a repo without commits."""
        try:
            out = self._run("log", _LOG_FORMAT, context="git log")
        except GitError as exc:
            if "does not have any commits" in str(exc):
                return []
            raise
        return parse_log(out)

    def name_status(self, commit_hash: str) -> str:
        return self._run(
            "show", "--name-status", "--pretty=format:", commit_hash,
            context=f"git show --name-status {commit_hash[:7]}",
        )

    def changed_files(self, commit_hash: str) -> list[tuple[str, str]]:
        return parse_name_status(self.name_status(commit_hash))

    def patch(self, commit_hash: str) -> str:
        return self._run(
            "show", "--pretty=format:", "--patch", commit_hash,
            context=f"git show {commit_hash[:7]}",
        )

    def _run(self, *args: str, context: str) -> str:
        return _run_git(list(args), cwd=self.path, context=context)


def _run_git(args: list[str], cwd: Path | None, context: str) -> str:
    """Run git (shell=False). Raises GitError with credentials stripped."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            shell=False,
            check=True,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        raise GitError("git executable not found on PATH") from None
    except subprocess.CalledProcessError as exc:
        # Strip credentials from stderr before surfacing in error message.
        stderr_safe = sanitise_url((exc.stderr or "").strip())
        raise GitError(f"{context} failed: {stderr_safe}") from None
    return result.stdout
