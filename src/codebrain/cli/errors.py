"""codebrain rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from codebrain.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from codebrain.rag.llm_client import _PROVIDER_ENV


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = _PROVIDER_ENV.get(provider.lower()) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_config(message: str) -> str:
    """Config file is invalid (forbidden key, bad value)."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix codebrain.yaml or ~/.codebrain/config.yaml and retry."
    )


def err_project_not_found(project_id: int) -> str:
    return (
        f"[red]Error:[/] Project {project_id} does not exist.\n"
        "  Run:  codebrain projects list   to see registered projects."
    )


def err_task_not_found(number: int) -> str:
    return (
        f"[red]Error:[/] Task #{number} not found.\n"
        "  Run:  codebrain tasks list --project <id>   to see task numbers."
    )


def err_invalid_status(status: str) -> str:
    return (
        f"[red]Error:[/] Invalid task status '{status}'.\n"
        "  Use one of:  open, in_progress, done"
    )


def err_conversation_not_found(conversation_id: int) -> str:
    return (
        f"[red]Error:[/] Conversation {conversation_id} does not exist.\n"
        "  Start a new one with:  codebrain ask --project <id> \"<question>\""
    )


def err_unsupported_file(name: str, supported: list[str]) -> str:
    return (
        f"[red]Error:[/] Unsupported document type: '{name}'.\n"
        f"  Supported extensions: {', '.join(supported)}"
    )


def err_documents_disabled() -> str:
    """Document tables are missing because the feature is switched off."""
    return (
        "[red]Error:[/] Project documents are not enabled for this database.\n"
        "  Set  documents: {enabled: true}  in codebrain.yaml and rerun the command."
    )


def err_insufficient_context() -> str:
    return (
        "[yellow]No relevant context found[/] for this question.\n"
        "  Run:  codebrain ingest --project <id>   to index the project first,\n"
        "  or rephrase the question."
    )


def err_source_unreachable(source: str, detail: str) -> str:
    """Clone / pull / path resolution failed. *detail* is already credential-free."""
    return (
        f"[red]Error:[/] Could not read project source '{source}'.\n"
        f"  {detail}\n"
        "  Check the path or URL; private repositories need  export GIT_TOKEN=<token>"
    )
