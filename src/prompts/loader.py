from __future__ import annotations

from pathlib import Path

DEFAULT_SYSTEM_PROMPT_FILE = "receptionist.txt"


def load_prompt(filename: str) -> str:
    """Load a prompt text file shipped with the codebase."""

    prompt_dir = Path(__file__).resolve().parent
    path = prompt_dir / filename
    if not path.exists():
        raise RuntimeError(f"Prompt file not found: {filename}")
    return path.read_text(encoding="utf-8").strip()


def resolve_system_prompt(configured: str | None) -> str:
    """Return the configured training script or the bundled default."""

    if configured and configured.strip():
        return configured.strip()
    return load_prompt(DEFAULT_SYSTEM_PROMPT_FILE)
