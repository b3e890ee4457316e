"""Prompt template loader."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

_PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Load a prompt template from the prompts directory.

    Args:
        name: Prompt file name without extension (e.g. ``"classifier"``).

    Returns:
        The prompt text content.

    Raises:
        FileNotFoundError: If the prompt file does not exist.
    """
    path = _PROMPTS_DIR / f"{name}.txt"
    return path.read_text()


def render_prompt(name: str, **values: str) -> str:
    """Load a prompt and substitute ``{placeholder}`` markers.

    Plain ``str.replace`` is used instead of ``str.format`` because the
    templates contain literal braces (JSON and JQL examples).
    """
    prompt = load_prompt(name)
    for key, value in values.items():
        prompt = prompt.replace(f"{{{key}}}", str(value))
    return prompt
