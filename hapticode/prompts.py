"""Prompt templates for the completion-backed modes, plus response cleanup."""

from __future__ import annotations

import re

MODE_NOT_RECOGNIZED = "Mode not recognized."

# mode -> (instructions, request field appended after them)
_TEMPLATES = {
    "generate": (
        "You are a Python coding assistant.\n"
        "Convert the user input into valid Python code.\n"
        "Return ONLY Python code. No Markdown.\n"
        "\n"
        "Input:\n",
        "text",
    ),
    "simplify_code": (
        "You are an accessibility expert.\n"
        "Rewrite the code to be beginner-friendly and easy to read. Add comments.\n"
        "Keep the same behavior.\n"
        "Return ONLY code.\n"
        "\n"
        "Code:\n",
        "code",
    ),
    "explain_error": (
        "You are a teacher.\n"
        "Explain this error simply, in short.\n"
        "\n"
        "Error:\n",
        "text",
    ),
}

# Opening fence with optional language tag, or a bare closing fence.
_FENCE_RE = re.compile(r"```[A-Za-z0-9_+.-]*")


def build_prompt(mode: str, text: str | None = None, code: str | None = None) -> str:
    """Fill the template for a completion mode.

    Unknown modes return MODE_NOT_RECOGNIZED; callers should not forward that.
    """
    entry = _TEMPLATES.get(mode)
    if entry is None:
        return MODE_NOT_RECOGNIZED
    instructions, field = entry
    value = text if field == "text" else code
    return instructions + (value or "")


def strip_code_fences(text: str | None) -> str:
    """Remove Markdown code-fence markers (```python, ```py, bare ```) and trim.

    Idempotent: applying it to its own output changes nothing.
    """
    return _FENCE_RE.sub("", text or "").strip()
