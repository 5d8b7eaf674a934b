"""
Prompt templates are external files, loaded verbatim and never mutated.

Rendering is a single pass over the "{name}" markers of the template.
Substituted values are never rescanned, and unknown markers or literal
braces are left as they are.
"""

import re
from pathlib import Path
from typing import Mapping

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

_MARKER = re.compile(r"\{(\w+)\}")


def load_prompt_template(name: str) -> str:
    """Load prompts/<name>.txt. Raises FileNotFoundError if missing."""
    path = PROMPTS_DIR / f"{name}.txt"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")
    return path.read_text(encoding="utf-8")


def render_prompt(template: str, values: Mapping[str, object]) -> str:
    def substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        return str(values[key]) if key in values else match.group(0)

    return _MARKER.sub(substitute, template)
