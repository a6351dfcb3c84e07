"""Placeholder substitution for user-configurable episode titles."""

from __future__ import annotations

import re
from typing import Mapping

PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{name}`` placeholders and tidy the result.

    Any text between single braces is a placeholder name, so ``{run-time}``
    is looked up as ``run-time``. Unknown placeholders render as empty
    strings. A dangling ``-`` left at either end by an empty field
    (``"{number} - {title}"`` without a number) is removed.
    """

    rendered = PLACEHOLDER_RE.sub(lambda match: values.get(match.group(1), ""), template)
    return rendered.strip().removesuffix("-").removeprefix("-").strip()
