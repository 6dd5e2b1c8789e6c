"""Expand ${VAR} placeholders against a job's environment context.

Supported forms: ``${NAME}``, ``${NAME:-default}`` and the escape
``$${NAME}``, which produces the literal text ``${NAME}``. Substituted values
and defaults are expanded again, so a variable may refer to other variables.
"""

from __future__ import annotations

from typing import Mapping

_PREFIX = "${"
_SUFFIX = "}"
_ESCAPE = "$"
_DEFAULT_DELIMITER = ":-"


class TemplateCycleError(ValueError):
    """Raised when a variable refers back to itself, directly or indirectly."""
    pass


def substitute(template: str | None, context: Mapping[str, str]) -> str | None:
    """Replace every known ${NAME} in template with its context value.

    Unknown names are left as literal text unless a ``:-`` default is given.
    None stays None so callers can tell "not configured" from "configured
    to an empty string".
    """
    if template is None:
        return None
    return _expand(template, context, [])


def _closing_brace(text: str, start: int) -> int:
    """Index of the suffix closing a placeholder body starting at start, or -1."""
    depth = 0
    pos = start
    while pos < len(text):
        if text.startswith(_PREFIX, pos):
            depth += 1
            pos += len(_PREFIX)
            continue
        if text[pos] == _SUFFIX:
            if depth == 0:
                return pos
            depth -= 1
        pos += 1
    return -1


def _expand(text: str, context: Mapping[str, str], resolving: list[str]) -> str:
    parts = []
    pos = 0
    while True:
        dollar = text.find("$", pos)
        if dollar == -1:
            parts.append(text[pos:])
            break
        parts.append(text[pos:dollar])

        escaped = text.startswith(_ESCAPE + _PREFIX, dollar)
        body_start = dollar + len(_PREFIX) + (1 if escaped else 0)
        if not escaped and not text.startswith(_PREFIX, dollar):
            parts.append("$")
            pos = dollar + 1
            continue

        end = _closing_brace(text, body_start)
        if end == -1:
            parts.append(text[dollar:])
            break

        if escaped:
            parts.append(text[dollar + 1:end + 1])
        else:
            literal = text[dollar:end + 1]
            parts.append(_resolve(text[body_start:end], literal, context, resolving))
        pos = end + 1

    return "".join(parts)


def _resolve(body: str, literal: str, context: Mapping[str, str], resolving: list[str]) -> str:
    name, delimiter, default = body.partition(_DEFAULT_DELIMITER)
    if name in context:
        if name in resolving:
            chain = "->".join(resolving + [name])
            raise TemplateCycleError(f"Infinite loop in property interpolation of {literal}: {chain}")
        return _expand(context[name], context, resolving + [name])
    if delimiter:
        return _expand(default, context, resolving)
    return literal
