"""Deterministic repair of model-written JQL before it reaches Jira.

Every transformation skips text inside single- or double-quoted literals,
which keeps the whole pass idempotent: ``sanitize_jql(sanitize_jql(q)) == sanitize_jql(q)``.
"""

from __future__ import annotations

import re
from typing import Callable

from assistant.query.templates import resolve_project_key

RESERVED_WORDS = (
    "AND", "OR", "NOT", "IN", "IS", "WAS", "EMPTY", "NULL",
    "ORDER", "BY", "ASC", "DESC", "CHANGED",
)

_QUOTED = re.compile(r"""("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')""")
_WHITESPACE = re.compile(r"\s+")
_LIMIT = re.compile(r"\s*\bLIMIT\s+\d+\b", re.IGNORECASE)
_ORDER_BY = re.compile(r"\bORDER\s+BY\b\s*", re.IGNORECASE)

_IS_NOT_EMPTY = re.compile(r"\bis\s+not\s+(?:empty|null)\b", re.IGNORECASE)
_IS_EMPTY = re.compile(r"\bis\s+(?:empty|null)\b", re.IGNORECASE)
_NOT_EQUALS_EMPTY = re.compile(r"\s*(?:!=|<>)\s*(?:empty|null)\b", re.IGNORECASE)
_EQUALS_EMPTY = re.compile(r"\s*(?<![!<>])=\s*(?:empty|null)\b", re.IGNORECASE)

# A comparison operator; ">=" and "<=" are excluded by the lookbehind.
_OPERATOR = r"(?<![!<>])(?:!=|=|!~|~)\s*"

_MULTIWORD_VALUE = re.compile(
    rf"(?P<lead>{_OPERATOR})"
    r"(?P<value>[^\s\"'()=!~<>,][^\"'()=!~<>,]*?)"
    r"(?=\s+(?:AND|OR)\b|\s*\)|\s*$)",
    re.IGNORECASE,
)
_RESERVED_VALUE = re.compile(
    rf"(?P<lead>{_OPERATOR})(?P<word>{'|'.join(RESERVED_WORDS)})\b(?!\s*\()",
    re.IGNORECASE,
)


def _map_unquoted(jql: str, func: Callable[[str], str]) -> str:
    """Apply *func* to every segment of *jql* outside quoted literals."""
    parts = _QUOTED.split(jql)
    return "".join(func(part) if i % 2 == 0 else part for i, part in enumerate(parts))


def _split_order_by(jql: str) -> tuple[str, str]:
    """Split *jql* into its filter and its ``ORDER BY`` tail (outside quotes)."""
    offset = 0
    for i, part in enumerate(_QUOTED.split(jql)):
        if i % 2 == 0:
            match = _ORDER_BY.search(part)
            if match:
                start = offset + match.start()
                rest = jql[offset + match.end():].strip()
                return jql[:start].strip(), f"ORDER BY {rest}".strip()
        offset += len(part)
    return jql.strip(), ""


def _replace_bare_commas(where: str) -> str:
    """Turn commas outside parentheses and quotes into ``AND``."""
    pieces: list[str] = []
    buf: list[str] = []
    depth = 0
    for i, part in enumerate(_QUOTED.split(where)):
        if i % 2:
            buf.append(part)
            continue
        for ch in part:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth = max(0, depth - 1)
            elif ch == "," and depth == 0:
                pieces.append("".join(buf).strip())
                buf = []
                continue
            buf.append(ch)
    if not pieces:
        return where
    pieces.append("".join(buf).strip())
    return " AND ".join(p for p in pieces if p)


def _normalize_empty(segment: str) -> str:
    segment = _IS_NOT_EMPTY.sub("is not EMPTY", segment)
    segment = _IS_EMPTY.sub("is EMPTY", segment)
    segment = _NOT_EQUALS_EMPTY.sub(" is not EMPTY", segment)
    return _EQUALS_EMPTY.sub(" is EMPTY", segment)


def _quote_multiword_values(segment: str) -> str:
    def repl(match: re.Match[str]) -> str:
        value = match.group("value")
        if not re.search(r"\s", value):
            return match.group(0)
        return f'{match.group("lead")}"{value}"'

    return _MULTIWORD_VALUE.sub(repl, segment)


def _quote_reserved_values(segment: str) -> str:
    return _RESERVED_VALUE.sub(lambda m: f'{m.group("lead")}"{m.group("word")}"', segment)


def has_project_scope(jql: str, project_key: str | None = None) -> bool:
    """Return True if *jql* already restricts results to the project."""
    key = re.escape(resolve_project_key(project_key))
    pattern = re.compile(
        rf"""\bproject\s*(?:=\s*["']?{key}["']?(?![\w-])|in\s*\([^)]*\b{key}\b[^)]*\))""",
        re.IGNORECASE,
    )
    return bool(pattern.search(jql))


def sanitize_jql(jql: str, project_key: str | None = None) -> str:
    """Correct the syntax defects models commonly produce in JQL.

    In order: collapse whitespace, drop ``LIMIT n``, turn bare commas into
    ``AND``, normalize empty checks to ``is EMPTY`` / ``is not EMPTY``, quote
    multi-word values, quote reserved words used as values, then scope the
    filter to the project if it is not already.
    """
    key = resolve_project_key(project_key)
    jql = _map_unquoted((jql or "").strip(), lambda s: _WHITESPACE.sub(" ", s))
    jql = _map_unquoted(jql, lambda s: _LIMIT.sub("", s))

    where, order_by = _split_order_by(jql)
    where = _replace_bare_commas(where)
    where = _map_unquoted(where, _normalize_empty)
    where = _map_unquoted(where, _quote_multiword_values)
    where = _map_unquoted(where, _quote_reserved_values)

    if not has_project_scope(where, key):
        where = f"project = {key} AND ({where})" if where else f"project = {key}"

    return f"{where} {order_by}".strip()
