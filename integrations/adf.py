"""Plain-text extraction from Atlassian Document Format (ADF) bodies."""

from __future__ import annotations

_LIST_TYPES = {"bulletList", "orderedList"}


def _node_text(node: dict) -> str:
    if not isinstance(node, dict):
        return ""
    if node.get("type") == "hardBreak":
        return "\n"
    if node.get("text"):
        return node["text"]
    if node.get("type") == "mention":
        return (node.get("attrs") or {}).get("text", "")
    return "".join(_node_text(child) for child in node.get("content") or [])


def _list_lines(block: dict) -> list[str]:
    lines = []
    ordered = block.get("type") == "orderedList"
    for i, item in enumerate(block.get("content") or [], start=1):
        if item.get("type") != "listItem":
            continue
        text = " ".join(_node_text(child).strip() for child in item.get("content") or [])
        bullet = f"{i}." if ordered else "•"
        lines.append(f"{bullet} {text.strip()}")
    return lines


def extract_text(body) -> str:
    """Return the readable text of a description or comment body.

    Args:
        body: A plain string, an ADF document dict, or ``None``.

    Returns:
        The text with one line per paragraph or list item, stripped.
        Unknown shapes give an empty string.
    """
    if body is None:
        return ""
    if isinstance(body, str):
        return body.strip()
    if not isinstance(body, dict) or not isinstance(body.get("content"), list):
        return ""

    lines: list[str] = []
    for block in body["content"]:
        if not isinstance(block, dict):
            continue
        kind = block.get("type")
        if kind in _LIST_TYPES:
            lines.extend(_list_lines(block))
        elif kind == "codeBlock":
            lines.append(f"```\n{_node_text(block)}\n```")
        else:
            lines.append(_node_text(block))
    return "\n".join(line for line in lines if line.strip()).strip()
