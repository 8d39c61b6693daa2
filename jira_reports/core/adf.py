"""Minimal Atlassian Document Format (ADF) helpers.

Only what reports need: building paragraph documents for comments and issue
descriptions, and pulling a short plain-text preview out of a comment body.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any


def first_text(body: Any) -> str:
    """Return the first text node of the first paragraph.

    Deliberately lossy: later paragraphs, marks, mentions and nested blocks
    are ignored. Plain-string bodies (REST v2 style) are returned stripped.
    """
    if body is None:
        return ""
    if isinstance(body, str):
        stripped = body.strip()
        if not (stripped.startswith("{") and '"type"' in stripped):
            return stripped
        try:
            body = json.loads(stripped)
        except (json.JSONDecodeError, ValueError):
            return stripped
    if not isinstance(body, dict):
        return ""
    content = body.get("content") or []
    if not content or not isinstance(content[0], dict):
        return ""
    inner = content[0].get("content") or []
    if not inner or not isinstance(inner[0], dict):
        return ""
    text = inner[0].get("text")
    return str(text) if text else ""


def text_node(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def mention_node(account_id: str, display_name: str | None = None) -> dict[str, Any]:
    return {
        "type": "mention",
        "attrs": {"id": account_id, "text": f"@{display_name or account_id}", "accessLevel": ""},
    }


def paragraph(*nodes: dict[str, Any]) -> dict[str, Any]:
    return {"type": "paragraph", "content": list(nodes)}


def document(*paragraphs: dict[str, Any]) -> dict[str, Any]:
    return {"type": "doc", "version": 1, "content": list(paragraphs)}


def text_document(text: str) -> dict[str, Any]:
    # Empty text nodes are rejected by Jira
    return document(paragraph(text_node(text or " ")))


def mentions_paragraph(mentions: Iterable[tuple[str, str | None]], prefix: str = "CC: ") -> dict[str, Any] | None:
    """Paragraph with ``prefix`` followed by space-separated mentions, or None when empty."""
    nodes: list[dict[str, Any]] = []
    for account_id, name in mentions:
        if not account_id:
            continue
        if nodes:
            nodes.append(text_node(" "))
        nodes.append(mention_node(account_id, name))
    if not nodes:
        return None
    return paragraph(text_node(prefix), *nodes)
