"""
Cloned sections hold imported raw markup instead of blocks.

Their content is written once, at import time, and is read-only afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Any, Dict, Optional, Tuple

from pagebuilder.domain.document import (
    ClonedBody,
    Section,
    SectionBody,
    SectionKind,
    StructuredBody,
)
from pagebuilder.domain.invariants.exceptions import InvalidChildForVariant

# Keys used by older rows that flagged clones inside the style map
LEGACY_CLONE_FLAG = "cloneMode"
LEGACY_CLONE_KEYS = (LEGACY_CLONE_FLAG, "html", "css", "js")


@dataclass(frozen=True)
class RawContent:
    html: str = ""
    css: str = ""
    js: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RawContent":
        if not isinstance(payload, dict):
            raise ValueError("Clone payload must be an object with html, css and js")
        values = {}
        for key in ("html", "css", "js"):
            value = payload.get(key) or ""
            if not isinstance(value, str):
                raise ValueError(f"Clone payload field '{key}' must be a string")
            values[key] = value
        if not values["html"].strip():
            raise ValueError("Clone payload requires non-empty html")
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return {"html": self.html, "css": self.css, "js": self.js}

    def to_body(self) -> ClonedBody:
        return ClonedBody(html=self.html, css=self.css, js=self.js)


def is_clone(section: Section) -> bool:
    return section.kind is SectionKind.CLONED


def get_raw_content(section: Section) -> RawContent:
    if not isinstance(section.body, ClonedBody):
        raise InvalidChildForVariant(
            f"Section {section.id} is structured and has no raw content"
        )
    body = section.body
    return RawContent(html=body.html, css=body.css, js=body.js)


def assert_accepts_blocks(section: Section, action: str = "add blocks to") -> None:
    if is_clone(section):
        raise InvalidChildForVariant(
            f"Cannot {action} cloned section {section.id}; its content is read-only"
        )


def split_legacy_styles(styles: Optional[Dict[str, Any]]) -> Tuple[SectionBody, Dict[str, Any]]:
    """
    Turn a legacy style map into an explicit body.

    ``{"cloneMode": true, "html": ..., "css": ..., "js": ...}`` becomes a
    ``ClonedBody``; the clone keys are removed from the returned styles.
    Anything else is a structured body with the styles untouched.
    """
    styles = dict(styles or {})
    if styles.get(LEGACY_CLONE_FLAG) is not True:
        return StructuredBody(), styles

    body = ClonedBody(
        html=styles.get("html") or "",
        css=styles.get("css") or "",
        js=styles.get("js") or "",
    )
    for key in LEGACY_CLONE_KEYS:
        styles.pop(key, None)
    return body, styles


def compose_document(raw: RawContent, title: str = "") -> str:
    """Standalone HTML document for previewing a cloned section."""
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "  <head>\n"
        '    <meta charset="UTF-8">\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"    <title>{escape(title)}</title>\n"
        f"    <style>\n{raw.css}\n    </style>\n"
        "  </head>\n"
        "  <body>\n"
        f"{raw.html}\n"
        f"    <script>\n{raw.js}\n    </script>\n"
        "  </body>\n"
        "</html>"
    )
