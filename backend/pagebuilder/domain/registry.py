"""
Block Type Registry.

One canonical tuple of ``BlockType`` entries. Categories are UI metadata;
the flat and grouped views are derived from the same entries on demand.
"""
from __future__ import annotations

import copy
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pagebuilder.domain.invariants.exceptions import UnknownBlockType

logger = logging.getLogger(__name__)

TEXT = "Text"
MEDIA = "Media"
INTERACTIVE = "Interactive"
LAYOUT = "Layout"
LISTS = "Lists"
FORMS = "Forms & Contact"
SOCIAL = "Social"
NAVIGATION = "Navigation"
SPORTS = "Sports"
DEVELOPER = "Developer"

UNKNOWN_TAG = "unknown"


@dataclass(frozen=True, eq=False)
class BlockType:
    tag: str
    label: str
    category: Optional[str]
    fields: Tuple[str, ...] = ()
    default_content: Dict[str, Any] = field(default_factory=dict)
    default_styles: Dict[str, Any] = field(default_factory=dict)

    def new_content(self) -> Dict[str, Any]:
        return copy.deepcopy(self.default_content)

    def new_styles(self) -> Dict[str, Any]:
        return dict(self.default_styles)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "label": self.label,
            "category": self.category,
            "fields": list(self.fields),
            "default_content": self.new_content(),
            "default_styles": self.new_styles(),
        }


def _type(tag, label, category, content=None, styles=None):
    content = content or {}
    return BlockType(
        tag=tag,
        label=label,
        category=category,
        fields=tuple(content),
        default_content=content,
        default_styles=styles or {},
    )


_ITEMS = ["Item 1", "Item 2", "Item 3"]

BLOCK_TYPES: Tuple[BlockType, ...] = (
    # Text
    _type("heading", "Heading", TEXT,
          {"text": "New Heading", "level": 2},
          {"fontSize": "1.875rem", "fontWeight": "700", "color": "#111827"}),
    _type("paragraph", "Paragraph", TEXT,
          {"text": "Paragraph text goes here..."},
          {"color": "#374151", "lineHeight": "1.625"}),
    _type("text", "Rich Text", TEXT,
          {"text": "Enter your text content here..."},
          {"color": "#4b5563"}),
    _type("quote", "Quote", TEXT,
          {"text": "Quote text goes here...", "author": ""},
          {"fontStyle": "italic", "borderLeft": "4px solid #3b82f6",
           "paddingLeft": "1rem", "color": "#374151"}),

    # Media
    _type("image", "Image", MEDIA,
          {"url": "", "alt": "Image description", "caption": ""},
          {"maxWidth": "100%", "borderRadius": "0.5rem"}),
    _type("gallery", "Gallery", MEDIA,
          {"images": [], "columns": 3, "spacing": "md", "lightbox": True},
          {"gap": "1rem"}),
    _type("video", "Video", MEDIA,
          {"url": "", "provider": "youtube", "autoplay": False},
          {"width": "100%", "aspectRatio": "16 / 9"}),
    _type("music", "Audio Player", MEDIA,
          {"url": "", "title": "", "artist": ""}),

    # Interactive
    _type("button", "Button", INTERACTIVE,
          {"text": "Button", "url": "#"},
          {"backgroundColor": "#3b82f6", "color": "#ffffff",
           "paddingTop": "0.5rem", "paddingBottom": "0.5rem",
           "paddingLeft": "1.5rem", "paddingRight": "1.5rem",
           "borderRadius": "0.5rem"}),
    _type("cta", "Call to Action", INTERACTIVE,
          {"title": "Ready to Get Started?", "buttonText": "Get Started", "buttonUrl": "#"},
          {"backgroundColor": "#3b82f6", "color": "#ffffff",
           "padding": "2rem", "textAlign": "center"}),
    _type("hero", "Hero Section", INTERACTIVE,
          {"title": "Welcome to Our Organization",
           "subtitle": "Building champions on and off the field",
           "backgroundImage": "", "overlayOpacity": 0.5,
           "ctaText": "Learn More", "ctaLink": "#"},
          {"minHeight": "400px", "color": "#ffffff", "textAlign": "center",
           "backgroundColor": "#1e3a8a"}),

    # Layout
    _type("container", "Container", LAYOUT,
          {"maxWidth": "1200px"},
          {"marginLeft": "auto", "marginRight": "auto"}),
    _type("columns", "Columns", LAYOUT,
          {"columns": 2, "gap": "md"},
          {"display": "grid", "gap": "1rem"}),
    _type("divider", "Divider", LAYOUT,
          {},
          {"borderTop": "1px solid #e5e7eb", "marginTop": "1rem", "marginBottom": "1rem"}),
    _type("spacer", "Spacer", LAYOUT,
          {"height": "2rem"},
          {"height": "2rem"}),

    # Lists
    _type("list", "Bullet List", LISTS,
          {"items": list(_ITEMS)},
          {"listStyleType": "disc", "paddingLeft": "1.5rem"}),
    _type("numbered-list", "Numbered List", LISTS,
          {"items": list(_ITEMS)},
          {"listStyleType": "decimal", "paddingLeft": "1.5rem"}),
    _type("checklist", "Checklist", LISTS,
          {"items": [{"text": item, "checked": False} for item in _ITEMS]},
          {"listStyleType": "none"}),

    # Forms & Contact
    _type("contact-form", "Contact Form", FORMS,
          {"formId": None, "fields": ["name", "email", "message"], "submitText": "Send Message"}),
    _type("subscribe", "Subscribe Form", FORMS,
          {"placeholder": "Enter your email", "buttonText": "Subscribe"}),
    _type("input", "Text Input", FORMS,
          {"label": "Label", "placeholder": ""}),
    _type("textarea", "Text Area", FORMS,
          {"label": "Label", "placeholder": "", "rows": 4}),

    # Social
    _type("social-share", "Share Buttons", SOCIAL,
          {"networks": ["facebook", "twitter", "linkedin"]}),
    _type("social-feed", "Social Feed", SOCIAL,
          {"network": "instagram", "handle": "", "limit": 6}),
    _type("social-follow", "Follow Buttons", SOCIAL,
          {"links": {}}),

    # Navigation
    _type("navbar", "Navigation Bar", NAVIGATION,
          {"logo": "", "links": [{"label": "Home", "url": "/"}]},
          {"display": "flex", "justifyContent": "space-between", "alignItems": "center"}),
    _type("menu", "Menu", NAVIGATION,
          {"items": []}),
    _type("breadcrumbs", "Breadcrumbs", NAVIGATION,
          {"items": [{"label": "Home", "url": "/"}]},
          {"fontSize": "0.875rem", "color": "#6b7280"}),

    # Sports
    _type("team-roster", "Team Roster", SPORTS,
          {"teamId": None, "layout": "grid", "showPhotos": True, "showStats": True}),
    _type("schedule", "Schedule", SPORTS,
          {"teamId": None, "view": "list", "showPastEvents": False, "maxEvents": 10}),
    _type("tournament-bracket", "Tournament Bracket", SPORTS,
          {"tournamentId": None, "rounds": []}),
    _type("player-stats", "Player Stats", SPORTS,
          {"playerId": None, "stats": []}),
    _type("scoreboard", "Scoreboard", SPORTS,
          {"homeTeam": "", "awayTeam": "", "homeScore": 0, "awayScore": 0, "status": "upcoming"},
          {"textAlign": "center", "fontWeight": "700"}),

    # Developer
    _type("code", "Code Block", DEVELOPER,
          {"code": "// Enter your code here", "language": "javascript"},
          {"backgroundColor": "#111827", "color": "#4ade80", "padding": "1rem",
           "borderRadius": "0.5rem", "fontFamily": "monospace"}),
    _type("embed", "Embed Code", DEVELOPER,
          {"code": ""}),
    _type("custom-html", "Custom HTML", DEVELOPER,
          {"html": ""}),
    _type("html", "Imported HTML", DEVELOPER,
          {"html": ""}),
)

UNKNOWN_BLOCK_TYPE = BlockType(tag=UNKNOWN_TAG, label="Unknown block", category=None)


class BlockTypeRegistry:
    def __init__(self, block_types=BLOCK_TYPES):
        self._types: "OrderedDict[str, BlockType]" = OrderedDict()
        for block_type in block_types:
            self.register(block_type)

    def register(self, block_type: BlockType) -> BlockType:
        if block_type.tag == UNKNOWN_TAG:
            raise ValueError(f"'{UNKNOWN_TAG}' is reserved for the placeholder type")
        if block_type.tag in self._types:
            raise ValueError(f"Block type already registered: {block_type.tag}")
        self._types[block_type.tag] = block_type
        return block_type

    def get(self, tag: str) -> BlockType:
        try:
            return self._types[tag]
        except KeyError:
            raise UnknownBlockType(tag) from None

    def lookup(self, tag: str) -> BlockType:
        """Like ``get`` but degrades to the placeholder type."""
        block_type = self._types.get(tag)
        if block_type is None:
            logger.warning("Unknown block type %r, using placeholder", tag)
            return UNKNOWN_BLOCK_TYPE
        return block_type

    def is_known(self, tag: str) -> bool:
        return tag in self._types

    def __contains__(self, tag) -> bool:
        return self.is_known(tag)

    def __len__(self) -> int:
        return len(self._types)

    def flat(self) -> List[BlockType]:
        return list(self._types.values())

    def grouped(self) -> "OrderedDict[str, List[BlockType]]":
        groups: "OrderedDict[str, List[BlockType]]" = OrderedDict()
        for block_type in self._types.values():
            groups.setdefault(block_type.category, []).append(block_type)
        return groups

    def categories(self) -> List[str]:
        return list(self.grouped())


default_registry = BlockTypeRegistry()
