from __future__ import annotations

import re
from typing import Optional, Tuple

import bleach
from markdown import markdown as md
from markupsafe import Markup

from .settings import placeholder_image_url


ALLOWED_TAGS = bleach.sanitizer.ALLOWED_TAGS | {
    "p",
    "pre",
    "code",
    "hr",
    "br",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
}

ALLOWED_ATTRIBUTES = {
    **bleach.sanitizer.ALLOWED_ATTRIBUTES,
    "a": ["href", "title", "rel"],
    "img": ["src", "alt", "title"],
}


def render_markdown(text: str) -> Markup:
    if not text:
        return Markup("")
    html = md(text)
    sanitized = bleach.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES, strip=True)
    return Markup(sanitized)


# First matching keyword group wins.
EVENT_STYLES = [
    (("bible", "study"), "book", "#4299E1"),
    (("sunday", "service", "worship"), "home", "#38B2AC"),
    (("youth", "meetup", "young"), "message-circle", "#ECC94B"),
    (("prayer", "breakfast"), "coffee", "#F56565"),
    (("meeting", "committee"), "users", "#9F7AEA"),
    (("music", "choir", "practice"), "music", "#ED8936"),
    (("volunteer", "serve", "outreach"), "heart", "#ED64A6"),
]
DEFAULT_STYLE = ("calendar", "#718096")


def event_icon_and_color(title: str) -> Tuple[str, str]:
    lowered = title.lower()
    for keywords, icon, color in EVENT_STYLES:
        if any(k in lowered for k in keywords):
            return icon, color
    return DEFAULT_STYLE


YOUTUBE_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")


def video_thumbnail(url: Optional[str]) -> Optional[str]:
    """YouTube preview image for ``url``, or ``None`` for other links."""
    if not url:
        return None
    match = YOUTUBE_RE.match(url)
    if match and len(match.group(2)) == 11:
        return f"https://img.youtube.com/vi/{match.group(2)}/mqdefault.jpg"
    return None


def image_or_placeholder(url: Optional[str]) -> str:
    return url or placeholder_image_url()
