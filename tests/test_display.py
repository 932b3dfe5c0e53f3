import sys
from pathlib import Path

# Ensure project root on path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from churchevents.display import (
    event_icon_and_color,
    image_or_placeholder,
    render_markdown,
    video_thumbnail,
)
from churchevents.settings import DEFAULT_PLACEHOLDER_IMAGE


def test_markdown_is_rendered_and_sanitized():
    html = str(render_markdown("**Bring** a dish <script>alert(1)</script>"))
    assert "<strong>Bring</strong>" in html
    assert "<script>" not in html
    assert str(render_markdown("")) == ""


def test_icon_and_color_by_keyword():
    assert event_icon_and_color("Wednesday Bible Study") == ("book", "#4299E1")
    assert event_icon_and_color("Choir Practice") == ("music", "#ED8936")
    assert event_icon_and_color("Parish Picnic") == ("calendar", "#718096")


def test_video_thumbnail_for_youtube_links():
    assert video_thumbnail("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == (
        "https://img.youtube.com/vi/dQw4w9WgXcQ/mqdefault.jpg"
    )
    assert video_thumbnail("https://youtu.be/dQw4w9WgXcQ") == (
        "https://img.youtube.com/vi/dQw4w9WgXcQ/mqdefault.jpg"
    )
    assert video_thumbnail("https://vimeo.com/12345") is None
    assert video_thumbnail(None) is None


def test_placeholder_image(monkeypatch):
    monkeypatch.delenv("CHURCHEVENTS_PLACEHOLDER_IMAGE", raising=False)
    assert image_or_placeholder(None) == DEFAULT_PLACEHOLDER_IMAGE
    assert image_or_placeholder("https://example.org/a.png") == "https://example.org/a.png"
    monkeypatch.setenv("CHURCHEVENTS_PLACEHOLDER_IMAGE", "/static/event.png")
    assert image_or_placeholder("") == "/static/event.png"
