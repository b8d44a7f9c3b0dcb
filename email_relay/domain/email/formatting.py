"""
Plain-text to HTML rendering for outgoing relay emails.

The caller's body is sent twice: unchanged as the `text` part and as a light
HTML rendering (one paragraph per line, clickable URLs, footer) as `html`.
"""

import re

from ...utils.sanitization import sanitize_string

URL_PATTERN = re.compile(r"(https?://\S+)")

LINK_STYLE = "color: #3B82F6;"
PARAGRAPH_STYLE = "margin: 8px 0; line-height: 1.5;"
CONTAINER_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "max-width: 600px; margin: 0 auto; padding: 20px; color: #333;"
)
SEPARATOR_STYLE = "margin: 30px 0; border: none; border-top: 1px solid #e5e7eb;"
FOOTER_STYLE = "font-size: 12px; color: #6b7280; margin: 0;"


def linkify(line: str) -> str:
    """Wrap bare http(s) URLs in anchor tags, leaving the rest of the line alone"""
    return URL_PATTERN.sub(rf'<a href="\1" style="{LINK_STYLE}">\1</a>', line)


def render_line(line: str) -> str:
    trimmed = line.strip()
    if not trimmed:
        return "<br>"
    return f'<p style="{PARAGRAPH_STYLE}">{linkify(sanitize_string(trimmed))}</p>'


def render_body_lines(body: str) -> list[str]:
    """Render each line of the body as its own HTML unit (<p> or <br>)"""
    return [render_line(line) for line in body.split("\n")]


def format_email_body(body: str, footer_text: str) -> str:
    """Build the HTML alternative for a plain-text body"""
    html_body = "".join(render_body_lines(body))
    return (
        f'<div style="{CONTAINER_STYLE}">'
        f"{html_body}"
        f'<hr style="{SEPARATOR_STYLE}">'
        f'<p style="{FOOTER_STYLE}">{sanitize_string(footer_text)}</p>'
        "</div>"
    )
