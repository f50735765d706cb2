"""Clipboard composer — render the article list for pasting into an email.

Produces two representations of the same content: a table-based HTML
layout (Outlook and friends ignore most CSS, so everything is inline and
fixed at 600px) and a plain-text fallback.  Both travel together in one
``ClipboardPayload`` so the client writes them as a single clipboard item.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from jinja2 import BaseLoader, Environment

from newsletter.models import ArticleRecord

_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<body style="margin: 0; padding: 0;">
<table width="100%" border="0" cellpadding="0" cellspacing="0" style="font-family: Arial, sans-serif;">
  <tr>
    <td align="center">
      <table width="600" border="0" cellpadding="0" cellspacing="0" style="width: 600px; max-width: 600px; text-align: left;">
{% for article in articles %}
        <tr>
          <td style="padding-bottom: 30px;">
            <h2 style="margin-top: 0; margin-bottom: 10px; font-size: 18px; line-height: 1.4;">
{% if article.source_url %}
              <a href="{{ article.source_url }}" style="color: #2563eb; text-decoration: none;">{{ article.headline }}</a>
{% else %}
              <span style="color: #2563eb;">{{ article.headline }}</span>
{% endif %}
            </h2>
{% if article.image_url %}
            <table width="100%" border="0" cellpadding="0" cellspacing="0">
              <tr>
                <td style="padding-bottom: 15px;">
                  <img src="{{ article.image_url }}" alt="{{ article.headline }}" width="600" style="width: 600px; max-width: 600px; height: auto; display: block; border-radius: 8px;" />
                </td>
              </tr>
            </table>
{% endif %}
            <p style="margin: 0; color: #374151; line-height: 1.6; font-size: 14px;">{{ article.summary }}</p>
            <table width="100%" border="0" cellpadding="0" cellspacing="0" style="margin-top: 20px;">
              <tr>
                <td style="border-top: 1px solid #e5e7eb;"></td>
              </tr>
            </table>
          </td>
        </tr>
{% endfor %}
      </table>
    </td>
  </tr>
</table>
</body>
</html>
"""

_env = Environment(loader=BaseLoader(), autoescape=True, trim_blocks=True, lstrip_blocks=True)
_template = _env.from_string(_HTML_TEMPLATE)


@dataclass(frozen=True)
class ClipboardPayload:
    """HTML and plain-text renderings of one copy action."""

    html: str
    text: str

    def as_mime_map(self) -> dict[str, str]:
        return {"text/html": self.html, "text/plain": self.text}


def render_html(articles: Sequence[ArticleRecord]) -> str:
    """Render *articles* as a table-based HTML email fragment."""
    return _template.render(articles=articles)


def render_text(articles: Sequence[ArticleRecord]) -> str:
    """Render ``headline\\nsummary\\nsourceUrl`` blocks separated by blank lines."""
    return "\n\n".join(
        f"{a.headline}\n{a.summary}\n{a.source_url or ''}" for a in articles
    )


def compose(articles: Sequence[ArticleRecord]) -> ClipboardPayload:
    return ClipboardPayload(html=render_html(articles), text=render_text(articles))
