"""Render structured suggestions into ContentBlock text.

User-supplied strings are HTML-escaped, and ``<`` inside JSON-LD is written
as ``\\u003c``, so rendered text can never contain a sentinel marker.
"""

import html
import json
from typing import Any

from geo_writeback.models.block_models import BlockKind, ContentBlock, FaqItem

REVIEW_COMMENT = "<!-- TODO: Review and customize these recommendations -->"
PLACEHOLDER_COMMENT = "<!-- [ADD REAL DATA]: placeholder answer -->"


def _escape(text: str) -> str:
    return html.escape(text, quote=True)


def _comment_safe(text: str) -> str:
    # "--" would terminate an HTML comment early
    return _escape(text).replace("--", "&#45;&#45;")


def render_meta_block(title: str | None, description: str | None) -> ContentBlock | None:
    """Recommended title/description as HTML comments. None if both empty."""
    if not title and not description:
        return None
    lines = [REVIEW_COMMENT]
    if title:
        lines.append(f"<!-- Recommended Title: {_comment_safe(title)} -->")
    if description:
        lines.append(f"<!-- Recommended Meta Description: {_comment_safe(description)} -->")
    return ContentBlock(kind=BlockKind.META, rendered_text="\n".join(lines))


def render_answer_capsule_block(capsule: str) -> ContentBlock:
    lines = [
        "<!-- TODO: Review, customize, and position appropriately -->",
        '<div class="geo-answer-capsule">',
        f"  <p>{_escape(capsule)}</p>",
        "</div>",
    ]
    return ContentBlock(kind=BlockKind.ANSWER_CAPSULE, rendered_text="\n".join(lines))


def render_faq_block(faqs: list[FaqItem]) -> ContentBlock:
    """FAQ section with schema.org microdata."""
    lines = [
        "<!-- TODO: Review and verify all FAQ content before publishing -->",
        '<section class="geo-faq" itemscope itemtype="https://schema.org/FAQPage">',
        "  <h2>Frequently Asked Questions</h2>",
    ]
    for faq in faqs:
        note = f" {PLACEHOLDER_COMMENT}" if faq.is_placeholder else ""
        lines.extend(
            [
                '  <div itemscope itemprop="mainEntity" '
                f'itemtype="https://schema.org/Question">{note}',
                f'    <h3 itemprop="name">{_escape(faq.question)}</h3>',
                '    <div itemscope itemprop="acceptedAnswer" '
                'itemtype="https://schema.org/Answer">',
                f'      <p itemprop="text">{_escape(faq.answer)}</p>',
                "    </div>",
                "  </div>",
            ]
        )
    lines.append("</section>")
    return ContentBlock(kind=BlockKind.FAQ, rendered_text="\n".join(lines))


def render_schema_block(schema: dict[str, Any]) -> ContentBlock:
    """schema.org JSON-LD script element. Keys are sorted for stable output."""
    payload = json.dumps(schema, indent=2, sort_keys=True, ensure_ascii=False)
    payload = payload.replace("<", "\\u003c").replace(">", "\\u003e")
    lines = [
        "<!-- TODO: Verify all placeholder values before publishing -->",
        '<script type="application/ld+json">',
        payload,
        "</script>",
    ]
    return ContentBlock(kind=BlockKind.SCHEMA, rendered_text="\n".join(lines))
