"""Idempotent insert-or-replace of marker-delimited content blocks.

Each block kind owns one sentinel pair (see ``block_models.sentinels_for``).
If the pair is already present in the page, the whole span including both
markers is replaced. Otherwise the block is inserted before the last
``</main>``, else before the last ``</body>``, else appended.
"""

import re
from collections.abc import Iterable

from geo_writeback.models.block_models import (
    BLOCK_ORDER,
    BlockKind,
    ContentBlock,
    sentinels_for,
)
from geo_writeback.models.path_models import FileKind

PLACEHOLDER_PATTERN = re.compile(r"\[ADD\b[^\]]*\]")
PLACEHOLDER_REVIEW_NOTE = "Contains placeholder values that require real data"

_MAIN_CLOSE = re.compile(r"</main\s*>", re.IGNORECASE)
_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)

_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title></title>
</head>
<body>
  <main>
  </main>
</body>
</html>
"""

_ASTRO_FRONTMATTER = """---
// Generated page
---
"""


def default_template(file_kind: FileKind = FileKind.HTML) -> str:
    """Minimal valid page used as the base when a file does not exist yet."""
    if FileKind(file_kind) == FileKind.ASTRO:
        return _ASTRO_FRONTMATTER + _HTML_TEMPLATE
    return _HTML_TEMPLATE


def wrap_block(block: ContentBlock) -> str:
    """Surround block text with its start and end sentinels."""
    start, end = sentinels_for(block.kind)
    return f"{start}\n{block.rendered_text}\n{end}"


def find_block_span(content: str, kind: BlockKind) -> tuple[int, int] | None:
    """Return (start, end) offsets of an existing block, end exclusive.

    The span runs from the first end marker that has a start marker before
    it back to the nearest such start marker, so orphaned or reversed
    markers never widen a span over unrelated markup.
    """
    start_marker, end_marker = sentinels_for(kind)
    end = content.find(end_marker)
    while end >= 0:
        start = content.rfind(start_marker, 0, end)
        if start >= 0:
            return start, end + len(end_marker)
        end = content.find(end_marker, end + len(end_marker))
    return None


def _last_match(pattern: re.Pattern, content: str) -> re.Match | None:
    last = None
    for last in pattern.finditer(content):
        pass
    return last


def _insert_before(content: str, index: int, wrapped: str) -> str:
    line_start = content.rfind("\n", 0, index) + 1
    if content[line_start:index].strip():
        # closing tag shares its line with other markup
        return f"{content[:index]}\n{wrapped}\n{content[index:]}"
    return f"{content[:line_start]}\n{wrapped}\n\n{content[line_start:]}"


def apply_block(
    existing: str | None,
    block: ContentBlock,
    file_kind: FileKind = FileKind.HTML,
) -> str:
    """Merge one block into page content.

    Args:
        existing: Current file content, or None when the file is new.
        block: The block to insert or replace.
        file_kind: Selects the default template for new files.

    Returns:
        The merged content. Applying the same block twice yields the same
        bytes as applying it once.
    """
    content = default_template(file_kind) if existing is None else existing
    wrapped = wrap_block(block)

    span = find_block_span(content, block.kind)
    if span is not None:
        start, end = span
        return content[:start] + wrapped + content[end:]

    anchor = _last_match(_MAIN_CLOSE, content) or _last_match(_BODY_CLOSE, content)
    if anchor is not None:
        return _insert_before(content, anchor.start(), wrapped)

    if not content:
        return wrapped + "\n"
    separator = "\n" if content.endswith("\n") else "\n\n"
    return f"{content}{separator}{wrapped}\n"


def order_blocks(blocks: Iterable[ContentBlock]) -> list[ContentBlock]:
    """Sort blocks into the declared application order (stable)."""
    rank = {kind: index for index, kind in enumerate(BLOCK_ORDER)}
    return sorted(blocks, key=lambda block: rank[block.kind])


def apply_blocks(
    existing: str | None,
    blocks: Iterable[ContentBlock],
    file_kind: FileKind = FileKind.HTML,
) -> str:
    """Apply several blocks in declared order.

    The result depends only on the set of blocks, not on the order they
    were passed in.

    Raises:
        ValueError: If two blocks share a kind.
    """
    ordered = order_blocks(blocks)
    kinds = [block.kind.value for block in ordered]
    duplicates = sorted({kind for kind in kinds if kinds.count(kind) > 1})
    if duplicates:
        raise ValueError(f"Duplicate block kinds: {', '.join(duplicates)}")
    content = default_template(file_kind) if existing is None else existing
    for block in ordered:
        content = apply_block(content, block, file_kind)
    return content


def find_placeholders(blocks: Iterable[ContentBlock]) -> list[str]:
    """Return unresolved placeholder tokens, sorted and de-duplicated."""
    found: set[str] = set()
    for block in blocks:
        found.update(PLACEHOLDER_PATTERN.findall(block.rendered_text))
    return sorted(found)


def requires_human_review(blocks: Iterable[ContentBlock]) -> bool:
    return bool(find_placeholders(blocks))
