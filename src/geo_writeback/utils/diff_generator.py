"""Utilities for generating review diffs.

The diff is a review aid, not a merge input. It trims the longest common
line prefix and suffix and shows everything in between as deleted then
inserted, in a single hunk. This is intentionally not a minimal edit
script; hunk shapes are relied on downstream.
"""

from geo_writeback.models.diff_models import DiffResult

CONTEXT_LINES = 3
MAX_DIFF_LENGTH = 20_000
NO_NEWLINE_MARKER = "\\ No newline at end of file"


def split_lines(content: str) -> list[str]:
    """Split on ``\\n`` only, keeping terminators.

    The last element lacks a newline when the content does not end in one.
    """
    if not content:
        return []
    lines = content.split("\n")
    result = [line + "\n" for line in lines[:-1]]
    if lines[-1]:
        result.append(lines[-1])
    return result


def _render_line(prefix: str, line: str) -> list[str]:
    if line.endswith("\n"):
        return [prefix + line[:-1]]
    return [prefix + line, NO_NEWLINE_MARKER]


def _range(start: int, count: int) -> str:
    # unified format: an empty range names the line before it
    first = start + 1 if count else start
    return f"{first},{count}"


def common_prefix_length(old_lines: list[str], new_lines: list[str]) -> int:
    limit = min(len(old_lines), len(new_lines))
    index = 0
    while index < limit and old_lines[index] == new_lines[index]:
        index += 1
    return index


def common_suffix_length(old_lines: list[str], new_lines: list[str], prefix: int) -> int:
    limit = min(len(old_lines), len(new_lines)) - prefix
    count = 0
    while count < limit and old_lines[-1 - count] == new_lines[-1 - count]:
        count += 1
    return count


def build_hunk(
    old_lines: list[str],
    new_lines: list[str],
    context: int = CONTEXT_LINES,
) -> list[str]:
    """Render the single changed span of two differing line lists."""
    prefix = common_prefix_length(old_lines, new_lines)
    suffix = common_suffix_length(old_lines, new_lines, prefix)

    old_change_end = len(old_lines) - suffix
    new_change_end = len(new_lines) - suffix
    lead = min(context, prefix)
    trail = min(context, suffix)

    hunk_start = prefix - lead
    old_count = old_change_end + trail - hunk_start
    new_count = new_change_end + trail - hunk_start

    lines = [f"@@ -{_range(hunk_start, old_count)} +{_range(hunk_start, new_count)} @@"]
    for line in old_lines[hunk_start:prefix]:
        lines.extend(_render_line(" ", line))
    for line in old_lines[prefix:old_change_end]:
        lines.extend(_render_line("-", line))
    for line in new_lines[prefix:new_change_end]:
        lines.extend(_render_line("+", line))
    for line in new_lines[new_change_end:new_change_end + trail]:
        lines.extend(_render_line(" ", line))
    return lines


def truncate_at_line(text: str, max_length: int) -> tuple[str, bool]:
    """Cut text to at most ``max_length`` chars without splitting a line."""
    if len(text) <= max_length:
        return text, False
    cut = text.rfind("\n", 0, max_length + 1)
    if cut < 0:
        return "", True
    return text[:cut], True


def generate_unified_diff(
    file_path: str,
    original_content: str | None,
    modified_content: str,
    max_length: int = MAX_DIFF_LENGTH,
) -> DiffResult:
    """Generate a unified diff for review.

    Args:
        file_path: Relative path from repo root (e.g. "src/pages/index.astro").
        original_content: File content before the change, or None for a new file.
        modified_content: File content after the change.
        max_length: Upper bound on the rendered diff length in characters.

    Returns:
        DiffResult. Text is empty and hunk_count is 0 when nothing changed.
    """
    if original_content == modified_content:
        return DiffResult(text="", truncated=False, hunk_count=0)

    new_lines = split_lines(modified_content)
    if original_content is None:
        header = ["--- /dev/null", f"+++ b/{file_path}"]
        hunk: list[str] = []
        if new_lines:
            hunk = [f"@@ -0,0 +{_range(0, len(new_lines))} @@"]
            for line in new_lines:
                hunk.extend(_render_line("+", line))
    else:
        header = [f"--- a/{file_path}", f"+++ b/{file_path}"]
        hunk = build_hunk(split_lines(original_content), new_lines)

    text, truncated = truncate_at_line("\n".join(header + hunk), max_length)
    return DiffResult(text=text, truncated=truncated, hunk_count=1 if hunk else 0)
