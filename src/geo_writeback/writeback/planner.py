"""Turn per-page suggestions into exact file changes with review diffs."""

import logging
from collections.abc import Mapping

from pydantic import ValidationError

from geo_writeback.models.block_models import ContentBlock
from geo_writeback.models.path_models import LayoutConfig
from geo_writeback.models.plan_models import (
    ChangeAction,
    DiffPreview,
    PageSuggestion,
    PlanError,
    PlannedFileChange,
    PlanResult,
)
from geo_writeback.utils.diff_generator import MAX_DIFF_LENGTH, generate_unified_diff
from geo_writeback.writeback.patch_blocks import (
    PLACEHOLDER_REVIEW_NOTE,
    apply_blocks,
    order_blocks,
    requires_human_review,
)
from geo_writeback.writeback.path_contract import resolve_many

logger = logging.getLogger(__name__)

INVALID_BLOCK_REASON = "invalid-block"


def _build_blocks(page: PageSuggestion) -> list[ContentBlock]:
    return order_blocks(
        ContentBlock(kind=kind, rendered_text=text)
        for kind, text in page.blocks.items()
    )


def _derive_action(previous: str | None, merged: str) -> ChangeAction:
    if previous is None:
        return ChangeAction.CREATE
    if previous == merged:
        return ChangeAction.NO_OP
    return ChangeAction.UPDATE


def plan_changes(
    target_pages: list[PageSuggestion],
    layout: LayoutConfig,
    existing_contents: Mapping[str, str | None],
    max_diff_length: int = MAX_DIFF_LENGTH,
) -> PlanResult:
    """Plan file changes for a set of target pages.

    Args:
        target_pages: Suggestions keyed by page URL.
        layout: Target repository layout used for path resolution.
        existing_contents: Current file content by destination path. Missing
            keys and None values both mean the file does not exist.
        max_diff_length: Bound applied to each rendered diff.

    Returns:
        PlanResult with changes and previews sorted by destination path.
        Unsafe URLs and invalid blocks are reported, never raised.
    """
    pages_by_url: dict[str, PageSuggestion] = {}
    warnings: list[str] = []
    for page in target_pages:
        if page.url in pages_by_url:
            warnings.append(f"Duplicate suggestions for {page.url}; last one wins")
        pages_by_url[page.url] = page

    resolution = resolve_many(list(pages_by_url), layout)
    for failure in resolution.failures:
        logger.warning("Skipping %s: %s", failure.url, failure.reason.value)

    changes: list[PlannedFileChange] = []
    block_errors: list[PlanError] = []

    for mapping in resolution.mappings:
        page = pages_by_url[mapping.source_url]
        if not page.blocks:
            warnings.append(f"No content blocks suggested for {page.url}")
            continue

        try:
            blocks = _build_blocks(page)
        except ValidationError as exc:
            logger.warning("Rejected blocks for %s: %s", page.url, exc)
            block_errors.append(
                PlanError(url=page.url, reason=INVALID_BLOCK_REASON, detail=str(exc))
            )
            continue

        path = mapping.destination_file_path
        previous = existing_contents.get(path)
        merged = apply_blocks(previous, blocks, mapping.file_kind)

        review_notes: list[str] = []
        needs_review = requires_human_review(blocks)
        if needs_review:
            review_notes.append(PLACEHOLDER_REVIEW_NOTE)
        review_notes.extend(page.priority_notes)

        action = _derive_action(previous, merged)
        logger.debug("Planned %s for %s (%s)", action.value, path, page.url)
        changes.append(
            PlannedFileChange(
                source_url=page.url,
                destination_file_path=path,
                action=action,
                previous_content=previous,
                merged_content=merged,
                requires_human_review=needs_review,
                review_notes=review_notes,
            )
        )

    changes.sort(key=lambda change: change.destination_file_path)
    previews = [build_diff_preview(change, max_diff_length) for change in changes]

    logger.info(
        "Planned %d change(s), %d path error(s), %d block error(s)",
        len(changes),
        len(resolution.failures),
        len(block_errors),
    )
    return PlanResult(
        planned_changes=changes,
        diff_previews=previews,
        path_errors=resolution.failures,
        block_errors=block_errors,
        warnings=warnings,
    )


def build_diff_preview(
    change: PlannedFileChange,
    max_length: int = MAX_DIFF_LENGTH,
) -> DiffPreview:
    diff = generate_unified_diff(
        change.destination_file_path,
        change.previous_content,
        change.merged_content,
        max_length=max_length,
    )
    return DiffPreview(
        destination_file_path=change.destination_file_path,
        action=change.action,
        rendered_diff=diff.text,
        was_truncated=diff.truncated,
    )
