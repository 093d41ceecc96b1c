"""CLI entry point for geo-writeback."""
import argparse
import asyncio
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from dotenv import load_dotenv
from pydantic import ValidationError

from geo_writeback.clients import (
    GitHubRepositoryClient,
    LocalRepositoryClient,
    RepositoryClient,
    RepositoryError,
)
from geo_writeback.models import (
    BlockKind,
    DestinationRepository,
    FaqItem,
    LayoutConfig,
    PageSuggestion,
    PlanResult,
)
from geo_writeback.review import (
    ApplyWriteError,
    InMemorySessionStore,
    ReviewSessionError,
    ReviewSessionManager,
)
from geo_writeback.utils.diff_generator import MAX_DIFF_LENGTH
from geo_writeback.writeback import (
    WriteBackError,
    parse_layout,
    plan_changes,
    resolve_many,
)
from geo_writeback.writeback.renderers import (
    render_answer_capsule_block,
    render_faq_block,
    render_meta_block,
    render_schema_block,
)

load_dotenv()

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_PLAN_ERRORS = 2
EXIT_SESSION_ERROR = 3
EXIT_REPOSITORY_ERROR = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

# Defaults
DEFAULT_PROJECT_TYPE = "astro-pages"
DEFAULT_ROUTE_STRATEGY = "path-index"
DEFAULT_BRANCH = "main"
LOCAL_OWNER = "local"


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="geo-writeback",
        description="Plan, review and apply GEO content blocks to a site repository",
    )
    parser.add_argument(
        "suggestions_json", type=str, help="Path to the page suggestions JSON file"
    )
    parser.add_argument(
        "repo_path",
        type=str,
        nargs="?",
        default=None,
        help="Local checkout of the destination site (omit with --github-repo)",
    )
    parser.add_argument(
        "--project-type",
        type=str,
        default=DEFAULT_PROJECT_TYPE,
        choices=("astro-pages", "static-html"),
        help=f"Destination project layout (default: {DEFAULT_PROJECT_TYPE})",
    )
    parser.add_argument(
        "--route-strategy",
        type=str,
        default=DEFAULT_ROUTE_STRATEGY,
        choices=("path-index", "flat-html"),
        help=f"How URL paths map to files (default: {DEFAULT_ROUTE_STRATEGY})",
    )
    parser.add_argument(
        "--site-url",
        type=str,
        default="",
        help="Site URL recorded on the review session (default: from suggestions)",
    )
    parser.add_argument(
        "--max-diff-length",
        type=int,
        default=MAX_DIFF_LENGTH,
        help=f"Maximum characters per rendered diff (default: {MAX_DIFF_LENGTH})",
    )
    parser.add_argument(
        "--github-repo",
        type=str,
        default="",
        help="Read from and write to OWNER/REPO on GitHub (token from GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--branch",
        type=str,
        default=DEFAULT_BRANCH,
        help=f"Destination branch (default: {DEFAULT_BRANCH})",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Approve and apply the planned changes after printing them",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def validate_repo_path(raw_path: str) -> str:
    """Validate and resolve the repository path.

    Args:
        raw_path: Raw path string from CLI arguments.

    Returns:
        Resolved absolute path as string.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return str(resolved)


def parse_github_repo(raw: str) -> tuple[str, str]:
    """Split OWNER/REPO.

    Raises:
        ValueError: If the value is not exactly two non-empty parts.
    """
    owner, _, repo = raw.partition("/")
    if not owner or not repo or "/" in repo:
        raise ValueError(f"Expected OWNER/REPO, got '{raw}'")
    return owner, repo


def _render_structured(entry: dict[str, Any]) -> dict[BlockKind, str]:
    """Render the optional structured fields of a suggestion entry."""
    blocks: dict[BlockKind, str] = {}

    meta = render_meta_block(entry.get("title"), entry.get("description"))
    if meta is not None:
        blocks[meta.kind] = meta.rendered_text

    capsule = entry.get("answer_capsule")
    if capsule:
        blocks[BlockKind.ANSWER_CAPSULE] = render_answer_capsule_block(capsule).rendered_text

    faqs = [FaqItem.model_validate(item) for item in entry.get("faqs") or []]
    if faqs:
        blocks[BlockKind.FAQ] = render_faq_block(faqs).rendered_text

    schema = entry.get("schema")
    if schema:
        blocks[BlockKind.SCHEMA] = render_schema_block(schema).rendered_text

    return blocks


def parse_suggestions(payload: Any) -> tuple[str, list[PageSuggestion]]:
    """Turn decoded suggestions JSON into page suggestions.

    Accepts either a list of page entries or an object with ``site_url`` and
    ``pages``. Each entry has a ``url`` plus pre-rendered ``blocks`` (keyed by
    block kind) and/or structured fields (``title``, ``description``,
    ``answer_capsule``, ``faqs``, ``schema``); pre-rendered text wins.

    Returns:
        Tuple of (site_url, pages). site_url is "" when not given.

    Raises:
        ValueError: If the payload shape is wrong.
        ValidationError: If an entry fails model validation.
    """
    site_url = ""
    entries = payload
    if isinstance(payload, dict):
        site_url = payload.get("site_url") or ""
        entries = payload.get("pages")
    if not isinstance(entries, list):
        raise ValueError("Suggestions must be a list of pages or an object with 'pages'")

    pages: list[PageSuggestion] = []
    for entry in entries:
        if not isinstance(entry, dict) or "url" not in entry:
            raise ValueError("Every suggestion entry needs a 'url'")
        blocks = _render_structured(entry)
        blocks.update({BlockKind(kind): text for kind, text in (entry.get("blocks") or {}).items()})
        pages.append(
            PageSuggestion(
                url=entry["url"],
                blocks=blocks,
                priority_notes=entry.get("priority_notes") or [],
            )
        )
    return site_url, pages


def load_suggestions(path: str) -> tuple[str, list[PageSuggestion]]:
    """Read and parse the suggestions file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the JSON is malformed or has the wrong shape.
    """
    text = Path(path).expanduser().read_text(encoding="utf-8")
    return parse_suggestions(json.loads(text))


def derive_site_url(pages: list[PageSuggestion]) -> str:
    for page in pages:
        parts = urlsplit(page.url)
        if parts.scheme and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}"
    return ""


def build_destination(args: argparse.Namespace, layout: LayoutConfig) -> DestinationRepository:
    if args.github_repo:
        owner, repo = parse_github_repo(args.github_repo)
    else:
        owner, repo = LOCAL_OWNER, Path(args.repo_path).name
    return DestinationRepository(
        owner=owner,
        repo=repo,
        branch=args.branch,
        project_type=layout.project_type,
        route_strategy=layout.route_strategy,
    )


def create_repository_client(
    args: argparse.Namespace,
    destination: DestinationRepository,
) -> RepositoryClient:
    """GitHub client with --github-repo, local checkout client otherwise."""
    if args.github_repo:
        return GitHubRepositoryClient.for_destination(destination)
    return LocalRepositoryClient(args.repo_path)


async def read_existing_contents(
    client: RepositoryClient,
    paths: list[str],
) -> dict[str, str | None]:
    contents: dict[str, str | None] = {}
    for path in paths:
        remote = await client.get_file(path)
        contents[path] = remote.content if remote is not None else None
    return contents


async def run_writeback(
    args: argparse.Namespace,
    pages: list[PageSuggestion],
    layout: LayoutConfig,
    destination: DestinationRepository,
    site_url: str,
) -> dict[str, Any]:
    """Plan against current repository content, then optionally apply.

    Returns:
        Dict with ``plan`` and, when applied, ``session_id`` and ``apply``.
    """
    client = create_repository_client(args, destination)
    try:
        resolution = resolve_many([page.url for page in pages], layout)
        existing = await read_existing_contents(
            client, [mapping.destination_file_path for mapping in resolution.mappings]
        )
        plan = plan_changes(pages, layout, existing, max_diff_length=args.max_diff_length)
        result: dict[str, Any] = {"plan": plan}

        if not args.apply:
            return result
        if plan.path_errors or plan.block_errors:
            logger.warning("Plan has errors; nothing will be applied")
            return result
        if not plan.changed_files:
            logger.info("Nothing to apply; every planned file is unchanged")
            return result

        targets = sorted(
            {m.normalized_url_path for m in resolution.mappings}
        )
        manager = ReviewSessionManager(InMemorySessionStore())
        created = await manager.create(
            site_url,
            targets,
            plan.planned_changes,
            plan.diff_previews,
            destination,
        )
        await manager.approve(created.session_id)
        result["session_id"] = created.session_id
        result["apply"] = await manager.apply(created.session_id, client)
        return result
    finally:
        if isinstance(client, GitHubRepositoryClient):
            await client.aclose()


def format_result_json(result: dict) -> str:
    """Serialize result dict to JSON string.

    Pydantic values are dumped in JSON mode. Raw previous/merged file
    content is left out of planned changes; the diffs carry the review view.
    """

    def _serialize(obj):
        if obj is None:
            return None
        if isinstance(obj, PlanResult):
            return obj.model_dump(
                mode="json",
                exclude={"planned_changes": {"__all__": {"previous_content", "merged_content"}}},
            )
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        return obj

    prepared = {k: _serialize(v) for k, v in result.items()}
    return json.dumps(prepared, indent=2, default=str)


def print_result_human(result: dict) -> None:
    """Print diffs, notes and errors in human-readable format."""
    plan: PlanResult = result["plan"]
    changes_by_path = {c.destination_file_path: c for c in plan.planned_changes}

    for preview in plan.diff_previews:
        print(f"\n== {preview.destination_file_path} ({preview.action.value})")
        if preview.rendered_diff:
            print(preview.rendered_diff, end="" if preview.rendered_diff.endswith("\n") else "\n")
        if preview.was_truncated:
            print("   [diff truncated]")
        for note in changes_by_path[preview.destination_file_path].review_notes:
            print(f"   note: {note}")

    print(f"\n{'='*60}")
    print("GEO Write-Back Plan")
    print(f"{'='*60}")
    print(f"Planned files: {len(plan.planned_changes)}")
    print(f"Files to write: {len(plan.changed_files)}")

    errors = [f"{e.url}: {e.reason.value}" for e in plan.path_errors]
    errors += [f"{e.url}: {e.reason}" for e in plan.block_errors]
    if errors:
        print(f"\nErrors ({len(errors)}):")
        for err in errors:
            print(f"  - {err}")

    if plan.warnings:
        print(f"\nWarnings ({len(plan.warnings)}):")
        for warning in plan.warnings:
            print(f"  - {warning}")

    applied = result.get("apply")
    if applied is not None:
        print(f"\nApplied session {result['session_id']}: {len(applied.commit_ids)} commit(s)")
        for commit_id in applied.commit_ids:
            print(f"  - {commit_id}")

    print(f"\n{'='*60}")


def determine_exit_code(result: dict) -> int:
    plan: PlanResult = result["plan"]
    if plan.path_errors or plan.block_errors:
        return EXIT_PLAN_ERRORS
    return EXIT_SUCCESS


def print_config_human(config: dict) -> None:
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.github_repo:
        try:
            parse_github_repo(args.github_repo)
        except ValueError as exc:
            return _handle_error("Invalid input", exc, args.verbose, EXIT_INVALID_INPUT)
    else:
        if not args.repo_path:
            print("Error: REPO_PATH is required without --github-repo.", file=sys.stderr)
            return EXIT_INVALID_INPUT
        try:
            args.repo_path = validate_repo_path(args.repo_path)
        except SystemExit as exc:
            return exc.code

    config = {
        "suggestions_json": args.suggestions_json,
        "repo_path": args.repo_path,
        "github_repo": args.github_repo,
        "branch": args.branch,
        "project_type": args.project_type,
        "route_strategy": args.route_strategy,
        "site_url": args.site_url,
        "max_diff_length": args.max_diff_length,
        "apply": args.apply,
        "verbose": args.verbose,
        "dry_run": args.dry_run,
        "output_json": args.output_json,
    }

    if args.dry_run:
        if args.output_json:
            print(json.dumps(config, indent=2))
        else:
            print_config_human(config)
        return EXIT_SUCCESS

    try:
        layout = parse_layout(args.project_type, args.route_strategy)
        site_url, pages = load_suggestions(args.suggestions_json)
    except (OSError, ValueError, WriteBackError) as exc:
        # pydantic's ValidationError is a ValueError
        return _handle_error("Invalid input", exc, args.verbose, EXIT_INVALID_INPUT)

    site_url = args.site_url or site_url or derive_site_url(pages)

    try:
        destination = build_destination(args, layout)
        result = asyncio.run(run_writeback(args, pages, layout, destination, site_url))

        if args.output_json:
            print(format_result_json(result))
        else:
            print_result_human(result)

        return determine_exit_code(result)

    except ValidationError as exc:
        return _handle_error("Invalid input", exc, args.verbose, EXIT_INVALID_INPUT)

    except ApplyWriteError as exc:
        return _handle_error("Repository error", exc, args.verbose, EXIT_REPOSITORY_ERROR)

    except ReviewSessionError as exc:
        return _handle_error("Session error", exc, args.verbose, EXIT_SESSION_ERROR)

    except RepositoryError as exc:
        return _handle_error("Repository error", exc, args.verbose, EXIT_REPOSITORY_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)
