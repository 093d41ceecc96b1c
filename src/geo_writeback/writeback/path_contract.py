"""Deterministic mapping from page URLs to repository file paths.

Four fixed rewrite rules, keyed by (project type x route strategy):

    astro-pages + path-index   /a/b -> src/pages/a/b/index.astro
    astro-pages + flat-html    /a/b -> src/pages/a-b.astro
    static-html + path-index   /a/b -> a/b/index.html
    static-html + flat-html    /a/b -> a-b.html

The root path always maps to the layout's index file. Case is preserved.
"""

import re
from urllib.parse import unquote, urlsplit

from geo_writeback.models.path_models import (
    LayoutConfig,
    PathFailure,
    PathMapping,
    PathResolution,
    ProjectType,
    RouteStrategy,
    UnsafePathReason,
)
from geo_writeback.writeback.exceptions import InvalidLayoutError, UnsafePathError

MAX_PATH_LENGTH = 200

_UNSAFE_CHARS = re.compile(r'[<>:"|?*\\\x00-\x1f\x7f]')
_REPEATED_SLASHES = re.compile(r"/{2,}")


def parse_layout(project_type: str, route_strategy: str) -> LayoutConfig:
    """Build a LayoutConfig from raw strings.

    Raises:
        InvalidLayoutError: If either value is not supported.
    """
    try:
        return LayoutConfig(
            project_type=ProjectType(project_type),
            route_strategy=RouteStrategy(route_strategy),
        )
    except ValueError as exc:
        raise InvalidLayoutError(
            f"Unsupported layout: project_type={project_type!r}, "
            f"route_strategy={route_strategy!r}"
        ) from exc


def normalize_url_path(url: str) -> str:
    """Extract and normalize the path component of a URL.

    Repeated slashes are collapsed and the trailing slash is removed, except
    for the root path. Percent-escapes are decoded so that encoded traversal
    sequences are caught by validation.

    Raises:
        UnsafePathError: With reason ``unparsable`` for malformed URLs.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError as exc:
        raise UnsafePathError(
            f"Invalid URL: {url}", url, UnsafePathReason.UNPARSABLE
        ) from exc

    if not parts.scheme or not parts.netloc:
        raise UnsafePathError(
            f"Invalid URL (scheme and host required): {url}",
            url,
            UnsafePathReason.UNPARSABLE,
        )

    path = _REPEATED_SLASHES.sub("/", unquote(parts.path) or "/")
    if not path.startswith("/"):
        path = "/" + path
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    return path


def validate_path_safety(url_path: str, url: str) -> None:
    """Reject paths that could escape or confuse the file system.

    Raises:
        UnsafePathError: With the first failing reason.
    """
    if ".." in url_path:
        raise UnsafePathError(
            f"Unsafe path detected: {url_path}", url, UnsafePathReason.TRAVERSAL
        )
    if _UNSAFE_CHARS.search(url_path):
        raise UnsafePathError(
            f"Unsafe characters in path: {url_path}",
            url,
            UnsafePathReason.UNSAFE_CHARACTERS,
        )
    if len(url_path) > MAX_PATH_LENGTH:
        raise UnsafePathError(
            f"Path too long: {len(url_path)} characters",
            url,
            UnsafePathReason.TOO_LONG,
        )


def _map_path(url_path: str, layout: LayoutConfig) -> str:
    if url_path == "/":
        return f"{layout.source_prefix}{layout.index_filename}"

    clean = url_path.lstrip("/")
    if layout.route_strategy == RouteStrategy.PATH_INDEX:
        return f"{layout.source_prefix}{clean}/{layout.index_filename}"
    return f"{layout.source_prefix}{clean.replace('/', '-')}.{layout.extension}"


def resolve(url: str, layout: LayoutConfig) -> PathMapping:
    """Map a URL to exactly one repository file path.

    Args:
        url: Absolute page URL.
        layout: Target project layout.

    Returns:
        PathMapping for the URL.

    Raises:
        UnsafePathError: If the URL is unparsable or its path is unsafe.
    """
    url_path = normalize_url_path(url)
    validate_path_safety(url_path, url)

    file_path = _map_path(url_path, layout)
    file_name = file_path.rsplit("/", 1)[-1]
    return PathMapping(
        source_url=url,
        normalized_url_path=url_path,
        destination_file_path=file_path,
        file_kind=layout.file_kind,
        is_index_file=file_name == layout.index_filename,
    )


def resolve_many(urls: list[str], layout: LayoutConfig) -> PathResolution:
    """Resolve a batch of URLs, collecting per-URL failures.

    URLs are sorted first so the output does not depend on input order.
    When two URLs land on the same file, the first in sorted order keeps it
    and later ones fail with reason ``collision``.
    """
    mappings: list[PathMapping] = []
    failures: list[PathFailure] = []
    claimed: set[str] = set()

    for url in sorted(urls):
        try:
            mapping = resolve(url, layout)
        except UnsafePathError as exc:
            failures.append(PathFailure(url=exc.url, reason=exc.reason))
            continue

        if mapping.destination_file_path in claimed:
            failures.append(PathFailure(url=url, reason=UnsafePathReason.COLLISION))
            continue
        claimed.add(mapping.destination_file_path)
        mappings.append(mapping)

    return PathResolution(mappings=mappings, failures=failures)
