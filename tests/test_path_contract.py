"""Tests for URL-to-file path resolution."""

import pytest

from geo_writeback.models import LayoutConfig, ProjectType, RouteStrategy, UnsafePathReason
from geo_writeback.writeback import InvalidLayoutError, UnsafePathError, resolve, resolve_many
from geo_writeback.writeback.path_contract import (
    MAX_PATH_LENGTH,
    normalize_url_path,
    parse_layout,
)


def layout(project_type: str, route_strategy: str) -> LayoutConfig:
    return LayoutConfig(
        project_type=ProjectType(project_type), route_strategy=RouteStrategy(route_strategy)
    )


class TestRewriteRules:
    """The four layout x strategy rewrite rules."""

    @pytest.mark.parametrize(
        "project_type,route_strategy,expected",
        [
            ("astro-pages", "path-index", "src/pages/services/plumbing/index.astro"),
            ("astro-pages", "flat-html", "src/pages/services-plumbing.astro"),
            ("static-html", "path-index", "services/plumbing/index.html"),
            ("static-html", "flat-html", "services-plumbing.html"),
        ],
    )
    def test_nested_path(self, project_type, route_strategy, expected):
        mapping = resolve("https://x.test/services/plumbing", layout(project_type, route_strategy))
        assert mapping.destination_file_path == expected
        assert mapping.normalized_url_path == "/services/plumbing"

    @pytest.mark.parametrize(
        "project_type,route_strategy,expected",
        [
            ("astro-pages", "path-index", "src/pages/index.astro"),
            ("astro-pages", "flat-html", "src/pages/index.astro"),
            ("static-html", "path-index", "index.html"),
            ("static-html", "flat-html", "index.html"),
        ],
    )
    def test_root_maps_to_index(self, project_type, route_strategy, expected):
        mapping = resolve("https://x.test/", layout(project_type, route_strategy))
        assert mapping.destination_file_path == expected
        assert mapping.normalized_url_path == "/"
        assert mapping.is_index_file is True

    def test_host_without_path_is_root(self, nested_astro):
        assert resolve("https://x.test", nested_astro).destination_file_path == (
            "src/pages/index.astro"
        )

    def test_index_flag(self, nested_astro, flat_static):
        assert resolve("https://x.test/a", nested_astro).is_index_file is True
        assert resolve("https://x.test/a", flat_static).is_index_file is False

    def test_file_kind_follows_project_type(self, nested_astro, flat_static):
        assert resolve("https://x.test/a", nested_astro).file_kind.value == "astro"
        assert resolve("https://x.test/a", flat_static).file_kind.value == "html"

    def test_case_is_preserved(self, nested_astro):
        mapping = resolve("https://x.test/Services/Plumbing", nested_astro)
        assert mapping.destination_file_path == "src/pages/Services/Plumbing/index.astro"


class TestNormalization:
    def test_trailing_slash_invariant(self, nested_astro):
        assert resolve("https://x.test/a/b/", nested_astro).model_dump(
            exclude={"source_url"}
        ) == resolve("https://x.test/a/b", nested_astro).model_dump(exclude={"source_url"})

    def test_repeated_slashes_collapse(self):
        assert normalize_url_path("https://x.test//a///b/") == "/a/b"

    def test_query_and_fragment_ignored(self):
        assert normalize_url_path("https://x.test/a?page=2#top") == "/a"

    def test_percent_escapes_decoded(self):
        assert normalize_url_path("https://x.test/caf%C3%A9") == "/café"

    def test_deterministic(self, flat_static):
        url = "https://x.test/blog/post-1"
        assert resolve(url, flat_static) == resolve(url, flat_static)


class TestUnsafeUrls:
    """Unsafe URLs raise UnsafePathError with a specific reason."""

    @pytest.mark.parametrize(
        "url,reason",
        [
            ("https://x.test/a/../b", UnsafePathReason.TRAVERSAL),
            ("https://x.test/a/%2e%2e/b", UnsafePathReason.TRAVERSAL),
            ("https://x.test/a%3Cb", UnsafePathReason.UNSAFE_CHARACTERS),
            ("https://x.test/a:b", UnsafePathReason.UNSAFE_CHARACTERS),
            ("https://x.test/a%5Cb", UnsafePathReason.UNSAFE_CHARACTERS),
            ("https://x.test/a%00b", UnsafePathReason.UNSAFE_CHARACTERS),
            ("not a url", UnsafePathReason.UNPARSABLE),
            ("/relative/only", UnsafePathReason.UNPARSABLE),
            ("http://[::1/broken", UnsafePathReason.UNPARSABLE),
        ],
    )
    def test_rejected(self, nested_astro, url, reason):
        with pytest.raises(UnsafePathError) as exc_info:
            resolve(url, nested_astro)
        assert exc_info.value.reason == reason
        assert exc_info.value.url == url

    def test_too_long(self, nested_astro):
        with pytest.raises(UnsafePathError) as exc_info:
            resolve("https://x.test/" + "a" * MAX_PATH_LENGTH, nested_astro)
        assert exc_info.value.reason == UnsafePathReason.TOO_LONG

    def test_length_limit_is_inclusive(self, nested_astro):
        mapping = resolve("https://x.test/" + "a" * (MAX_PATH_LENGTH - 1), nested_astro)
        assert len(mapping.normalized_url_path) == MAX_PATH_LENGTH


class TestResolveMany:
    def test_sorted_and_failures_collected(self, nested_astro):
        result = resolve_many(
            ["https://x.test/zeta", "https://x.test/../etc", "https://x.test/alpha"],
            nested_astro,
        )
        assert [m.normalized_url_path for m in result.mappings] == ["/alpha", "/zeta"]
        assert len(result.failures) == 1
        assert result.failures[0].reason == UnsafePathReason.TRAVERSAL

    def test_input_order_does_not_matter(self, nested_astro):
        urls = ["https://x.test/b", "https://x.test/a", "https://x.test/c"]
        assert resolve_many(urls, nested_astro) == resolve_many(list(reversed(urls)), nested_astro)

    def test_flat_collision_reported(self, flat_static):
        result = resolve_many(["https://x.test/a/b", "https://x.test/a-b"], flat_static)
        assert [m.source_url for m in result.mappings] == ["https://x.test/a-b"]
        assert result.failures[0].url == "https://x.test/a/b"
        assert result.failures[0].reason == UnsafePathReason.COLLISION

    def test_trailing_slash_duplicate_reported(self, nested_astro):
        result = resolve_many(["https://x.test/a/", "https://x.test/a"], nested_astro)
        assert len(result.mappings) == 1
        assert result.failures[0].reason == UnsafePathReason.COLLISION


class TestParseLayout:
    def test_valid(self):
        config = parse_layout("static-html", "flat-html")
        assert config.source_prefix == ""
        assert config.index_filename == "index.html"

    def test_astro_prefix(self):
        assert parse_layout("astro-pages", "path-index").source_prefix == "src/pages/"

    @pytest.mark.parametrize("project_type,route_strategy", [("nextjs", "path-index"), ("astro-pages", "spa")])
    def test_invalid(self, project_type, route_strategy):
        with pytest.raises(InvalidLayoutError):
            parse_layout(project_type, route_strategy)
