"""Models for the URL-to-file path contract."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProjectType(str, Enum):
    """Supported target repository layouts."""

    ASTRO_PAGES = "astro-pages"
    STATIC_HTML = "static-html"


class RouteStrategy(str, Enum):
    """How URL paths are laid out as files."""

    PATH_INDEX = "path-index"  # /a/b -> a/b/index.<ext>
    FLAT_HTML = "flat-html"  # /a/b -> a-b.<ext>


class FileKind(str, Enum):
    ASTRO = "astro"
    HTML = "html"


class UnsafePathReason(str, Enum):
    """Why a URL could not be mapped to a file path."""

    TRAVERSAL = "traversal"
    UNSAFE_CHARACTERS = "unsafe-characters"
    TOO_LONG = "too-long"
    UNPARSABLE = "unparsable"
    COLLISION = "collision"  # batch only: destination already claimed


class LayoutConfig(BaseModel):
    """Project layout x route strategy pair governing path mapping."""

    model_config = ConfigDict(frozen=True)

    project_type: ProjectType
    route_strategy: RouteStrategy

    @property
    def file_kind(self) -> FileKind:
        if self.project_type == ProjectType.ASTRO_PAGES:
            return FileKind.ASTRO
        return FileKind.HTML

    @property
    def extension(self) -> str:
        return self.file_kind.value

    @property
    def source_prefix(self) -> str:
        if self.project_type == ProjectType.ASTRO_PAGES:
            return "src/pages/"
        return ""

    @property
    def index_filename(self) -> str:
        return f"index.{self.extension}"


class PathMapping(BaseModel):
    """Result of resolving one URL against a layout."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    normalized_url_path: str  # e.g. "/services/plumbing"
    destination_file_path: str  # e.g. "src/pages/services/plumbing/index.astro"
    file_kind: FileKind
    is_index_file: bool


class PathFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    reason: UnsafePathReason


class PathResolution(BaseModel):
    """Batch resolution output: successes and per-URL failures."""

    model_config = ConfigDict(frozen=True)

    mappings: list[PathMapping] = Field(default_factory=list)
    failures: list[PathFailure] = Field(default_factory=list)
