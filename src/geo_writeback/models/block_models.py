"""Content block models and the sentinel marker protocol.

Sentinel literals are an on-disk format: files written by earlier versions
must keep matching, so the strings below never change.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

MARKER_NAMESPACE = "nico-geo:block"


class BlockKind(str, Enum):
    """Kinds of managed regions, in the order they are applied."""

    META = "meta"
    ANSWER_CAPSULE = "answer-capsule"
    FAQ = "faq"
    SCHEMA = "schema"


BLOCK_ORDER: tuple[BlockKind, ...] = (
    BlockKind.META,
    BlockKind.ANSWER_CAPSULE,
    BlockKind.FAQ,
    BlockKind.SCHEMA,
)


def sentinels_for(kind: BlockKind) -> tuple[str, str]:
    """Return the (start, end) marker pair for a block kind."""
    kind = BlockKind(kind)
    return (
        f"<!-- {MARKER_NAMESPACE}:{kind.value}:start -->",
        f"<!-- {MARKER_NAMESPACE}:{kind.value}:end -->",
    )


ALL_SENTINELS: tuple[str, ...] = tuple(
    marker for kind in BLOCK_ORDER for marker in sentinels_for(kind)
)


class ContentBlock(BaseModel):
    """A rendered block ready to be wrapped in its sentinels."""

    model_config = ConfigDict(frozen=True)

    kind: BlockKind
    rendered_text: str

    @field_validator("rendered_text")
    @classmethod
    def _reject_sentinels(cls, value: str) -> str:
        for marker in ALL_SENTINELS:
            if marker in value:
                raise ValueError(f"rendered text contains sentinel marker {marker!r}")
        return value


class FaqItem(BaseModel):
    """A suggested question/answer pair."""

    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    is_placeholder: bool = False
