"""Path resolution, block merging and change planning."""

from geo_writeback.writeback.exceptions import (
    InvalidLayoutError,
    PathContractError,
    UnsafePathError,
    WriteBackError,
)
from geo_writeback.writeback.patch_blocks import apply_block, apply_blocks, default_template
from geo_writeback.writeback.path_contract import parse_layout, resolve, resolve_many
from geo_writeback.writeback.planner import plan_changes

__all__ = [
    "InvalidLayoutError",
    "PathContractError",
    "UnsafePathError",
    "WriteBackError",
    "apply_block",
    "apply_blocks",
    "default_template",
    "parse_layout",
    "plan_changes",
    "resolve",
    "resolve_many",
]
