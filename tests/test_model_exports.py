import importlib

import pytest

from geo_writeback.models import DiffPreview, PlanResult
from geo_writeback.models.plan_models import DiffPreview as CoreDiffPreview
from geo_writeback.models.plan_models import PlanResult as CorePlanResult


def test_public_model_exports_remain_compatible():
    assert DiffPreview is CoreDiffPreview
    assert PlanResult is CorePlanResult


@pytest.mark.parametrize(
    "package",
    [
        "geo_writeback.models",
        "geo_writeback.writeback",
        "geo_writeback.review",
        "geo_writeback.clients",
        "geo_writeback.utils",
    ],
)
def test_all_names_importable(package):
    module = importlib.import_module(package)
    for name in module.__all__:
        assert hasattr(module, name), f"{package} is missing {name}"
