"""Tests for data.yaml manifest generation."""

from datetime import datetime, timezone

import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from labeloo.formats.manifest import build_manifest, render_manifest, split_counts
from labeloo.models.export import ExportRecord, SplitConfig
from labeloo.models.project import ProjectResponse

EXPORTED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _records(count: int) -> list[ExportRecord]:
    return [
        ExportRecord(
            task_id=i,
            annotation_id=100 + i,
            image_url=f"http://testserver/bucket/projects/1/{i}.png",
            image_path=f"images/{i}.png",
            label_path=f"labels/{i}.txt",
            metadata={"original_filename": f"{i}.png"},
            is_ground_truth=False,
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture()
def project() -> ProjectResponse:
    return ProjectResponse(id=1, name="Street scenes", description=None)


class TestSplitCounts:
    def test_default_split(self) -> None:
        assert split_counts(10, SplitConfig()) == (8, 1, 1)

    def test_validation_takes_the_remainder(self) -> None:
        assert split_counts(7, SplitConfig(train=70, test=15, validation=15)) == (4, 2, 1)

    def test_counts_always_sum_to_total(self) -> None:
        split = SplitConfig(train=33, test=33, validation=34)
        for total in range(0, 25):
            assert sum(split_counts(total, split)) == total


class TestSplitConfig:
    def test_must_sum_to_hundred(self) -> None:
        with pytest.raises(PydanticValidationError):
            SplitConfig(train=50, test=10, validation=10)

    def test_values_are_bounded(self) -> None:
        with pytest.raises(PydanticValidationError):
            SplitConfig(train=120, test=-10, validation=-10)


class TestManifest:
    def test_fields(self, project: ProjectResponse) -> None:
        manifest = build_manifest(project, _records(10), SplitConfig(), EXPORTED_AT)

        assert manifest["path"] == "."
        assert manifest["train"] == manifest["val"] == manifest["test"] == "images"
        assert manifest["total_images"] == 10
        assert (manifest["train_images"], manifest["val_images"], manifest["test_images"]) == (8, 1, 1)
        assert manifest["nc"] == 1
        assert manifest["names"] == {0: "object"}
        assert manifest["dataset_info"]["name"] == "Street scenes"
        assert manifest["dataset_info"]["format"] == "YOLO"
        assert manifest["labeloo"]["project_id"] == 1
        assert [t["task_id"] for t in manifest["tasks"]] == list(range(1, 11))

    def test_rendered_yaml_parses_back(self, project: ProjectResponse) -> None:
        text = render_manifest(project, _records(2), SplitConfig(), EXPORTED_AT)

        assert text.startswith("# YOLO Dataset Configuration")
        assert "# Project: Street scenes" in text
        parsed = yaml.safe_load(text)
        assert parsed["names"] == {0: "object"}
        assert parsed["split_config"] == {"train": 80, "validation": 10, "test": 10}
        assert parsed["tasks"][1]["label"] == "labels/2.txt"

    def test_project_name_cannot_break_out_of_header(self) -> None:
        sneaky = ProjectResponse(id=2, name="line one\nnc: 99", description="d")
        parsed = yaml.safe_load(render_manifest(sneaky, _records(1), SplitConfig(), EXPORTED_AT))
        assert parsed["nc"] == 1
        assert parsed["dataset_info"]["name"] == "line one\nnc: 99"
