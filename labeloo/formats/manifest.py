"""YOLO ``data.yaml`` manifest generation using PyYAML.

Field names are consumed by downstream training tooling; treat them as
a compatibility surface.
"""

from __future__ import annotations

import math
from datetime import datetime

import yaml

from labeloo.models.export import ExportRecord, SplitConfig
from labeloo.models.project import ProjectResponse

MANIFEST_FILENAME = "data.yaml"
IMAGES_FOLDER = "images"
LABELS_FOLDER = "labels"
DEFAULT_CLASS_NAMES: dict[int, str] = {0: "object"}

_HEADER = """\
# YOLO Dataset Configuration
# Generated by Labeloo
# Project: {name}
# Generated on: {date}
#
# All images are in '{images}' and all labels in '{labels}'.
# The split counts below are descriptive; files are not partitioned.

"""


def split_counts(total: int, split: SplitConfig) -> tuple[int, int, int]:
    """Return ``(train, validation, test)`` image counts for *total* images.

    Train and test are floored; validation takes the remainder.
    """
    train = math.floor(total * split.train / 100)
    test = math.floor(total * split.test / 100)
    return train, total - train - test, test


def build_manifest(
    project: ProjectResponse,
    records: list[ExportRecord],
    split: SplitConfig,
    exported_at: datetime,
) -> dict:
    """Assemble the manifest document as a plain dict."""
    total = len(records)
    train, val, test = split_counts(total, split)
    export_date = exported_at.isoformat()

    return {
        "path": ".",
        "train": IMAGES_FOLDER,
        "val": IMAGES_FOLDER,
        "test": IMAGES_FOLDER,
        "total_images": total,
        "train_images": train,
        "val_images": val,
        "test_images": test,
        "split_config": {
            "train": split.train,
            "validation": split.validation,
            "test": split.test,
        },
        "nc": len(DEFAULT_CLASS_NAMES),
        "names": dict(DEFAULT_CLASS_NAMES),
        "dataset_info": {
            "name": project.name,
            "description": project.description or "Dataset exported from Labeloo",
            "format": "YOLO",
            "export_date": export_date,
            "images_folder": IMAGES_FOLDER,
            "labels_folder": LABELS_FOLDER,
        },
        "labeloo": {
            "project_id": project.id,
            "export_format": "yolo",
            "exported_at": export_date,
        },
        "tasks": [
            {
                "task_id": record.task_id,
                "annotation_id": record.annotation_id,
                "image": record.image_path,
                "label": record.label_path,
                "is_ground_truth": record.is_ground_truth,
                "source_url": record.image_url,
                "metadata": record.metadata,
            }
            for record in records
        ],
    }


def render_manifest(
    project: ProjectResponse,
    records: list[ExportRecord],
    split: SplitConfig,
    exported_at: datetime,
) -> str:
    """Render ``data.yaml`` text: a comment header followed by the document."""
    header = _HEADER.format(
        name=project.name.replace("\n", " "),
        date=exported_at.isoformat(),
        images=IMAGES_FOLDER,
        labels=LABELS_FOLDER,
    )
    body = yaml.safe_dump(
        build_manifest(project, records, split, exported_at),
        sort_keys=False,
        allow_unicode=True,
    )
    return header + body
