"""Tests for AnnotationStore authorship, lookup, and the export pick."""

from __future__ import annotations

import pytest

from labeloo.errors import NotFoundError, ValidationError
from labeloo.models.annotation import AnnotationCreate, ReviewStatus
from labeloo.services.annotation_store import AnnotationStore
from labeloo.services.task_registry import TaskRegistry

RECTANGLE = {
    "annotations": [
        {"type": "rectangle", "startPoint": {"x": 10, "y": 10}, "width": 20, "height": 20}
    ]
}


@pytest.fixture()
def task(registry: TaskRegistry, project):
    return registry.create(project.id, "http://testserver/bucket/projects/1/a.png")


def test_author_is_the_caller_not_the_payload(
    annotation_store: AnnotationStore, task
) -> None:
    created = annotation_store.create(
        AnnotationCreate(task_id=task.id, annotation_data=RECTANGLE, user_id=99),
        author_id=7,
    )
    assert created.user_id == 7
    assert created.project_id == task.project_id
    assert created.annotation_data == RECTANGLE
    assert created.review_status == ReviewStatus.PENDING


def test_missing_task_is_rejected(annotation_store: AnnotationStore) -> None:
    with pytest.raises(NotFoundError):
        annotation_store.create(
            AnnotationCreate(task_id=12345, annotation_data=RECTANGLE), author_id=1
        )


def test_project_mismatch_is_rejected(annotation_store: AnnotationStore, task) -> None:
    with pytest.raises(ValidationError):
        annotation_store.create(
            AnnotationCreate(
                task_id=task.id, annotation_data=RECTANGLE, project_id=task.project_id + 1
            ),
            author_id=1,
        )


def test_get_by_id_respects_owner(annotation_store: AnnotationStore, task) -> None:
    created = annotation_store.create(
        AnnotationCreate(task_id=task.id, annotation_data=RECTANGLE), author_id=3
    )
    assert annotation_store.get_by_id(created.id).id == created.id
    assert annotation_store.get_by_id(created.id, user_id=3).id == created.id
    with pytest.raises(NotFoundError):
        annotation_store.get_by_id(created.id, user_id=4)
    with pytest.raises(NotFoundError):
        annotation_store.get_by_id(9999)


def test_list_by_user_newest_first(annotation_store: AnnotationStore, task) -> None:
    first = annotation_store.create(
        AnnotationCreate(task_id=task.id, annotation_data=RECTANGLE), author_id=3
    )
    second = annotation_store.create(
        AnnotationCreate(task_id=task.id, annotation_data=[]), author_id=3
    )
    annotation_store.create(
        AnnotationCreate(task_id=task.id, annotation_data=[]), author_id=8
    )

    assert [a.id for a in annotation_store.list_by_user(3)] == [second.id, first.id]


class TestPrimaryForTask:
    def test_none_without_annotations(self, annotation_store: AnnotationStore, task) -> None:
        assert annotation_store.primary_for_task(task.id) is None

    def test_lowest_id_wins(self, annotation_store: AnnotationStore, task) -> None:
        first = annotation_store.create(
            AnnotationCreate(task_id=task.id, annotation_data=RECTANGLE), author_id=1
        )
        annotation_store.create(
            AnnotationCreate(task_id=task.id, annotation_data=[]), author_id=2
        )
        assert annotation_store.primary_for_task(task.id).id == first.id

    def test_ground_truth_wins(self, annotation_store: AnnotationStore, task) -> None:
        annotation_store.create(
            AnnotationCreate(task_id=task.id, annotation_data=[]), author_id=1
        )
        truth = annotation_store.create(
            AnnotationCreate(
                task_id=task.id, annotation_data=RECTANGLE, is_ground_truth=True
            ),
            author_id=2,
        )
        assert annotation_store.primary_for_task(task.id).id == truth.id
