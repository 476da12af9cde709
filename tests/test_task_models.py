# tests/test_task_models.py

from __future__ import annotations

import pytest

from tasksync.tasks.task_draft import TaskDraft
from tasksync.tasks.task_models import SubTask, Task


def test_task_document_uses_camel_case_fields_and_no_id() -> None:
    task = Task(
        id="abc",
        name="Write report",
        time_slot="Monday 9am-10am",
        sub_tasks=(SubTask("Outline"), SubTask("Draft")),
    )

    assert task.to_document() == {
        "name": "Write report",
        "isCompleted": False,
        "timeSlot": "Monday 9am-10am",
        "subTasks": [{"name": "Outline"}, {"name": "Draft"}],
    }


def test_task_from_document_fills_missing_fields() -> None:
    task = Task.from_document("doc1", {"name": "Gym"})

    assert task.id == "doc1"
    assert task.name == "Gym"
    assert task.time_slot == ""
    assert task.is_completed is False
    assert task.sub_tasks == ()

    empty = Task.from_document("doc2", None)
    assert empty == Task(id="doc2", name="", time_slot="")


def test_task_from_document_keeps_sub_task_order() -> None:
    task = Task.from_document(
        "doc1",
        {
            "name": "Errands",
            "isCompleted": True,
            "timeSlot": "Sat",
            "subTasks": [{"name": "Buy milk"}, {"name": "Call dentist"}, "garbage"],
        },
    )

    assert task.is_completed is True
    assert task.sub_task_names == ["Buy milk", "Call dentist", ""]


def test_with_completed_changes_only_the_flag() -> None:
    task = Task(id="t1", name="n", time_slot="s", sub_tasks=(SubTask("a"),))
    done = task.with_completed(True)

    assert done.is_completed is True
    assert (done.id, done.name, done.time_slot, done.sub_tasks) == (
        task.id,
        task.name,
        task.time_slot,
        task.sub_tasks,
    )
    assert task.is_completed is False


def test_draft_collects_sub_tasks_and_builds_task() -> None:
    draft = TaskDraft(name="Errands", time_slot="Saturday")
    assert draft.add_sub_task("Buy milk")
    assert not draft.add_sub_task("   ")
    assert draft.add_sub_task("Call dentist")

    task = draft.build()
    assert task.id == ""
    assert task.sub_task_names == ["Buy milk", "Call dentist"]

    draft.clear()
    assert draft.is_empty
    # The built task is detached from the draft.
    assert task.sub_task_names == ["Buy milk", "Call dentist"]


@pytest.mark.parametrize(
    ("name", "slot", "error"),
    [("", "Monday", "task name is required"), ("Gym", " ", "time slot is required")],
)
def test_draft_build_requires_name_and_time_slot(name: str, slot: str, error: str) -> None:
    draft = TaskDraft(name=name, time_slot=slot)
    with pytest.raises(ValueError, match=error):
        draft.build()
