# src/tasksync/tasks/task_draft.py

from __future__ import annotations

from dataclasses import dataclass, field

from .task_models import SubTask, Task


@dataclass(slots=True)
class TaskDraft:
    """
    Pending state of the task creation form.

    Sub-tasks collect here until the task is submitted; afterwards they exist
    only inside the created Task document. Owned by a single view, never shared.
    """

    name: str = ""
    time_slot: str = ""
    sub_tasks: list[SubTask] = field(default_factory=list)

    def add_sub_task(self, name: str) -> bool:
        """Append a pending sub-task. Blank names are ignored (returns False)."""
        if not name or not name.strip():
            return False
        self.sub_tasks.append(SubTask(name=name))
        return True

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.time_slot and not self.sub_tasks

    def build(self) -> Task:
        if not self.name or not self.name.strip():
            raise ValueError("task name is required")
        if not self.time_slot or not self.time_slot.strip():
            raise ValueError("time slot is required")
        return Task(name=self.name, time_slot=self.time_slot, sub_tasks=tuple(self.sub_tasks))

    def clear(self) -> None:
        self.name = ""
        self.time_slot = ""
        self.sub_tasks = []
