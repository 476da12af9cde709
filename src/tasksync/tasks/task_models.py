# src/tasksync/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class SubTask:
    """Name-only checklist item. Lives inline in its Task document."""

    name: str

    @classmethod
    def from_document(cls, data: Any) -> SubTask:
        if not isinstance(data, dict):
            return cls(name="")
        return cls(name=str(data.get("name") or ""))

    def to_document(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass(frozen=True, slots=True)
class Task:
    """
    One document in users/{uid}/tasks.

    `id` is "" until the backend assigns a key on creation.
    Document field names are camelCase to stay compatible with existing collections.
    """

    name: str
    time_slot: str
    id: str = ""
    is_completed: bool = False
    sub_tasks: tuple[SubTask, ...] = field(default_factory=tuple)

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any] | None) -> Task:
        data = data or {}
        raw_subs = data.get("subTasks") or []
        if not isinstance(raw_subs, list):
            raw_subs = []
        return cls(
            id=str(doc_id),
            name=str(data.get("name") or ""),
            is_completed=bool(data.get("isCompleted") or False),
            time_slot=str(data.get("timeSlot") or ""),
            sub_tasks=tuple(SubTask.from_document(s) for s in raw_subs),
        )

    def to_document(self) -> dict[str, Any]:
        # The id is the document key, never a field.
        return {
            "name": self.name,
            "isCompleted": self.is_completed,
            "timeSlot": self.time_slot,
            "subTasks": [s.to_document() for s in self.sub_tasks],
        }

    def with_id(self, doc_id: str) -> Task:
        return replace(self, id=doc_id)

    def with_completed(self, completed: bool) -> Task:
        return replace(self, is_completed=bool(completed))

    @property
    def sub_task_names(self) -> list[str]:
        return [s.name for s in self.sub_tasks]
