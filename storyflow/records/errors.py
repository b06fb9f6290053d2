"""Errors raised by the local record store."""

from __future__ import annotations

from pathlib import Path


class RecordStoreError(Exception):
    """Base class for record store failures reported at the CLI boundary."""


class RecordNotFound(RecordStoreError):
    """No file matches an identifier.

    ``candidates`` holds the (id, title) pairs that do exist so callers can
    print a "did you mean" list.
    """

    def __init__(
        self,
        record_id: str,
        kind: str = "story",
        candidates: list[tuple[str, str]] | None = None,
    ) -> None:
        self.record_id = record_id
        self.kind = kind
        self.candidates = candidates or []
        super().__init__(f"{kind.capitalize()} #{record_id} not found")

    def format_candidates(self) -> str:
        if not self.candidates:
            return f"No {self.kind} files found."
        lines = [f"Available {self.kind} records:"]
        for index, (record_id, title) in enumerate(self.candidates, 1):
            lines.append(f"  {index}. {record_id}: {title}")
        return "\n".join(lines)


class MalformedDocument(RecordStoreError):
    """A document lacks the `## Tasks` heading a merge needs."""

    def __init__(self, path: Path | str | None = None, reason: str = "no '## Tasks' heading") -> None:
        self.path = path
        self.reason = reason
        where = f" {path}" if path else ""
        super().__init__(f"Cannot update tasks in document{where}: {reason}")


class TaskListConflict(RecordStoreError):
    """The on-disk checklist has more entries than the task list being saved."""


class TaskNotFound(RecordStoreError):
    def __init__(self, story_id: str, task_ref: str) -> None:
        self.story_id = story_id
        self.task_ref = task_ref
        super().__init__(f"Task {task_ref!r} not found in story #{story_id}")
