"""Story status derived from checklist completion."""

from __future__ import annotations

from typing import Iterable

from storyflow.records.schema import StoryStatus, Task


def derive_status(tasks: Iterable[Task]) -> StoryStatus:
    """Derive a story's status from its tasks.

    Only the counts matter: no tasks or none completed is TODO, all
    completed is DONE, anything in between is IN_PROGRESS. REVIEW is never
    returned.
    """
    total = 0
    completed = 0
    for task in tasks:
        total += 1
        if task.completed:
            completed += 1

    if completed == 0:
        return StoryStatus.TODO
    if completed == total:
        return StoryStatus.DONE
    return StoryStatus.IN_PROGRESS
