"""
Pydantic models for locally tracked stories and features.

Used by:
- parser.py / task_codec.py (markdown parsing)
- store.py (record lookup, listing and save)
- project_management/tracker.py (remote issue data)

A record's status is never read from disk; it is derived from the checklist
every time a record is loaded.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

try:
    from pydantic import BaseModel, Field
except ImportError:
    raise ImportError(
        "pydantic is required for storyflow. "
        "Install with: pip install storyflow"
    )


StoryType = Literal["user-story", "task", "bug"]


class StoryStatus(str, Enum):
    """Lifecycle status of a story.

    REVIEW is never derived from a checklist; it exists for records whose
    status was set by hand in another tool.
    """

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"


# =============================================================================
# TASK MODEL
# =============================================================================


class Task(BaseModel):
    """Parsed from markdown checkboxes.

    Format: `- [ ] text` or `- [x] text (#12)`
    """

    id: int = Field(..., description="1-based position in document order")
    description: str = Field(..., description="Task text without PR suffix")
    completed: bool = Field(default=False, description="Checkbox state")
    pr_number: int | None = Field(default=None, description="Linked pull request")

    @property
    def checklist_key(self) -> tuple[str, bool, int | None]:
        """Everything a checklist line stores; ``id`` is positional only."""
        return (self.description, self.completed, self.pr_number)


# =============================================================================
# RECORD MODELS
# =============================================================================


class RecordHeader(BaseModel):
    """Fields shared by local records and remote issues."""

    id: str = Field(..., description="Record identifier")
    title: str = Field(default="", description="First heading of the document")
    description: str = Field(default="", description="Body text after the title")
    labels: list[str] = Field(default_factory=list, description="Labels")


class FeatureRecord(RecordHeader):
    """features/*.md"""

    source_file: Path | None = Field(default=None, description="Backing file")


class StoryRecord(RecordHeader):
    """stories/{user-stories,tasks,bugs}/*.md

    Example:
        id: "42"
        title: "Add login button"
        type: task
        feature_id: "7"
        status: in-progress
    """

    type: StoryType = Field(default="task", description="user-story, task or bug")
    feature_id: str = Field(default="0", description="Parent feature reference")
    tasks: list[Task] = Field(default_factory=list, description="Checklist tasks")
    status: StoryStatus = Field(default=StoryStatus.TODO, description="Derived status")
    source_file: Path | None = Field(default=None, description="Backing file")

    @property
    def completed_task_count(self) -> int:
        """Count of completed tasks."""
        return sum(1 for task in self.tasks if task.completed)


class IssueData(RecordHeader):
    """An issue fetched from the remote tracker."""

    number: int = Field(..., description="Issue number")
    url: str = Field(default="", description="Web URL of the issue")


# =============================================================================
# LISTING MODELS
# =============================================================================


class FeatureSummary(BaseModel):
    """One row of `storyflow list-features`."""

    id: str
    title: str
    file: str


class StorySummary(BaseModel):
    """One row of `storyflow list-stories`."""

    id: str
    title: str
    type: StoryType
    status: StoryStatus
    file: str
