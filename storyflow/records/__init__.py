"""
Local record store - stories and features kept as markdown files.

This module provides:
- Parsing of title, description and labels from markdown records
- Checklist decoding and in-place checklist merging
- Status derived from checklist completion
- Lookup, listing, load and save across category directories

Usage:
    storyflow list-stories
    storyflow show-story 42
    storyflow add-tasks 42 "Write tests"
    storyflow update-task 42 1 --complete --pr 17
"""

from storyflow.records.schema import (
    FeatureRecord,
    FeatureSummary,
    IssueData,
    RecordHeader,
    StoryRecord,
    StoryStatus,
    StorySummary,
    Task,
)

from storyflow.records.errors import (
    MalformedDocument,
    RecordNotFound,
    RecordStoreError,
    TaskListConflict,
    TaskNotFound,
)

from storyflow.records.status import derive_status
from storyflow.records.task_codec import decode_tasks, merge_tasks, parse_task_lines
from storyflow.records.store import FeatureStore, RecordStore

__all__ = [
    # Schema
    "FeatureRecord",
    "FeatureSummary",
    "IssueData",
    "RecordHeader",
    "StoryRecord",
    "StoryStatus",
    "StorySummary",
    "Task",
    # Errors
    "MalformedDocument",
    "RecordNotFound",
    "RecordStoreError",
    "TaskListConflict",
    "TaskNotFound",
    # Operations
    "derive_status",
    "decode_tasks",
    "merge_tasks",
    "parse_task_lines",
    "FeatureStore",
    "RecordStore",
]
