"""
File-backed stores for stories and features.

Layout (relative to the project root):
    features/*.md
    stories/user-stories/*.md
    stories/tasks/*.md
    stories/bugs/*.md

Every command re-reads the files it needs; nothing is cached between calls.
Saves are not locked: a save re-reads the document immediately before
merging, but an edit made by another process between that read and the
write is overwritten. A checklist that grew in the meantime is reported as
TaskListConflict instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable

from storyflow.records.errors import RecordNotFound, TaskNotFound
from storyflow.records.parser import (
    extract_feature_id,
    merge_labels,
    parse_document,
    read_title,
    record_id_from_filename,
)
from storyflow.records.schema import (
    FeatureRecord,
    FeatureSummary,
    StoryRecord,
    StorySummary,
    Task,
)
from storyflow.records.status import derive_status
from storyflow.records.task_codec import decode_tasks, merge_tasks, normalize_task
from storyflow.util import print_warning

if TYPE_CHECKING:
    from storyflow.config import WorkflowConfig


# =============================================================================
# LOOKUP
# =============================================================================


def markdown_files(directory: Path) -> list[Path]:
    """Sorted .md files of a directory; a missing directory has none."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix == ".md" and p.is_file())


class MarkdownDirectoryStore:
    """Identifier lookup over an ordered list of category directories."""

    kind = "record"
    alias_prefix = ""

    def __init__(self, config: WorkflowConfig) -> None:
        self.config = config

    def categories(self) -> list[tuple[Path, str]]:
        """(directory, record type) pairs in lookup priority order."""
        raise NotImplementedError

    def _match_tiers(self, record_id: str) -> list[Callable[[str], bool]]:
        tiers = [lambda name: name == f"{record_id}.md"]
        if self.alias_prefix:
            tiers.append(lambda name: name == f"{self.alias_prefix}{record_id}.md")
        tiers.append(lambda name: record_id in name)
        return tiers

    def locate(self, record_id: str) -> tuple[Path, str]:
        """Find the file backing a record.

        Exact filename matches in any category win over alias matches,
        which win over substring matches. Within a tier the first category
        in configured order wins.

        Returns:
            Tuple of (file path, record type)

        Raises:
            RecordNotFound: No file matches; carries all available records
        """
        record_id = str(record_id).strip().lstrip("#")
        listings = [(markdown_files(directory), record_type) for directory, record_type in self.categories()]

        if record_id:
            for matches in self._match_tiers(record_id):
                for files, record_type in listings:
                    for path in files:
                        if matches(path.name):
                            return path, record_type

        candidates = [
            (record_id_from_filename(path.name), self._safe_title(path))
            for files, _ in listings
            for path in files
        ]
        raise RecordNotFound(record_id, self.kind, candidates)

    @staticmethod
    def _safe_title(path: Path) -> str:
        try:
            return read_title(path)
        except (OSError, UnicodeDecodeError):
            return ""

    def _readable_files(self) -> Iterable[tuple[Path, Path, str, str]]:
        """Yield (directory, path, record type, content) for every record.

        Unreadable directories and files are skipped with a warning.
        """
        for directory, record_type in self.categories():
            try:
                files = markdown_files(directory)
            except OSError as e:
                print_warning(f"Cannot list {directory}: {e}")
                continue

            for path in files:
                try:
                    content = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    print_warning(f"Failed to read {path}: {e}")
                    continue
                yield directory, path, record_type, content


# =============================================================================
# STORIES
# =============================================================================


def build_story(story_id: str, story_type: str, content: str, source_file: Path | None = None) -> StoryRecord:
    """Assemble a StoryRecord from document text."""
    document = parse_document(content)
    tasks = decode_tasks(content)
    return StoryRecord(
        id=story_id,
        title=document.title,
        type=story_type,
        description=document.description,
        feature_id=extract_feature_id(content),
        labels=merge_labels([story_type], document.labels),
        tasks=tasks,
        status=derive_status(tasks),
        source_file=source_file,
    )


class RecordStore(MarkdownDirectoryStore):
    """Stories under stories/<category>/."""

    kind = "story"
    alias_prefix = "story-"

    def categories(self) -> list[tuple[Path, str]]:
        return [
            (self.config.category_path(category), category.type)
            for category in self.config.story_categories
        ]

    def load(self, story_id: str) -> StoryRecord:
        path, story_type = self.locate(story_id)
        content = path.read_text(encoding="utf-8")
        return build_story(str(story_id).strip().lstrip("#"), story_type, content, path)

    def list_stories(self) -> list[StorySummary]:
        stories = []
        for directory, path, story_type, content in self._readable_files():
            document = parse_document(content)
            stories.append(
                StorySummary(
                    id=record_id_from_filename(path.name),
                    title=document.title,
                    type=story_type,
                    status=derive_status(decode_tasks(content)),
                    file=f"{directory.name}/{path.name}",
                )
            )
        return stories

    def save(self, story: StoryRecord) -> bool:
        """Merge the story's tasks into its backing file.

        The file is re-read right before merging and written back to the
        path it was loaded from.

        Returns:
            True if the file changed
        """
        if story.source_file is None:
            raise ValueError(f"Story #{story.id} was not loaded from a file")

        path = Path(story.source_file)
        with open(path, encoding="utf-8", newline="") as f:
            content = f.read()

        updated = merge_tasks(content, story.tasks, source=path)
        if updated == content:
            return False

        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(updated)
        return True

    def add_tasks(self, story_id: str, new_tasks: Iterable[str | Task]) -> StoryRecord:
        """Append tasks to a story and save it.

        Args:
            story_id: Story identifier
            new_tasks: Descriptions or Task objects; their ids are reassigned

        Returns:
            The updated story

        Raises:
            ValueError: A description is empty or spans several lines
        """
        story = self.load(story_id)
        tasks = list(story.tasks)
        for item in new_tasks:
            if isinstance(item, Task):
                task = item.model_copy(update={"id": len(tasks) + 1})
            else:
                task = Task(id=len(tasks) + 1, description=str(item))
            tasks.append(normalize_task(task))

        return self._save_tasks(story, tasks)

    def update_task(
        self,
        story_id: str,
        task_ref: str | int,
        *,
        completed: bool | None = None,
        toggle: bool = False,
        pr_number: int | None = None,
        clear_pr: bool = False,
        description: str | None = None,
    ) -> StoryRecord:
        """Change one task of a story and save it.

        ``task_ref`` is the task's positional id as shown by show-story.
        """
        story = self.load(story_id)
        index = self.resolve_task_index(story, task_ref)
        task = story.tasks[index].model_copy()

        if toggle:
            task.completed = not task.completed
        elif completed is not None:
            task.completed = completed
        if clear_pr:
            task.pr_number = None
        elif pr_number is not None:
            if pr_number <= 0:
                raise ValueError(f"Invalid PR number: {pr_number}")
            task.pr_number = pr_number
        if description is not None:
            task.description = description

        tasks = list(story.tasks)
        tasks[index] = normalize_task(task)
        return self._save_tasks(story, tasks)

    @staticmethod
    def resolve_task_index(story: StoryRecord, task_ref: str | int) -> int:
        ref = str(task_ref).strip().lstrip("#")
        if ref.isdigit() and 1 <= int(ref) <= len(story.tasks):
            return int(ref) - 1
        raise TaskNotFound(story.id, str(task_ref))

    def _save_tasks(self, story: StoryRecord, tasks: list[Task]) -> StoryRecord:
        updated = story.model_copy(update={"tasks": tasks, "status": derive_status(tasks)})
        self.save(updated)
        return updated


# =============================================================================
# FEATURES
# =============================================================================


class FeatureStore(MarkdownDirectoryStore):
    """Features under features/; same lookup as stories, no checklist."""

    kind = "feature"
    alias_prefix = "feature-"

    def categories(self) -> list[tuple[Path, str]]:
        return [(self.config.features_path, "feature")]

    def load(self, feature_id: str) -> FeatureRecord:
        path, _ = self.locate(feature_id)
        document = parse_document(path.read_text(encoding="utf-8"))
        return FeatureRecord(
            id=str(feature_id).strip().lstrip("#"),
            title=document.title,
            description=document.description,
            labels=merge_labels(["feature"], document.labels),
            source_file=path,
        )

    def list_features(self) -> list[FeatureSummary]:
        return [
            FeatureSummary(
                id=record_id_from_filename(path.name),
                title=parse_document(content).title,
                file=path.name,
            )
            for _, path, _, content in self._readable_files()
        ]
