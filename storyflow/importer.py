"""
Create local records from remote issues.

Usage:
    storyflow import-issue 42 --as bug
    storyflow import-issue 7 --as feature --repo octo/widgets
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, PackageLoader, StrictUndefined

from storyflow.config import WorkflowConfig
from storyflow.project_management.tracker import IssueTracker, split_repository
from storyflow.records.schema import IssueData

RECORD_TEMPLATE = "record.md.j2"
RECORD_TYPES = ("user-story", "task", "bug", "feature")


def _environment() -> Environment:
    return Environment(
        loader=PackageLoader(__package__, "templates"),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        autoescape=False,
    )


def render_record(issue: IssueData, with_tasks: bool = True, feature_id: str | None = None) -> str:
    """Render the markdown document for a new record."""
    template = _environment().get_template(RECORD_TEMPLATE)
    return template.render(issue=issue, with_tasks=with_tasks, feature_id=feature_id)


def record_path(config: WorkflowConfig, record_type: str, number: int) -> Path:
    if record_type == "feature":
        directory = config.features_path
    else:
        directory = config.category_path(config.category_for_type(record_type))
    return directory / f"{number}.md"


def import_issue(
    config: WorkflowConfig,
    tracker: IssueTracker,
    number: int,
    record_type: str = "task",
    repository: str | None = None,
    feature_id: str | None = None,
) -> Path:
    """Fetch an issue and write it as a new story or feature file.

    Args:
        config: Project configuration
        tracker: Remote issue tracker
        number: Issue number
        record_type: user-story, task, bug or feature
        repository: owner/name (default: config.github_repository)
        feature_id: Parent feature reference written into stories

    Returns:
        Path of the created file

    Raises:
        FileExistsError: A record file for this issue already exists
    """
    if record_type not in RECORD_TYPES:
        raise ValueError(f"Unknown record type '{record_type}'. Use: {', '.join(RECORD_TYPES)}")

    path = record_path(config, record_type, number)
    if path.exists():
        raise FileExistsError(f"{path} already exists")

    owner, repo = split_repository(repository or config.github_repository)
    issue = tracker.fetch_issue(owner, repo, number)

    is_story = record_type != "feature"
    content = render_record(issue, with_tasks=is_story, feature_id=feature_id if is_story else None)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
