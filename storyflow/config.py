"""
Project configuration, built once at startup and passed to every component.

Sources, later ones winning:
1. Built-in defaults
2. storyflow.yml in the project root (or --config PATH)
3. Environment: GITHUB_REPOSITORY, GH_API_TOKEN

Example storyflow.yml:
    features_dir: features
    stories_dir: stories
    story_categories:
      - {directory: user-stories, type: user-story}
      - {directory: tasks, type: task}
      - {directory: bugs, type: bug}
    github_repository: octo/widgets
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError

from storyflow.records.schema import StoryType
from storyflow.util import load_yaml

CONFIG_FILENAME = "storyflow.yml"


class ConfigError(Exception):
    """Configuration file missing, unreadable or invalid."""


class StoryCategory(BaseModel):
    """A stories/ subdirectory and the story type stored in it."""

    directory: str = Field(..., description="Subdirectory of stories_dir")
    type: StoryType = Field(..., description="Story type of its records")


DEFAULT_STORY_CATEGORIES = [
    StoryCategory(directory="user-stories", type="user-story"),
    StoryCategory(directory="tasks", type="task"),
    StoryCategory(directory="bugs", type="bug"),
]


class WorkflowConfig(BaseModel):
    root: Path = Field(default_factory=Path.cwd, description="Project root")
    features_dir: str = Field(default="features", description="Feature records, relative to root")
    stories_dir: str = Field(default="stories", description="Story records, relative to root")
    story_categories: list[StoryCategory] = Field(
        default_factory=lambda: list(DEFAULT_STORY_CATEGORIES),
        description="Story subdirectories in lookup priority order",
    )
    github_repository: str | None = Field(default=None, description="owner/name")
    github_token: str | None = Field(default=None, description="GitHub API token")

    model_config = {"extra": "forbid"}

    @property
    def features_path(self) -> Path:
        return self.root / self.features_dir

    @property
    def stories_path(self) -> Path:
        return self.root / self.stories_dir

    def category_path(self, category: StoryCategory) -> Path:
        return self.stories_path / category.directory

    def category_for_type(self, story_type: str) -> StoryCategory:
        for category in self.story_categories:
            if category.type == story_type:
                return category
        raise ConfigError(f"No story category configured for type '{story_type}'")


def load_config(
    root: Path | None = None,
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> WorkflowConfig:
    """Build the configuration for one CLI invocation.

    Args:
        root: Project root (default: current directory)
        config_path: Explicit config file; must exist when given
        environ: Environment mapping (default: os.environ)

    Returns:
        WorkflowConfig
    """
    root = Path(root) if root else Path.cwd()
    environ = os.environ if environ is None else environ

    if config_path is not None:
        if not Path(config_path).is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        path = Path(config_path)
    else:
        path = root / CONFIG_FILENAME

    data: dict = {}
    if path.is_file():
        try:
            data = load_yaml(path)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping")

    data["root"] = root
    if environ.get("GITHUB_REPOSITORY"):
        data["github_repository"] = environ["GITHUB_REPOSITORY"]
    if environ.get("GH_API_TOKEN"):
        data["github_token"] = environ["GH_API_TOKEN"]

    try:
        return WorkflowConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e
