"""
End-to-end tests for the storyflow command line.
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from storyflow.main import cli, parse_arguments
from storyflow.records.schema import IssueData
from tests.util import STORY_WITH_TASKS, FakeTracker, write_file


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
    monkeypatch.delenv("GH_API_TOKEN", raising=False)


def run(root: Path, *arguments: str) -> int:
    return cli(["--root", str(root), *arguments])


class TestParseArguments:
    def test_update_task_flags(self) -> None:
        args = parse_arguments(["update-task", "42", "2", "--complete", "--pr", "7"])

        assert args.command == "update-task"
        assert (args.story_id, args.task_id, args.complete, args.pr) == ("42", "2", True, 7)

    def test_conflicting_state_flags_rejected(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments(["update-task", "1", "1", "--complete", "--incomplete"])


class TestStoryCommands:
    def test_list_stories(self, tmp_path: Path, capsys) -> None:
        write_file(tmp_path, "stories/tasks/42.md", STORY_WITH_TASKS)

        assert run(tmp_path, "list-stories") == 0

        out = capsys.readouterr().out
        assert "42" in out
        assert "in-progress" in out
        assert "Title" in out

    def test_list_stories_empty(self, tmp_path: Path, capsys) -> None:
        assert run(tmp_path, "list-stories") == 0
        assert "No stories found." in capsys.readouterr().out

    def test_show_story(self, tmp_path: Path, capsys) -> None:
        write_file(tmp_path, "stories/bugs/42.md", STORY_WITH_TASKS)

        assert run(tmp_path, "show-story", "42") == 0

        out = capsys.readouterr().out
        assert "Story #42: Title" in out
        assert "Type:    bug" in out
        assert "Tasks (1/2 done):" in out
        assert "2. [x] B (#7)" in out

    def test_show_missing_story_lists_candidates(self, tmp_path: Path, capsys) -> None:
        write_file(tmp_path, "stories/tasks/5.md", "# Five\n")

        assert run(tmp_path, "show-story", "99") == 1

        err = capsys.readouterr().err
        assert "Error: Story #99 not found" in err
        assert "1. 5: Five" in err

    def test_add_tasks_from_arguments_and_file(self, tmp_path: Path, capsys) -> None:
        path = write_file(tmp_path, "stories/tasks/42.md", STORY_WITH_TASKS)
        task_file = write_file(tmp_path, "new-tasks.txt", "1. D\n* E\n")

        assert run(tmp_path, "add-tasks", "42", "C", "--file", str(task_file)) == 0

        assert path.read_text() == (
            "# Title\n\nDesc\n\n## Tasks\n\n- [ ] A\n- [x] B (#7)\n- [ ] C\n- [ ] D\n- [ ] E\n"
        )
        assert "Added 3 tasks to story 42" in capsys.readouterr().out

    def test_add_tasks_from_stdin(self, tmp_path: Path, monkeypatch) -> None:
        path = write_file(tmp_path, "stories/tasks/42.md", "# T\n\n## Tasks\n")
        monkeypatch.setattr("sys.stdin", io.StringIO("- [ ] From stdin\n"))

        assert run(tmp_path, "add-tasks", "42", "--file", "-") == 0
        assert path.read_text() == "# T\n\n## Tasks\n\n- [ ] From stdin\n"

    def test_add_tasks_nothing_to_add(self, tmp_path: Path, capsys) -> None:
        path = write_file(tmp_path, "stories/tasks/42.md", STORY_WITH_TASKS)

        assert run(tmp_path, "add-tasks", "42", "  ") == 0
        assert path.read_text() == STORY_WITH_TASKS
        assert "No tasks added." in capsys.readouterr().out

    def test_add_tasks_without_tasks_section_fails(self, tmp_path: Path, capsys) -> None:
        content = "# T\n\nNo checklist section here.\n"
        path = write_file(tmp_path, "stories/tasks/42.md", content)

        assert run(tmp_path, "add-tasks", "42", "C") == 1
        assert "## Tasks" in capsys.readouterr().err
        assert path.read_text() == content

    def test_update_task(self, tmp_path: Path, capsys) -> None:
        path = write_file(tmp_path, "stories/tasks/42.md", STORY_WITH_TASKS)

        assert run(tmp_path, "update-task", "42", "1", "--complete", "--pr", "12") == 0

        assert "- [x] A (#12)\n- [x] B (#7)\n" in path.read_text()
        out = capsys.readouterr().out
        assert "Task 1 marked as completed: A" in out
        assert "Story status: done" in out

    def test_update_task_requires_a_change(self, tmp_path: Path, capsys) -> None:
        write_file(tmp_path, "stories/tasks/42.md", STORY_WITH_TASKS)

        assert run(tmp_path, "update-task", "42", "1") == 1
        assert "Nothing to update" in capsys.readouterr().err

    def test_update_unknown_task(self, tmp_path: Path, capsys) -> None:
        write_file(tmp_path, "stories/tasks/42.md", STORY_WITH_TASKS)

        assert run(tmp_path, "update-task", "42", "9", "--toggle") == 1
        assert "Task '9' not found" in capsys.readouterr().err


class TestFeatureCommands:
    def test_list_and_show_feature(self, tmp_path: Path, capsys) -> None:
        write_file(tmp_path, "features/feature-3.md", "# Payments\n\nLabels: billing\n\nAccept cards.\n")

        assert run(tmp_path, "list-features") == 0
        assert "3          Payments" in capsys.readouterr().out

        assert run(tmp_path, "show-feature", "3") == 0
        out = capsys.readouterr().out
        assert "Feature #3: Payments" in out
        assert "Labels: feature, billing" in out


class TestTrackerCommands:
    @pytest.fixture
    def tracker(self, monkeypatch) -> FakeTracker:
        fake = FakeTracker({
            8: IssueData(id="8", number=8, title="Dark mode", description="Please.", labels=["ui"]),
        })
        monkeypatch.setattr(
            "storyflow.project_management.tracker.tracker_from_config", lambda config: fake
        )
        return fake

    def test_import_issue(self, tmp_path: Path, tracker: FakeTracker, capsys) -> None:
        assert run(tmp_path, "import-issue", "8", "--repo", "octo/widgets", "--as", "user-story") == 0

        assert (tmp_path / "stories/user-stories/8.md").exists()
        assert "Created stories/user-stories/8.md" in capsys.readouterr().out

    def test_comment_issue_uses_configured_repository(self, tmp_path: Path, tracker: FakeTracker, monkeypatch) -> None:
        monkeypatch.setenv("GITHUB_REPOSITORY", "octo/widgets")

        assert run(tmp_path, "comment-issue", "8", "Done in #10") == 0
        assert tracker.comments == [("octo", "widgets", 8, "Done in #10")]

    def test_comment_issue_without_repository(self, tmp_path: Path, tracker: FakeTracker, capsys) -> None:
        assert run(tmp_path, "comment-issue", "8", "hi") == 1
        assert "Invalid repository" in capsys.readouterr().err

    def test_missing_token(self, tmp_path: Path, capsys) -> None:
        assert run(tmp_path, "comment-issue", "8", "hi", "--repo", "octo/widgets") == 1
        assert "GH_API_TOKEN" in capsys.readouterr().err
