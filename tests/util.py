from pathlib import Path

from storyflow.config import WorkflowConfig

STORY_WITH_TASKS = "# Title\n\nDesc\n\n## Tasks\n\n- [ ] A\n- [x] B (#7)\n"


def write_file(root, relative_path, content):
    path = Path(root) / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def make_config(root, **overrides):
    return WorkflowConfig(root=Path(root), **overrides)


class FakeTracker:
    """In-memory IssueTracker that records calls."""

    def __init__(self, issues=None):
        self.issues = issues or {}
        self.comments = []
        self.fetched = []

    def fetch_issue(self, owner, repo, number):
        self.fetched.append((owner, repo, number))
        return self.issues[number]

    def add_issue_comment(self, owner, repo, issue_number, body):
        self.comments.append((owner, repo, issue_number, body))
