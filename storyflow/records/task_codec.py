"""
Checklist codec for story documents.

Decoding reads every checkbox line in a document, whatever section it is in.
Encoding writes a task list back into the `## Tasks` block and leaves every
other byte of the document alone:

    # Title
    ...                                  <- copied verbatim
    ## Tasks
    _Break this story down into ..._     <- optional developer note, kept
                                         <- checklist block: blank and
    - [ ] A                                 checkbox lines, rewritten
    - [x] B (#7)
                                         <-
    ## Notes                             <- copied verbatim
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator

from storyflow.records.errors import MalformedDocument, TaskListConflict
from storyflow.records.schema import Task


# =============================================================================
# PATTERNS
# =============================================================================

# Pattern: - [ ] text, - [x] text (#12), [X] text
CHECKLIST_PATTERN = re.compile(r"^\s*-?\s*\[([ xX])\]\s+(.+?)\s*$")
PR_SUFFIX_PATTERN = re.compile(r"\s*\(#(\d+)\)$")

SECTION_HEADING_PATTERN = re.compile(r"^##(?!#)")
TASKS_HEADING_PATTERN = re.compile(r"^##\s*Tasks", re.IGNORECASE)
DEVELOPER_NOTE_MARKER = "Break this story down"

BULLET_PATTERN = re.compile(r"^[-*]\s+(.+)$")
NUMBERED_PATTERN = re.compile(r"^\d+\.\s+(.+)$")


# =============================================================================
# DECODING
# =============================================================================


def split_pr_suffix(text: str) -> tuple[str, int | None]:
    """Split a trailing `(#N)` pull request reference off a description."""
    pr_match = PR_SUFFIX_PATTERN.search(text)
    if not pr_match:
        return text, None
    return text[: pr_match.start()].strip(), int(pr_match.group(1))


def decode_line(line: str, task_id: int) -> Task | None:
    """Parse one checklist line, or return None if it is not one."""
    match = CHECKLIST_PATTERN.match(line)
    if not match:
        return None

    checkbox, text = match.groups()
    text, pr_number = split_pr_suffix(text)

    return Task(
        id=task_id,
        description=text,
        completed=checkbox.lower() == "x",
        pr_number=pr_number,
    )


def decode_tasks(content: str) -> list[Task]:
    """Parse every checklist line of a document into tasks.

    Task ids are assigned 1, 2, 3... in document order.

    Args:
        content: Raw markdown file content

    Returns:
        List of Task objects
    """
    tasks: list[Task] = []
    for line in content.split("\n"):
        task = decode_line(line, len(tasks) + 1)
        if task is not None:
            tasks.append(task)
    return tasks


def render_task(task: Task) -> str:
    checkbox = "[x]" if task.completed else "[ ]"
    pr_info = f" (#{task.pr_number})" if task.pr_number is not None else ""
    return f"- {checkbox} {task.description}{pr_info}"


def normalize_task(task: Task) -> Task:
    """Return ``task`` as it will read back after being written.

    A trailing `(#N)` in the description becomes the PR number when the
    task has none; with a PR number set it stays part of the text.

    Raises:
        ValueError: The description is empty or spans several lines
    """
    if "\n" in task.description or "\r" in task.description:
        raise ValueError(f"Task description must be a single line: {task.description!r}")

    description = task.description.strip()
    pr_number = task.pr_number
    if pr_number is None:
        description, pr_number = split_pr_suffix(description)
    if not description:
        raise ValueError("Task description is required")

    return task.model_copy(update={"description": description, "pr_number": pr_number})


# =============================================================================
# SECTION STATE MACHINE
# =============================================================================


class Section(Enum):
    """Where a line sits relative to the document's level-2 headings."""

    PREAMBLE = "preamble"
    BODY = "body"
    IN_TASKS = "in_tasks"


def classify_lines(lines: list[str]) -> Iterator[tuple[int, str, Section]]:
    """Yield (index, line, section) for every line.

    Only the first `## Tasks` heading opens a Tasks section; every other
    level-2 heading starts BODY. Heading lines carry the state they open.
    """
    state = Section.PREAMBLE
    seen_tasks = False
    for index, line in enumerate(lines):
        if SECTION_HEADING_PATTERN.match(line):
            if not seen_tasks and TASKS_HEADING_PATTERN.match(line):
                state = Section.IN_TASKS
                seen_tasks = True
            else:
                state = Section.BODY
        yield index, line, state


@dataclass
class TaskSectionLayout:
    """Line indices that a merge needs.

    The checklist block is ``lines[block_start:block_end]``: the last
    checklist run of the Tasks section, or the empty spot under the heading
    (and developer note) when the section has no checklist yet.
    ``leading_blank`` is False once the block has moved below section text.
    """

    heading: int | None = None
    note: int | None = None
    block_start: int = 0
    block_end: int = 0
    leading_blank: bool = True
    checklist_lines: list[int] = field(default_factory=list)

    def in_block(self, index: int) -> bool:
        return self.block_start <= index < self.block_end


def scan_layout(lines: list[str]) -> TaskSectionLayout:
    """Locate the Tasks heading, developer note, checklist block and all
    checklist lines of a document."""
    layout = TaskSectionLayout()
    in_block = False

    for index, line, section in classify_lines(lines):
        is_checklist = CHECKLIST_PATTERN.match(line) is not None
        if is_checklist:
            layout.checklist_lines.append(index)

        if section is not Section.IN_TASKS:
            in_block = False
            continue

        if layout.heading is None:
            layout.heading = index
            layout.block_start = layout.block_end = index + 1
            in_block = True
            continue

        if index == layout.heading + 1 and DEVELOPER_NOTE_MARKER in line:
            layout.note = index
            layout.block_start = layout.block_end = index + 1
            continue

        if in_block and (is_checklist or not line.strip()):
            layout.block_end = index + 1
        elif is_checklist:
            layout.block_start, layout.block_end = index, index + 1
            layout.leading_blank = False
            in_block = True
        else:
            in_block = False

    return layout


# =============================================================================
# MERGING
# =============================================================================


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def merge_tasks(content: str, tasks: list[Task], source: Path | None = None) -> str:
    """Write a task list back into a document.

    Existing checklist lines are matched to ``tasks`` by position. Lines in
    the Tasks block are re-rendered together with any appended tasks;
    checklist lines elsewhere are rewritten in place only if their task
    changed. Everything else is copied verbatim.

    Args:
        content: Current document text
        tasks: Complete task list (existing tasks in order, then new ones)
        source: Path used in error messages

    Returns:
        Updated document text; ``content`` itself when nothing changed

    Raises:
        MalformedDocument: The document has no `## Tasks` heading
        TaskListConflict: ``tasks`` is shorter than the document's checklist
    """
    lines = content.split("\n")
    layout = scan_layout(lines)
    if layout.heading is None:
        raise MalformedDocument(source)

    existing = decode_tasks(content)
    if len(tasks) < len(existing):
        raise TaskListConflict(
            f"Document has {len(existing)} checklist entries but only "
            f"{len(tasks)} tasks were given; merge never removes entries"
        )

    if [t.checklist_key for t in tasks] == [t.checklist_key for t in existing]:
        return content

    slot_of = {line_index: slot for slot, line_index in enumerate(layout.checklist_lines)}
    block_slots = [slot for idx, slot in slot_of.items() if layout.in_block(idx)]
    block_tasks = [tasks[slot] for slot in sorted(block_slots)] + tasks[len(existing):]

    output: list[str] = []
    for index, line in enumerate(lines):
        if block_tasks and index == layout.block_start:
            output.extend(_render_block(block_tasks, lines, layout))

        if block_tasks and layout.in_block(index):
            continue

        slot = slot_of.get(index)
        if slot is not None and tasks[slot].checklist_key != existing[slot].checklist_key:
            eol = "\r" if line.endswith("\r") else ""
            output.append(_indent_of(line) + render_task(tasks[slot]) + eol)
        else:
            output.append(line)

    if block_tasks and layout.block_start >= len(lines):
        output.extend(_render_block(block_tasks, lines, layout))

    return "\n".join(output)


def _render_block(block_tasks: list[Task], lines: list[str], layout: TaskSectionLayout) -> list[str]:
    # CRLF documents keep "\r" on every line the block writes
    eol = "\r" if lines[layout.heading].endswith("\r") else ""
    rendered = [render_task(task) for task in block_tasks]
    if layout.leading_blank:
        rendered.insert(0, "")

    more_content = layout.block_end < len(lines)
    ended_with_newline = layout.block_end == len(lines) and lines[-1] == "" and layout.block_start < len(lines)
    if more_content:
        return [line + eol for line in [*rendered, ""]]
    if ended_with_newline:
        return [line + eol for line in rendered] + [""]
    return [line + eol for line in rendered[:-1]] + rendered[-1:]


# =============================================================================
# BULK TEXT
# =============================================================================


def parse_task_lines(text: str, first_id: int = 1) -> list[Task]:
    """Turn pasted text into new tasks.

    Accepts checkbox lines (state kept), `-`/`*` bullets and `1.` numbered
    items; other lines are ignored.
    """
    tasks: list[Task] = []
    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            continue

        task = decode_line(line, first_id + len(tasks))
        if task is not None:
            tasks.append(task)
            continue

        match = BULLET_PATTERN.match(line) or NUMBERED_PATTERN.match(line)
        if match and match.group(1).strip():
            tasks.append(Task(id=first_id + len(tasks), description=match.group(1).strip()))

    return tasks
