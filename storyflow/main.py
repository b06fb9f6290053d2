import argparse
import sys
import traceback
from pathlib import Path

from storyflow.config import ConfigError, load_config
from storyflow.records.errors import RecordNotFound, RecordStoreError
from storyflow.records.schema import StoryRecord
from storyflow.records.store import FeatureStore, RecordStore
from storyflow.records.task_codec import parse_task_lines
from storyflow.util import print_error, print_info, relative_to_root
from storyflow.version import __version__


def main():
    try:
        exit_code = cli(sys.argv[1:])
        sys.exit(exit_code)
    except Exception:
        print_error(traceback.format_exc())
        sys.exit(1)


def cli(raw_arguments):
    args = parse_arguments(raw_arguments)
    if args.command is None:
        parse_arguments(['-h'])
        return 0

    try:
        config = load_config(
            root=Path(args.root) if args.root else None,
            config_path=Path(args.config) if args.config else None,
        )
        return run_command(args, config)
    except RecordNotFound as e:
        print_error(str(e))
        print(e.format_candidates(), file=sys.stderr)
        return 1
    except (RecordStoreError, ConfigError, ValueError, OSError) as e:
        print_error(str(e))
        return 1


def run_command(args, config):
    if args.command == 'list-stories':
        return list_stories(RecordStore(config))
    elif args.command == 'list-features':
        return list_features(FeatureStore(config))
    elif args.command == 'show-story':
        print_story(RecordStore(config).load(args.story_id))
        return 0
    elif args.command == 'show-feature':
        feature = FeatureStore(config).load(args.feature_id)
        print(f"Feature #{feature.id}: {feature.title}")
        print(f"Labels: {', '.join(feature.labels)}")
        if feature.description:
            print(f"\n{feature.description}")
        return 0
    elif args.command == 'add-tasks':
        return handle_add_tasks(args, RecordStore(config))
    elif args.command == 'update-task':
        return handle_update_task(args, RecordStore(config))
    elif args.command in ('import-issue', 'comment-issue'):
        return handle_tracker_command(args, config)
    return 1


# =============================================================================
# STORY COMMANDS
# =============================================================================


def list_stories(store):
    stories = store.list_stories()
    if not stories:
        print("No stories found.")
        return 0

    print(f"{'ID':<10} {'TYPE':<12} {'STATUS':<12} TITLE")
    for story in stories:
        print(f"{story.id:<10} {story.type:<12} {story.status.value:<12} {story.title}")
    print(f"\n{len(stories)} stories")
    return 0


def list_features(store):
    features = store.list_features()
    if not features:
        print("No features found.")
        return 0

    print(f"{'ID':<10} TITLE")
    for feature in features:
        print(f"{feature.id:<10} {feature.title}")
    return 0


def print_story(story: StoryRecord):
    print(f"Story #{story.id}: {story.title}")
    print(f"Type:    {story.type}")
    print(f"Status:  {story.status.value}")
    print(f"Feature: #{story.feature_id}")
    print(f"Labels:  {', '.join(story.labels)}")

    if not story.tasks:
        print("\nNo tasks yet.")
        return

    print(f"\nTasks ({story.completed_task_count}/{len(story.tasks)} done):")
    for task in story.tasks:
        mark = 'x' if task.completed else ' '
        pr_info = f" (#{task.pr_number})" if task.pr_number is not None else ""
        print(f"  {task.id}. [{mark}] {task.description}{pr_info}")


def handle_add_tasks(args, store):
    new_tasks = [text for text in args.tasks if text.strip()]
    if args.file:
        text = sys.stdin.read() if args.file == '-' else Path(args.file).read_text(encoding='utf-8')
        new_tasks.extend(parse_task_lines(text))

    if not new_tasks:
        print("No tasks added.")
        return 0

    story = store.add_tasks(args.story_id, new_tasks)
    print(f"Added {len(new_tasks)} tasks to story {args.story_id}")
    print_info(f"Saved {relative_to_root(story.source_file, store.config.root)}")
    print_story(story)
    return 0


def handle_update_task(args, store):
    completed = None
    if args.complete:
        completed = True
    elif args.incomplete:
        completed = False

    if completed is None and not (args.toggle or args.pr is not None or args.clear_pr or args.description is not None):
        print_error("Nothing to update. Use --complete, --incomplete, --toggle, --pr, --clear-pr or --description")
        return 1

    story = store.update_task(
        args.story_id,
        args.task_id,
        completed=completed,
        toggle=args.toggle,
        pr_number=args.pr,
        clear_pr=args.clear_pr,
        description=args.description,
    )
    task = story.tasks[store.resolve_task_index(story, args.task_id)]
    state = 'completed' if task.completed else 'incomplete'
    print(f"Task {task.id} marked as {state}: {task.description}")
    print(f"Story status: {story.status.value}")
    return 0


# =============================================================================
# TRACKER COMMANDS
# =============================================================================


def handle_tracker_command(args, config):
    """Handle commands that talk to the remote issue tracker."""
    try:
        from storyflow.project_management.tracker import (
            TrackerError,
            split_repository,
            tracker_from_config,
        )
    except ImportError as e:
        print(f"Error: Missing dependency: {e}")
        print("Install with: pip install PyGithub")
        return 1

    try:
        tracker = tracker_from_config(config)
        if args.command == 'import-issue':
            from storyflow.importer import import_issue
            path = import_issue(
                config,
                tracker,
                args.number,
                record_type=args.record_type,
                repository=args.repo,
                feature_id=args.feature,
            )
            print(f"Created {relative_to_root(path, config.root)}")
        else:
            owner, repo = split_repository(args.repo or config.github_repository)
            tracker.add_issue_comment(owner, repo, args.number, args.body)
            print(f"Commented on {owner}/{repo}#{args.number}")
        return 0
    except TrackerError as e:
        print_error(str(e))
        return 1


def parse_arguments(arguments):
    parser = argparse.ArgumentParser(prog='storyflow')
    parser.add_argument('--version', action='version', version=__version__)
    parser.add_argument('--root', help='Project root containing features/ and stories/ (default: .)')
    parser.add_argument('--config', help='Path to storyflow.yml (default: <root>/storyflow.yml)')
    subparsers = parser.add_subparsers(dest='command', metavar='<command>')

    subparsers.add_parser('list-stories', help='list stories with their derived status')
    subparsers.add_parser('list-features', help='list features')

    show_story_parser = subparsers.add_parser('show-story', help='show a story and its tasks')
    show_story_parser.add_argument('story_id')

    show_feature_parser = subparsers.add_parser('show-feature', help='show a feature')
    show_feature_parser.add_argument('feature_id')

    add_help = 'append tasks to the ## Tasks section of a story'
    add_parser = subparsers.add_parser('add-tasks', help=add_help)
    add_parser.add_argument('story_id')
    add_parser.add_argument('tasks', nargs='*', help='Task descriptions')
    add_parser.add_argument('-f', '--file', help='Read tasks (checkboxes, bullets or numbered) from file, - for stdin')

    update_help = 'complete, reopen, link or rename one task of a story'
    update_parser = subparsers.add_parser('update-task', help=update_help)
    update_parser.add_argument('story_id')
    update_parser.add_argument('task_id', help='Task number as shown by show-story')
    state_group = update_parser.add_mutually_exclusive_group()
    state_group.add_argument('--complete', action='store_true', help='Mark as completed')
    state_group.add_argument('--incomplete', action='store_true', help='Mark as incomplete')
    state_group.add_argument('--toggle', action='store_true', help='Toggle completion')
    pr_group = update_parser.add_mutually_exclusive_group()
    pr_group.add_argument('--pr', type=int, help='Link a pull request number')
    pr_group.add_argument('--clear-pr', action='store_true', help='Remove the linked pull request')
    update_parser.add_argument('--description', help='Replace the task description')

    import_help = 'create a local story or feature from a GitHub issue'
    import_parser = subparsers.add_parser('import-issue', help=import_help)
    import_parser.add_argument('number', type=int)
    import_parser.add_argument('--repo', help='GitHub repo (owner/name)')
    import_parser.add_argument(
        '--as', dest='record_type',
        choices=['user-story', 'task', 'bug', 'feature'],
        default='task',
        help='Record type (default: task)'
    )
    import_parser.add_argument('--feature', help='Parent feature number for stories')

    comment_parser = subparsers.add_parser('comment-issue', help='comment on a GitHub issue')
    comment_parser.add_argument('number', type=int)
    comment_parser.add_argument('body')
    comment_parser.add_argument('--repo', help='GitHub repo (owner/name)')

    return parser.parse_args(arguments)


if __name__ == '__main__':
    main()
