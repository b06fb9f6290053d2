import sys
from pathlib import Path

import yaml


def print_info(message):
    print(message, file=sys.stderr)


def print_warning(message):
    print(f"Warning: {message}", file=sys.stderr)


def print_error(message):
    print(f"Error: {message}", file=sys.stderr)


def load_yaml(path):
    with open(path) as f:
        return yaml.safe_load(f) or {}


def relative_to_root(path, root):
    """Display helper: path relative to the project root when possible."""
    try:
        return str(Path(path).relative_to(root))
    except ValueError:
        return str(path)
