"""Utility functions for file and directory management in pagescoop."""

from pathlib import Path

PROJECT_DIR_NAME = '.pagescoop'


def get_project_root() -> Path:
    """Find the project root by searching upwards from the Current Working Directory.

    Stops at the first directory containing a marker file.
    """
    current_path = Path.cwd()

    markers = {'.git', 'pyproject.toml', PROJECT_DIR_NAME, 'requirements.txt'}

    for parent in [current_path] + list(current_path.parents):
        if any((parent / marker).exists() for marker in markers):
            return parent

    # No marker found (e.g. running in /tmp)
    return current_path


def get_logs_path() -> Path:
    """Return the path to the logs directory in .pagescoop."""
    return get_project_root() / PROJECT_DIR_NAME / 'logs'


def get_output_path() -> Path:
    """Return the default collector output directory in .pagescoop."""
    return get_project_root() / PROJECT_DIR_NAME / 'output'


def init_pagescoop(output_dir: str | Path | None = None) -> Path:
    """Create the collector directory layout and return its root.

    Args:
        output_dir: Explicit output directory. Defaults to .pagescoop/output
            under the project root.

    Returns:
        The output directory, containing 'jsons' and 'images' subdirectories.

    """
    output_path = Path(output_dir) if output_dir else get_output_path()

    (output_path / 'jsons').mkdir(parents=True, exist_ok=True)
    (output_path / 'images').mkdir(parents=True, exist_ok=True)

    # Keep generated files out of source control when using the default location
    project_dir = get_project_root() / PROJECT_DIR_NAME
    if project_dir.is_dir():
        gitignore = project_dir / '.gitignore'
        if not gitignore.exists():
            gitignore.write_text('# Automatically created by pagescoop\n*\n')

    return output_path
