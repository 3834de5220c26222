"""Filesystem helpers for walking and removing release trees.

Walks use an explicit stack instead of recursion so deeply nested trees
cannot exhaust the interpreter stack. All functions are blocking and are
meant to run in an executor.
"""
import logging
import os
from typing import List, Tuple

from finspace.config.base_config import DEFAULT_MAX_SCAN_DEPTH
from .errors import TreeDepthError

logger = logging.getLogger(__name__)


def directory_size(path: str, max_depth: int = DEFAULT_MAX_SCAN_DEPTH) -> int:
    """Sum the sizes of regular files below path.

    Directories and symlinks contribute nothing. Entries that cannot be read
    are logged and counted as zero. Subdirectories deeper than max_depth are
    not descended into.
    """
    total = 0
    depth_warned = False
    stack: List[Tuple[str, int]] = [(path, 0)]

    while stack:
        current, depth = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            if depth + 1 > max_depth:
                                if not depth_warned:
                                    logger.warning(
                                        f"Directory tree under {path} is deeper than {max_depth} "
                                        f"levels; size of {entry.path} and below not counted"
                                    )
                                    depth_warned = True
                                continue
                            stack.append((entry.path, depth + 1))
                        elif entry.is_file(follow_symlinks=False):
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError as e:
                        logger.warning(f"Error accessing {entry.path}: {e}")
        except OSError as e:
            logger.warning(f"Error calculating size for {current}: {e}")

    return total


def is_directory_empty(path: str) -> bool:
    """Check whether a directory has no entries at all."""
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is None
    except OSError as e:
        logger.error(f"Error checking if directory is empty: {path}. Error: {e}")
        return False


def count_entries(path: str) -> int:
    """Number of top-level entries in a directory."""
    return len(os.listdir(path))


def remove_tree(path: str, max_depth: int = DEFAULT_MAX_SCAN_DEPTH) -> bool:
    """Remove a file or directory tree without following symlinks.

    The whole tree is walked before anything is deleted, so a tree that
    exceeds max_depth is left untouched.

    Returns:
        bool: True if something was removed, False if path did not exist

    Raises:
        TreeDepthError: if the tree is nested deeper than max_depth
        OSError: if an entry cannot be listed or removed
    """
    if not os.path.lexists(path):
        return False

    if os.path.islink(path) or not os.path.isdir(path):
        os.unlink(path)
        return True

    directories: List[str] = []
    files: List[str] = []
    stack: List[Tuple[str, int]] = [(path, 0)]

    while stack:
        current, depth = stack.pop()
        if depth > max_depth:
            logger.error(f"Refusing to remove {path}: deeper than {max_depth} levels")
            raise TreeDepthError(path, max_depth)
        directories.append(current)
        with os.scandir(current) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    stack.append((entry.path, depth + 1))
                else:
                    files.append(entry.path)

    for file_path in files:
        os.unlink(file_path)

    # Parents are discovered before their children
    for directory in reversed(directories):
        os.rmdir(directory)

    logger.debug(f"Deleted directory: {path}")
    return True
