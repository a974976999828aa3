"""Recursive candidate-file discovery under a source root."""

import logging
import os

logger = logging.getLogger(__name__)

FILE_EXTENSIONS = {
    "logs": (".log", ".txt", ".out"),
    "certificates": (".pem", ".crt", ".cer", ".p12", ".pfx"),
    "keys": (".key", ".pri", ".pub"),
    "info": (".info", ".dat"),
    "requests": (".csr", ".req"),
}

# Name substrings that qualify a file regardless of extension
_NAME_HINTS = {
    "logs": "log",
    "keys": "key",
    "info": "info",
}

DEFAULT_MAX_DEPTH = 32


def classify_file(filename: str) -> set[str]:
    """Return every category *filename* belongs to (empty set if none)."""
    name = filename.lower()
    ext = os.path.splitext(name)[1]
    categories = set()
    for category, extensions in FILE_EXTENSIONS.items():
        if ext in extensions:
            categories.add(category)
    for category, hint in _NAME_HINTS.items():
        if hint in name:
            categories.add(category)
    return categories


def is_candidate(filename: str, extra_extensions: tuple[str, ...] = ()) -> bool:
    if extra_extensions and filename.lower().endswith(extra_extensions):
        return True
    return bool(classify_file(filename))


def walk(root_dir: str, max_depth: int = DEFAULT_MAX_DEPTH,
         extra_extensions: tuple[str, ...] = ()) -> list[str]:
    """Collect candidate files under *root_dir*, recursing into subdirectories.

    A missing or non-directory root yields []. Symlinked directories are
    followed once: the resolved path of every visited directory is remembered
    so link cycles terminate. Order follows filesystem enumeration.
    """
    if not os.path.isdir(root_dir):
        logger.warning("Source directory missing or not a directory: %s", root_dir)
        return []

    found: list[str] = []
    visited: set[str] = set()
    _walk_dir(root_dir, 0, max_depth, extra_extensions, visited, found)
    return found


def _walk_dir(dir_path: str, depth: int, max_depth: int, extra: tuple[str, ...],
              visited: set[str], found: list[str]) -> None:
    real = os.path.realpath(dir_path)
    if real in visited:
        logger.debug("Skipping already visited directory: %s", dir_path)
        return
    visited.add(real)

    try:
        with os.scandir(dir_path) as it:
            entries = list(it)
    except OSError as e:
        logger.warning("Failed to list directory %s: %s", dir_path, e)
        return

    for entry in entries:
        try:
            if entry.is_dir():
                if depth + 1 > max_depth:
                    logger.warning("Max walk depth %d reached at %s", max_depth, entry.path)
                    continue
                _walk_dir(entry.path, depth + 1, max_depth, extra, visited, found)
            elif entry.is_file() and is_candidate(entry.name, extra):
                found.append(entry.path)
        except OSError as e:
            # Entry vanished or became unreadable between listing and stat
            logger.debug("Skipping %s: %s", entry.path, e)
