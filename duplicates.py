"""Duplicate detection across the library and keeper selection.

Three grouping passes run in order, and each pass only sees items no earlier
group claimed:

1. same current filename (case-insensitive)
2. same suggested canonical filename, when every size is within 10% of the
   group mean
3. identical MD5 of the file bytes (optional, reads every remaining file)

Within a group the keeper is the copy in the highest-priority subspecialty
folder, then the largest, then the first seen.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from models import DuplicateFile, DuplicateGroup, GroupType
from taxonomy import Subspecialty, priority_rank

LOGGER = logging.getLogger(__name__)

SIZE_TOLERANCE = 0.1
HASH_KEY_LENGTH = 8
HASH_CHUNK_SIZE = 8192

KEEP_REASON = "Best location"
REMOVE_REASONS: dict[GroupType, str] = {
    GroupType.EXACT_FILENAME: "Duplicate",
    GroupType.SUGGESTED_FILENAME: "Same article (different filename)",
    GroupType.CONTENT_HASH: "Identical content",
}


@dataclass(frozen=True, slots=True)
class DuplicateCandidate:
    """One library file as seen by the duplicate finder."""

    current_path: str
    current_filename: str
    suggested_filename: str
    subspecialty: Subspecialty


def choose_keeper(files: list[DuplicateFile]) -> int:
    """Index of the file to keep: min priority rank, then max size, then first."""
    return min(
        range(len(files)),
        key=lambda i: (priority_rank(files[i].subspecialty), -files[i].size, i),
    )


def file_md5(path: Path | str, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """MD5 hex digest of a file, or "" when it cannot be read."""
    hasher = hashlib.md5()
    try:
        with open(path, "rb") as fh:
            while chunk := fh.read(chunk_size):
                hasher.update(chunk)
    except OSError as exc:
        LOGGER.warning("Could not hash %s: %s", path, exc)
        return ""
    return hasher.hexdigest()


def sizes_within_tolerance(sizes: list[int], tolerance: float = SIZE_TOLERANCE) -> bool:
    """True when every positive size is within ``tolerance`` of their mean.

    Zero sizes (unreadable files) are left out of the mean; with no positive
    sizes at all there is nothing to contradict the grouping.
    """
    positive = [s for s in sizes if s > 0]
    if not positive:
        return True
    mean = sum(positive) / len(positive)
    return all(abs(s - mean) / mean <= tolerance for s in positive)


def _build_group(
    key: str,
    group_type: GroupType,
    members: list[DuplicateCandidate],
    sizes: dict[str, int],
) -> DuplicateGroup:
    files = [
        DuplicateFile(path=m.current_path, size=sizes[m.current_path], subspecialty=m.subspecialty)
        for m in members
    ]
    keeper = choose_keeper(files)
    for index, entry in enumerate(files):
        entry.keep = index == keeper
        entry.reason = KEEP_REASON if entry.keep else REMOVE_REASONS[group_type]
    return DuplicateGroup(key=key, group_type=group_type, files=files)


def _bucket(items: Iterable[DuplicateCandidate], key_of: Callable[[DuplicateCandidate], str]) -> dict[str, list[DuplicateCandidate]]:
    buckets: dict[str, list[DuplicateCandidate]] = {}
    for item in items:
        key = key_of(item)
        if key:
            buckets.setdefault(key, []).append(item)
    return buckets


def find_duplicates(
    items: list[DuplicateCandidate],
    size_of: Callable[[str], int],
    hash_of: Callable[[str], str] | None = None,
    check_content: bool = False,
) -> list[DuplicateGroup]:
    """Group duplicate files; ``size_of``/``hash_of`` take a library-relative path."""
    sizes: dict[str, int] = {}

    def size(path: str) -> int:
        if path not in sizes:
            sizes[path] = size_of(path)
        return sizes[path]

    groups: list[DuplicateGroup] = []
    grouped: set[str] = set()

    def remaining() -> list[DuplicateCandidate]:
        return [item for item in items if item.current_path not in grouped]

    for key, members in _bucket(remaining(), lambda i: i.current_filename.lower()).items():
        if len(members) < 2:
            continue
        for m in members:
            size(m.current_path)
        groups.append(_build_group(key, GroupType.EXACT_FILENAME, members, sizes))
        grouped.update(m.current_path for m in members)

    for key, members in _bucket(remaining(), lambda i: i.suggested_filename.lower()).items():
        if len(members) < 2:
            continue
        if not sizes_within_tolerance([size(m.current_path) for m in members]):
            LOGGER.info("Size mismatch, not grouping suggested name=%s", key)
            continue
        groups.append(_build_group(key, GroupType.SUGGESTED_FILENAME, members, sizes))
        grouped.update(m.current_path for m in members)

    if check_content:
        hasher = hash_of or (lambda _path: "")
        pending = remaining()
        LOGGER.info("Hashing remaining files=%s", len(pending))
        hashes: dict[str, str] = {}
        for checked, item in enumerate(pending, start=1):
            hashes[item.current_path] = hasher(item.current_path)
            if checked % 100 == 0:
                LOGGER.info("Hashed %s/%s files", checked, len(pending))

        for digest, members in _bucket(pending, lambda i: hashes[i.current_path]).items():
            if len(members) < 2:
                continue
            for m in members:
                size(m.current_path)
            groups.append(_build_group(digest[:HASH_KEY_LENGTH], GroupType.CONTENT_HASH, members, sizes))
            grouped.update(m.current_path for m in members)

    LOGGER.info(
        "Duplicate scan complete. groups=%s exact=%s suggested=%s content=%s",
        len(groups),
        sum(1 for g in groups if g.group_type is GroupType.EXACT_FILENAME),
        sum(1 for g in groups if g.group_type is GroupType.SUGGESTED_FILENAME),
        sum(1 for g in groups if g.group_type is GroupType.CONTENT_HASH),
    )
    return groups


def delete_duplicates(groups: list[DuplicateGroup], root: Path | str, dry_run: bool = True) -> tuple[int, int]:
    """Remove every non-kept file. Returns (deleted, errors); dry runs delete nothing."""
    base = Path(root)
    removals = [entry for group in groups for entry in group.removals]
    if dry_run:
        LOGGER.info("[dry-run] Would delete %s files", len(removals))
        return 0, 0

    deleted = 0
    errors = 0
    for entry in removals:
        try:
            (base / entry.path).unlink()
            deleted += 1
            LOGGER.info("Deleted %s", entry.path)
        except OSError:
            errors += 1
            LOGGER.exception("Failed to delete %s", entry.path)
    return deleted, errors
