"""File scanner — discover record documents under a root directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"


def scan_json_files(root: Path) -> Iterator[Path]:
    """Recursively yield every record file under ``root``.

    Entries are visited in name order, the files of a directory before its
    sub-directories, so repeated scans of an unchanged tree see the same
    sequence. A sub-directory that cannot be listed is logged and skipped;
    failing to list ``root`` itself raises the underlying ``OSError``.
    """
    listed_root = False

    def _on_error(err: OSError) -> None:
        # The walk is top-down: an error before the first yield is the root's.
        if not listed_root:
            raise err
        logger.warning("Failed to list %s: %s", err.filename, err)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        listed_root = True
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if is_record_file(path):
                yield path


def is_record_file(path: Path) -> bool:
    """Check whether a path names a record document."""
    return path.name.endswith(RECORD_SUFFIX)
