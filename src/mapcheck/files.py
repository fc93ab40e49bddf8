"""Input file discovery."""

from __future__ import annotations

from pathlib import Path
from typing import List, Union


def enumerate_files(path: Union[str, Path], recursive: bool = False) -> List[Path]:
    """Return ``path`` itself when it is a file, else the files below it.

    Directory listings are sorted so repeated runs see the same order. A
    missing path yields nothing.
    """
    root = Path(path)
    if root.is_file():
        return [root]
    if not root.is_dir():
        return []

    pattern = "**/*" if recursive else "*"
    return sorted(candidate for candidate in root.glob(pattern) if candidate.is_file())
