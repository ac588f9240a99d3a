"""Extended glob matching: fnmatch wildcards plus {a,b} alternatives."""

import fnmatch
import glob
import os
from pathlib import Path
from typing import List, Optional


def expand_braces(pattern: str) -> List[str]:
    """Expand the first (outermost) {a,b,...} group, recursively.

    Unbalanced braces are kept literally.
    """
    depth = 0
    start = None
    for i, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = i
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                options = _split_alternatives(pattern[start + 1:i])
                if len(options) < 2:
                    continue
                head, tail = pattern[:start], pattern[i + 1:]
                expanded: List[str] = []
                for option in options:
                    for candidate in expand_braces(head + option + tail):
                        if candidate not in expanded:
                            expanded.append(candidate)
                return expanded
    return [pattern]


def _split_alternatives(body: str) -> List[str]:
    parts = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    parts.append(current)
    return parts


def matches(name: str, pattern: Optional[str]) -> bool:
    """True if ``name`` matches ``pattern``; no pattern matches everything.

    ``*`` also matches ``/``, so ``*.csv`` matches nested keys.
    """
    if pattern is None:
        return True
    return any(fnmatch.fnmatchcase(name, p) for p in expand_braces(pattern))


def local_glob(pattern: str, base_dir: Optional[Path] = None) -> List[Path]:
    """Regular files matching ``pattern`` (relative to ``base_dir``), sorted.

    ``**`` recurses into subdirectories.
    """
    root = Path(base_dir) if base_dir is not None else Path.cwd()
    found = set()
    for expanded in expand_braces(pattern):
        full = expanded if os.path.isabs(expanded) else str(root / expanded)
        for match in glob.glob(full, recursive=True):
            path = Path(match)
            if path.is_file():
                found.add(path.resolve())
    return sorted(found)
