"""
Minimal INI reader shared by the materials database and problem files.

The format uses ``[SECTION]`` headers (case-sensitive) and ``tag=value``
entries. Lines starting with ``::`` or ``#`` are comments.
"""

from typing import Dict, List, Optional, Tuple


def _is_comment(stripped: str) -> bool:
    return stripped == "" or stripped.startswith("::") or stripped.startswith("#")


def _read_lines(filepath: str) -> Optional[List[str]]:
    try:
        with open(filepath, "r") as fh:
            return fh.readlines()
    except FileNotFoundError:
        return None


def read_ini_tag_str(filepath: str, section: str, tag: str) -> Tuple[Optional[str], int]:
    """
    Read a tag value from an INI file.

    Returns (value_string, err) where *err* is 0 on success, 1 when the
    file is missing and -1 when section or tag is not found.
    """
    lines = _read_lines(filepath)
    if lines is None:
        return None, 1

    section_header = f"[{section}]"
    in_section = False
    for line in lines:
        stripped = line.strip()
        if not in_section:
            if stripped == section_header:
                in_section = True
            continue

        if stripped.startswith("["):
            # Hit the next section without finding the tag
            return None, -1

        if _is_comment(stripped):
            continue

        key, sep, value = stripped.partition("=")
        if sep and key.strip() == tag:
            return value.strip(), 0

    return None, -1


def read_ini_sections(filepath: str) -> Dict[str, Dict[str, str]]:
    """
    Read a whole INI file into ``{section: {tag: value}}``.

    Raises
    ------
    FileNotFoundError
        When the file does not exist.
    ValueError
        For an entry outside any section or a line without ``=``.
    """
    lines = _read_lines(filepath)
    if lines is None:
        raise FileNotFoundError(filepath)

    sections: Dict[str, Dict[str, str]] = {}
    current = None
    for lineno, line in enumerate(lines, start=1):
        stripped = line.strip()
        if _is_comment(stripped):
            continue
        if stripped.startswith("[") and stripped.endswith("]"):
            current = stripped[1:-1].strip()
            sections.setdefault(current, {})
            continue
        if current is None or "=" not in stripped:
            raise ValueError(f"{filepath}:{lineno}: cannot parse line {stripped!r}")
        tag, value = stripped.split("=", 1)
        sections[current][tag.strip()] = value.strip()
    return sections


def parse_float_list(text: str) -> List[float]:
    """Parse ``"1.0, 2.0, 3"`` into floats; empty entries are skipped."""
    return [float(x.strip()) for x in text.split(",") if x.strip()]
