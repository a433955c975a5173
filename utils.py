# --- utils.py ---

import os


def format_bytes(size_bytes: int) -> str:
    """
Signature: `format_bytes(size_bytes: int) -> str`

Converts a size in bytes to a human-readable string (KB, MB, GB, TB).
Uses decimal (1000) instead of binary (1024) for storage representation.
"""
    if size_bytes < 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB', 'PB']
    power = 1000.0  # Use decimal (base 1000)

    i = 0
    while size_bytes >= power and i < len(units) - 1:
        size_bytes /= power
        i += 1

    return f"{size_bytes:.2f} {units[i]}"


def calculate_percentage(part: int, whole: int) -> float:
    """
Signature: `calculate_percentage(part: int, whole: int) -> float`

Calculates what percentage 'part' is of 'whole'.
Returns 0.0 if 'whole' is 0 to avoid division by zero.
"""
    if whole == 0:
        return 0.0
    return (part / whole) * 100.0


def is_hidden(name: str) -> bool:
    """
Signature: `is_hidden(name: str) -> bool`

Dot-files and dot-directories are hidden.
"""
    return name.startswith('.') and name not in ('.', '..')


def split_extension(name: str) -> str:
    """
Signature: `split_extension(name: str) -> str`

Returns the extension of a file name without the leading dot,
or "" when there is none. A leading dot alone (".bashrc") is not
an extension.
"""
    stem, ext = os.path.splitext(name)
    if not stem or not ext:
        return ""
    return ext[1:]


def relative_key(path: str, root_path: str) -> str:
    """
Signature: `relative_key(path: str, root_path: str) -> str`

Strips the canonical root prefix from 'path'. The root itself maps
to "" and "<root>/a/b" maps to "/a/b".
"""
    return path[len(root_path):]
