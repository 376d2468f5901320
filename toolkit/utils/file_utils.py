import logging
import os
import re
import secrets
from pathlib import Path
from typing import Union
from toolkit.core.exceptions import SlugError

logger = logging.getLogger(__name__)

# Each ASCII letter and digit exactly once, so every character is equally likely.
RANDOM_CHARACTER_SET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
RANDOM_FILE_NAME_LENGTH = 32
DIRECTORY_MODE = 0o755

_slug_separator = re.compile(r"[^a-z0-9]+")

def random_string(n: int) -> str:
    """
    Return n characters drawn from RANDOM_CHARACTER_SET with a CSPRNG.
    """
    if n < 0:
        raise ValueError("length must not be negative")
    return "".join(secrets.choice(RANDOM_CHARACTER_SET) for _ in range(n))

def random_file_name(original_name: str) -> str:
    """
    Random stem that keeps the extension of the original file name.
    """
    extension = os.path.splitext(original_name)[1]
    return f"{random_string(RANDOM_FILE_NAME_LENGTH)}{extension}"

def slugify(s: str) -> str:
    """
    Lowercase s and join its alphanumeric runs with single hyphens.
    """
    if not s:
        raise SlugError("empty string not permitted")

    slug = _slug_separator.sub("-", s.lower()).strip("-")
    if not slug:
        raise SlugError("after removing characters slug is empty")

    return slug

def ensure_directory_exists(directory_path: Union[str, Path], mode: int = DIRECTORY_MODE) -> Path:
    """
    Ensure that a directory exists, creating it and its parents if necessary.
    """
    directory_path = Path(directory_path)
    if not directory_path.is_dir():
        logger.debug(f"Creating directory {directory_path}")
    directory_path.mkdir(mode=mode, parents=True, exist_ok=True)
    return directory_path
