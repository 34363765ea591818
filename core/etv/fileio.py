"""Text input helpers: read a named file, or its gzipped form if only that exists."""

import gzip
import logging
import os
from typing import TextIO

logger = logging.getLogger(__name__)

GZIP_SUFFIX = ".gz"


def find_input(directory: str, name: str) -> str | None:
    """Path of `name` in `directory`, else of `name`.gz, else None."""
    path = os.path.join(directory, name)
    if os.path.isfile(path):
        return path
    if os.path.isfile(path + GZIP_SUFFIX):
        return path + GZIP_SUFFIX
    return None


def open_text(path: str) -> TextIO:
    """Open a plain or gzipped ASCII/UTF-8 text file for reading."""
    if path.endswith(GZIP_SUFFIX):
        return gzip.open(path, mode="rt", encoding="utf-8", newline="")
    return open(path, encoding="utf-8", newline="")


def open_smart(directory: str, name: str) -> TextIO:
    """Open `name` (or `name`.gz) in `directory`.

    Raises:
        FileNotFoundError: If neither form exists
    """
    path = find_input(directory, name)
    if path is None:
        raise FileNotFoundError(f"Missing input file: {os.path.join(directory, name)}")
    logger.debug(f"Reading {path}")
    return open_text(path)
