"""
Environment lookups: callables name -> str.

An absent variable and an empty one both come back as "". The resolver never
tells the two apart.
"""

import logging
import os
from typing import Callable, Mapping

from dotenv import dotenv_values, find_dotenv

logger = logging.getLogger(__name__)

Lookup = Callable[[str], str]


def environ_lookup(name: str) -> str:
    """Read from the live process environment."""
    return os.environ.get(name, "")


def mapping_lookup(mapping: Mapping[str, str | None]) -> Lookup:
    """Read from a fixed mapping. Handy for tests: mapping_lookup({"PORT": "80"})."""

    def _lookup(name: str) -> str:
        return mapping.get(name) or ""

    return _lookup


def dotenv_lookup(path: str | None = None, override: bool = False) -> Lookup:
    """
    Read a .env file and layer it with the process environment.

    - path: .env file to read (default: find_dotenv() from the working directory)
    - override: when True the file wins over os.environ, like load_dotenv(override=True)
    The process environment is never modified.
    """
    if path is None:
        path = find_dotenv(usecwd=True)
    file_values = {k: v or "" for k, v in dotenv_values(path).items()} if path else {}
    logger.debug("loaded %d variables from %s", len(file_values), path or "<no .env found>")

    def _lookup(name: str) -> str:
        from_env = os.environ.get(name, "")
        from_file = file_values.get(name, "")
        if override:
            return from_file or from_env
        return from_env or from_file

    return _lookup
