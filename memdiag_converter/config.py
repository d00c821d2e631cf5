"""Configuration constants, dialect names, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Defaults for report encoding, dialect, worker
count and log level are plain module-level values — not buried in
logic — so both humans and coding agents can modify them confidently.

HOW: python-dotenv loads the .env file on import. Constants are read
with os.getenv and fall back to sensible defaults. load_workers() and
configure_logging() validate and apply the values that can be wrong.

RULES:
- All defaults can be overridden via MEMDIAG_* environment variables
- DIALECTS lists the keys registered in parsers.PARSERS
- Invalid worker counts raise ValueError with a clear message
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

# Load .env from the project root (where the tool is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Report dialects
# ---------------------------------------------------------------------------

VALGRIND_XML = "valgrind_xml"
DRMEMORY_TEXT = "drmemory_text"

DIALECTS: tuple[str, ...] = (VALGRIND_XML, DRMEMORY_TEXT)
"""Report dialect keys, in the order the CLI lists them."""

# ---------------------------------------------------------------------------
# Processing defaults
# ---------------------------------------------------------------------------

DEFAULT_REPORT_ENCODING = os.getenv("MEMDIAG_REPORT_ENCODING", "utf-8")
DEFAULT_DIALECT = os.getenv("MEMDIAG_DIALECT", VALGRIND_XML)
DEFAULT_OUTPUT_NAME = os.getenv("MEMDIAG_OUTPUT_NAME", "memdiag")
LOG_LEVEL = os.getenv("MEMDIAG_LOG_LEVEL", "WARNING")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_workers() -> int:
    """Load the number of parallel report workers from the environment.

    RULES:
    - Reads MEMDIAG_WORKERS, defaults to 4
    - Raises ValueError if the value is not a positive integer
    """
    raw = os.getenv("MEMDIAG_WORKERS", "4").strip()
    try:
        workers = int(raw)
    except ValueError:
        raise ValueError(
            "MEMDIAG_WORKERS must be a positive integer, got '{}'.".format(raw)
        ) from None
    if workers < 1:
        raise ValueError(
            "MEMDIAG_WORKERS must be a positive integer, got '{}'.".format(raw)
        )
    return workers


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once for command-line use.

    Unknown level names fall back to WARNING.
    """
    name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format=LOG_FORMAT,
    )
