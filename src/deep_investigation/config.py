"""
Environment-driven settings.

Values come from the process environment, optionally seeded from ``.env``
files found in the working directory and its parents.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "o3-mini"
DEFAULT_CONTEXT_SIZE = 128_000
DEFAULT_FIRECRAWL_URL = "https://api.firecrawl.dev"


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    openai_endpoint: Optional[str] = None
    model: str = DEFAULT_MODEL
    context_size: int = DEFAULT_CONTEXT_SIZE
    firecrawl_key: Optional[str] = None
    firecrawl_base_url: str = DEFAULT_FIRECRAWL_URL
    reports_dir: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        ``OPENAI_KEY`` is accepted as an alias for ``OPENAI_API_KEY``. A
        malformed ``CONTEXT_SIZE`` falls back to the default.
        """
        env = os.environ if environ is None else environ

        try:
            context_size = int(env.get("CONTEXT_SIZE") or DEFAULT_CONTEXT_SIZE)
        except ValueError:
            context_size = DEFAULT_CONTEXT_SIZE

        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or env.get("OPENAI_KEY"),
            openai_endpoint=env.get("OPENAI_ENDPOINT") or None,
            model=env.get("OPENAI_MODEL") or DEFAULT_MODEL,
            context_size=context_size,
            firecrawl_key=env.get("FIRECRAWL_KEY") or None,
            firecrawl_base_url=env.get("FIRECRAWL_BASE_URL") or DEFAULT_FIRECRAWL_URL,
            reports_dir=env.get("REPORTS_DIR") or None,
        )


# -----------------------------
# .env files
# -----------------------------

def find_dotenv_files(start_dir: Optional[str] = None, max_levels_up: int = 3) -> List[str]:
    """
    List the ``.env`` files in ``start_dir`` and up to ``max_levels_up`` parents.

    The furthest parent comes first, so loading in order lets closer files win.
    """
    base = Path(start_dir or os.getcwd()).absolute()
    directories = [base, *base.parents][: max_levels_up + 1]
    found = [str(d / ".env") for d in directories if (d / ".env").is_file()]
    return found[::-1]


def load_dotenv_files(start_dir: Optional[str] = None, max_levels_up: int = 3) -> List[str]:
    """Load every file from :func:`find_dotenv_files` and return the ones that set anything."""
    loaded = []
    for path in find_dotenv_files(start_dir, max_levels_up):
        if load_dotenv(path, override=True):
            logger.info(f"Loaded environment variables from: {path}")
            loaded.append(path)
    return loaded
