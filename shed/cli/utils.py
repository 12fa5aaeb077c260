"""
Shared utilities for CLI commands.

Provides client construction from global options and consistent reporting
of aggregate errors.
"""

import logging
from typing import Optional

from shed.client.client import Shed, create_cache
from shed.config.settings import load_settings
from shed.core.exceptions import ErrorList

logger = logging.getLogger(__name__)


def create_client(args) -> Shed:
    """
    Build a Shed client from parsed global options.

    ``--cache-dir`` overrides the settings file and environment.
    """
    settings = load_settings(getattr(args, "config", None))
    if getattr(args, "cache_dir", None) is not None:
        settings.cache_dir = args.cache_dir

    return Shed(
        lockfile_path=getattr(args, "lockfile", None),
        cache=create_cache(settings),
        settings=settings,
    )


def report_errors(errors: Optional[ErrorList], heading: str) -> bool:
    """
    Log every failure in ``errors`` under ``heading``.

    Returns:
        True if there was anything to report
    """
    if not errors:
        return False

    logger.error(f"{heading}:")
    for error in errors:
        logger.error(f"  {error.subject}: {error.cause}")
    return True
