"""
Install command: resolve tool specs, build them and pin them in the lockfile.
"""

import logging
import signal
import threading

from shed.cli.utils import create_client, report_errors
from shed.core.exceptions import ErrorList

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Specs that fail to resolve are reported, and the remaining ones are
    still applied. Ctrl-C cancels operations that have not finished.

    Returns:
        0 on success, 1 if any spec failed, 130 if interrupted
    """
    shed = create_client(args)
    install_set, resolve_errors = shed.install(*args.tools)
    failed = report_errors(resolve_errors, "Failed to resolve")

    if not len(install_set):
        logger.info("Nothing to install")
        return 1 if failed else 0

    cancel_event = threading.Event()

    def _cancel(signum, frame):
        logger.warning("Interrupted, canceling remaining operations")
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, _cancel)
    try:
        install_set.apply(cancel_event)
    except ErrorList as e:
        failed = report_errors(e, "Failed to install") or failed
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if cancel_event.is_set():
        return 130

    if not failed:
        logger.info(f"Installed {len(shed.lockfile)} tools into {shed.lockfile_path}")
    return 1 if failed else 0
