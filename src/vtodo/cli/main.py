# src/vtodo/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the CommandContext, then dispatches one
subcommand and prints its output.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from ..config import get_settings
from ..logging_setup import setup_logging
from ..tasks.task_models import TaskValidationError
from .bootstrap import create_context
from .commands import registry

logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    ctx = create_context(settings=settings)
    if argv is None:
        argv = sys.argv[1:]

    try:
        output = registry.handle(ctx, argv)
    except TaskValidationError as exc:
        logger.debug("Validation failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
        return 0

    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
