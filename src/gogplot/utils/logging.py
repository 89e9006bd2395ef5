"""
Logging utilities for the gogplot library.

Library Logging Conventions
---------------------------
1. **Library code should NEVER call configure_logging()** - only use get_logger(__name__).
2. **Scripts and examples CAN call configure_logging()** - to configure log output.
3. When imported by an application that has configured logging, all gogplot
   logs automatically use that application's handlers.

gogplot does NOT write any log files; it is a headless library.

Example Usage
-------------
In library code (table.py, render.py, etc.):
    ```python
    from gogplot.utils.logging import get_logger
    logger = get_logger(__name__)
    logger.info("Rendered 3 panels")
    ```

In standalone examples/scripts:
    ```python
    from gogplot.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

# Default format for gogplot logs
DEFAULT_FMT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d:%(funcName)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_ENV = "GOGPLOT_LOG_LEVEL"


def configure_logging(
    level: Optional[Union[str, int]] = None,
    *,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Configure logging for the gogplot logger only (never root).

    Use this in standalone scripts that build documents or figures. When
    gogplot is imported by an application, that app configures logging;
    do not call this.

    Parameters
    ----------
    level:
        Logging level (e.g. "DEBUG", "INFO"). Defaults to GOGPLOT_LOG_LEVEL
        env var, or "INFO" if unset.
    fmt:
        Log message format. Defaults to a standard format.
    datefmt:
        Date format. Defaults to "%Y-%m-%d %H:%M:%S".
    force:
        If True, remove existing handlers before adding new ones (allows
        reconfiguration). If False, skip if handler already present.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("gogplot")
    logger.setLevel(level)

    if fmt is None:
        fmt = DEFAULT_FMT
    if datefmt is None:
        datefmt = DEFAULT_DATEFMT

    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    if force:
        for h in logger.handlers[:]:
            h.close()
            logger.removeHandler(h)
    else:
        # Skip if we already have a stderr StreamHandler (e.g. from a previous call)
        for h in logger.handlers:
            if isinstance(h, logging.StreamHandler) and h.stream is sys.stderr:
                return

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger by name.

    If name is None, returns the 'gogplot' logger.
    Otherwise, returns logging.getLogger(name).

    Use like:
        logger = get_logger(__name__)
        logger.info("Hello")
    """
    if name is None:
        name = "gogplot"
    return logging.getLogger(name)
