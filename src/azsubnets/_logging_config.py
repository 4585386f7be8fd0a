# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import logging.handlers
import os
import sys
from pathlib import Path

"""
Provide default logging setup
"""

LOG_DATE_FORMAT = "%m/%d/%Y %I:%M:%S %p"
LOG_FORMAT = "%(levelname)s | %(asctime)-15s | %(message)s"
CORE_LOG_FILE = "azsubnets.log"

# AWS SDK loggers are chatty at DEBUG/INFO (every request and credential lookup)
NOISY_LOGGERS = ("botocore", "boto3", "urllib3")

_HANDLER_MARKER = "_azsubnets_handler"


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARKER, True)
    return handler


def init_basic_logging(log_dir=None, enable_console_logging=True, root_level=logging.INFO):
    """Installs console and (if ``log_dir`` is given) rotating file handlers on the root logger.

    Repeated calls replace the handlers installed by earlier calls instead of stacking them.
    """
    logger = logging.getLogger()
    logger.setLevel(root_level)
    for handler in [h for h in logger.handlers if getattr(h, _HANDLER_MARKER, False)]:
        logger.removeHandler(handler)
        handler.close()

    if enable_console_logging:
        console = _mark(logging.StreamHandler(sys.stdout))
        console.setLevel(root_level)
        console.setFormatter(logging.Formatter("%(asctime)s - %(name)-13s: %(levelname)-8s %(message)s"))
        logger.addHandler(console)

    # file gets everything down to DEBUG
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        rotating_handler = _mark(
            logging.handlers.RotatingFileHandler(filename=os.path.join(log_dir, CORE_LOG_FILE), maxBytes=5 * 1024 * 1024, backupCount=5)
        )
        rotating_handler.setLevel(logging.DEBUG)
        rotating_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(rotating_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root_level))

    # no-op when handlers are already in place, see
    #   https://docs.python.org/3/library/logging.html#logging.basicConfig
    logging.basicConfig(format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, level=root_level)

    return logger
