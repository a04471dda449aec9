"""Logging setup for the apphub package.

Loggers of all modules are children of the `apphub` logger which writes to
stderr at the configured level. Lambda forwards the output to CloudWatch.

"""
import logging

from apphub.common.config import config


_FORMAT = '%(asctime)s|%(name)s.%(funcName)s|%(levelname)s: %(message)s'

# Can't put into `apphub.__init__`, because that would cause circular
# dependency with `apphub.common.config`.
_logger = logging.getLogger('apphub')
_logger.setLevel(config.log_level)
# The Lambda runtime installs its own root handler.
_logger.propagate = False
if not _logger.handlers:
    _ch = logging.StreamHandler()
    _ch.setFormatter(logging.Formatter(_FORMAT))
    _logger.addHandler(_ch)


def get_logger(name: str) -> logging.Logger:
    """Get logger for module name.

    Args:
        name: The module name (eg. __name__ for current module.)

    Returns:
        The logger.

    Raises:
        ValueError if the module is outside the apphub package, as its
            records wouldn't reach the configured handler.

    """
    if name != 'apphub' and not name.startswith('apphub.'):
        raise ValueError(f'Not an apphub module: {name}')
    return logging.getLogger(name)
