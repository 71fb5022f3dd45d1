"""
Custom logging configuration for MiniCAM Engine.

Extends Python's standard logging with a custom DEEP_DEBUG level (5)
for per-iteration solver output. Provides MiniCamLogger class with
per-event log level configuration support.

Log Levels
----------
- CRITICAL (50): Critical errors
- ERROR (40): Errors
- WARNING (30): Warnings (non-convergence, numeric degeneracy)
- INFO (20): Informational messages (default)
- DEBUG (10): Debug messages
- DEEP_DEBUG (5): Per-iteration solver trace

Examples
--------
>>> from minicam import logging
>>> logger = logging.getLogger("minicam.solver")
>>> logger.info("Period solved")
>>> logger.deep("iteration %d: max |ED| = %g", 3, 0.01)

Configure per-event log levels:

>>> import minicam
>>> log_config = {
...     "default_level": "INFO",
...     "events": {"solve_markets": "DEBUG"},
... }
>>> scn = minicam.Scenario.init(structure, logging=log_config)

See Also
--------
Event.get_logger : Get logger for specific event
"""

import logging
from typing import Any

(CRITICAL, ERROR, WARNING, INFO, DEBUG) = (
    logging.CRITICAL,
    logging.ERROR,
    logging.WARNING,
    logging.INFO,
    logging.DEBUG,
)
DEEP_DEBUG = 5
logging.addLevelName(DEEP_DEBUG, "DEEP")


class MiniCamLogger(logging.Logger):
    """
    Custom logger with DEEP_DEBUG level support.

    Extends Python's Logger to add the `deep()` method for very verbose
    debugging output (level 5).
    """

    def deep(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """
        Log message at DEEP_DEBUG level (5).

        Parameters
        ----------
        msg : str
            Message format string.
        *args : Any
            Arguments for message formatting.
        **kwargs : Any
            Additional logging kwargs.
        """
        if self.isEnabledFor(DEEP_DEBUG):
            self._log(DEEP_DEBUG, msg, args, **kwargs)


# Make the logging module hand out our subclass from now on
logging.setLoggerClass(MiniCamLogger)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)


def getLogger(name: str | None = None) -> MiniCamLogger:
    """
    Get a MiniCamLogger instance.

    Convenience wrapper around logging.getLogger() that returns
    a MiniCamLogger instance with DEEP_DEBUG support.

    Parameters
    ----------
    name : str, optional
        Logger name. If None, returns root logger.

    Returns
    -------
    MiniCamLogger
        Logger instance with deep() method.
    """
    return logging.getLogger(name)  # type: ignore[return-value]
