import logging
import sys
from typing import Annotated

from dishka import Provider, provide, Scope, FromComponent

from core.environment.config import Settings

LOGGER_NAME = "wallet_exporter"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure console logging once and return the exporter logger.

    Parameters
    ----------
    level : int
        Logging level of the exporter logger

    Returns
    -------
    logging.Logger
        Configured logger that writes to console
    """
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format=LOG_FORMAT,
            handlers=[
                logging.StreamHandler(sys.stdout)
            ]
        )

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    return logger


class LoggerProvider(Provider):
    """
    Provider for logging configuration and logger instances.

    Configures logging to output to console (stdout) with the level from ``LOG_LEVEL``.
    """
    component = "logger"

    @provide(scope=Scope.APP)
    def get_logger(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> logging.Logger:
        """
        Provide configured logger instance.

        Parameters
        ----------
        settings : Settings
            Exporter settings

        Returns
        -------
        logging.Logger
            Configured logger that writes to console
        """
        return configure_logging(settings.log_level_number)
