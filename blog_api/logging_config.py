import logging
import sys

from blog_api.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Install a stdout handler on the root logger at ``settings.LOG_LEVEL``.

    Safe to call more than once; an existing root configuration is replaced.
    Modules log through ``logging.getLogger(__name__)`` and inherit this.
    """
    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stdout,
        level=(level or settings.LOG_LEVEL).upper(),
        force=True,
    )
