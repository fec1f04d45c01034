# core/utils/log.py
import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
VALID_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


def setup_logging(level: str = 'INFO') -> None:
    """Attach a single stream handler to the root logger.

    Unknown level names fall back to INFO. Calling this again only adjusts
    the level and points the handler at the current stderr.
    """
    level = (level or 'INFO').upper()
    if level == 'WARN':
        level = 'WARNING'
    if level not in VALID_LEVELS:
        level = 'INFO'

    root = logging.getLogger()
    handler = next((h for h in root.handlers if getattr(h, '_booktracker', False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._booktracker = True
        root.addHandler(handler)
    else:
        handler.stream = sys.stderr
    root.setLevel(getattr(logging, level))
