import logging
from typing import Union

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def configure_logging(level: Union[int, str] = 'WARNING') -> None:
    """Install one stream handler on the root logger; safe to call twice."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, '_donorconnect', False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._donorconnect = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    # socket.io and engine.io are chatty at INFO
    for name in ('socketio', 'engineio'):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
