"""
nosskey.logger
--------------
JSON-line logging for every nosskey component.

Each record is one JSON object per line (``ts``, ``level``, ``name``,
``msg`` and ``exc`` when an exception is attached). Messages carry a short
bracketed tag such as ``[CACHE SET]`` so lines are easy to grep. Key
material and PRF secrets are never logged; credential ids appear only as
``short_id`` prefixes.

``NOSSKEY_LOG_LEVEL`` overrides the default level.
"""

import logging, json, sys, time, os

_LEVEL_ENV = "NOSSKEY_LOG_LEVEL"


class JsonLineFormatter(logging.Formatter):
    converter = time.gmtime  # UTC timestamps

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%SZ")

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _resolve_level(level):
    env = os.getenv(_LEVEL_ENV)
    if level is None and env:
        return logging.getLevelName(env.strip().upper())
    return logging.INFO if level is None else level


def get_logger(name="nosskey", level=None, to_file=None):
    """Return ``name``'s logger, attaching the JSON handlers on first use."""
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if not logger.handlers:
        formatter = JsonLineFormatter()
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
