"""Mixins shared by the session store and the pipeline client."""

import logging
from typing import Any


class LoggerMixin:
    """Attach a module-named logger to every subclass as `_logger`.

    Records land under `ingest_client.clients.<module>`, so one
    `ingest_client` entry in the logging config covers them all.
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._logger = logging.getLogger(cls.__module__)  # type: ignore[attr-defined]
