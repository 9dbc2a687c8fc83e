"""
Solver logging.

Every line carries the intent being processed: ``FillPipeline.evaluate``
binds ``protocol``, ``intent_id`` and ``chain_id`` into structlog's
contextvars for the duration of one intent, and ``add_intent_label`` folds
them into the ``intent`` label (``CompactX-0x...``) operators grep for.
Stdlib records from web3, httpx and websockets go through the same chain.
"""

import logging
import sys
from typing import Iterable, Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from .config import Settings, settings


INTENT_CONTEXT_KEYS = ("protocol", "intent_id", "chain_id")


def add_intent_label(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ``intent=<protocol>-<intent_id>`` when both are known; drop unset context keys."""
    for key in INTENT_CONTEXT_KEYS:
        if key in event_dict and event_dict[key] is None:
            del event_dict[key]

    protocol = event_dict.get("protocol")
    intent_id = event_dict.get("intent_id")
    if protocol and intent_id and "intent" not in event_dict:
        event_dict["intent"] = f"{protocol}-{intent_id}"
    return event_dict


def bind_intent_context(protocol: str, intent_id: str, chain_id: Optional[int] = None):
    """Context manager binding one intent's identity to every log line inside it."""
    return structlog.contextvars.bound_contextvars(
        protocol=protocol, intent_id=intent_id, chain_id=chain_id
    )


def _level(name: str, default: int = logging.INFO) -> int:
    return getattr(logging, str(name).upper(), default)


def quiet_loggers(names: Iterable[str], level: str) -> None:
    for name in names:
        logging.getLogger(name).setLevel(_level(level, logging.WARNING))


def setup_logging(log_level: Optional[str] = None, config: Optional[Settings] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
        config: Settings to read the format and quieted loggers from
    """
    config = config or settings
    level = _level(log_level or config.log_level)

    log_format = config.log_format.lower()
    console = log_format == "console" or (log_format == "auto" and level == logging.DEBUG)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_intent_label,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if console:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    quiet_loggers(config.log_quiet_loggers, config.log_quiet_level)
