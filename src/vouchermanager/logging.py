import logging

import structlog

from vouchermanager.config import Config


def setup_logging(config: Config) -> None:
    """Configure structlog over stdlib logging and bind the controller identity to every event.

    Context bound here is inherited by the event loop uvicorn starts, so request handlers and
    the purge task log ``controller_mode`` and ``controller_site`` without passing them around.
    """
    log_level = logging.DEBUG if config.debug else logging.INFO

    logging.basicConfig(level=log_level, format="%(message)s")

    # Every controller call goes through httpx, keep its per-request lines out of INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        controller_mode=str(config.unifi_api_mode),
        controller_site=config.unifi_site_id,
    )
