import structlog
import logging
import inspect
import json
from typing import Any, Union

from ..config_constants import LogLevel

# Module-level flag to prevent multiple configuration
_logging_configured = False


def _add_module_info(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """
    Custom processor to add a short module name to log records.

    "statquery.repositories.table_selection" becomes "repositories.table_selection".
    """
    logger_name = event_dict.get('logger', 'unknown')

    if logger_name.startswith('statquery.'):
        module_parts = logger_name.split('.')
        event_dict['module'] = '.'.join(module_parts[-2:])
    else:
        event_dict['module'] = logger_name

    return event_dict


def _pretty_json_renderer(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
    """
    Pretty JSON renderer with 2-space indentation.

    Values that are not JSON serializable (Decimal, datetime) are rendered with str().
    """
    return json.dumps(event_dict, indent=2, ensure_ascii=False, default=str)


def _dev_formatter(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
    """
    Development-friendly single line formatter with colored levels.
    """
    timestamp = event_dict.get('timestamp', '')
    level = event_dict.get('level', '').upper()
    module = event_dict.get('module', '')
    event = event_dict.get('event', '')
    trace_id = event_dict.get('trace_id', '')

    colors = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    reset = '\033[0m'

    color = colors.get(level, '')

    main_msg = f"{timestamp} {color}[{level}]{reset} {module}: {event}"

    if trace_id:
        main_msg += f" (trace: {trace_id[:8]})"

    skip_fields = {'timestamp', 'level', 'module', 'event', 'trace_id', 'logger'}
    other_fields = [f"{key}={value}" for key, value in event_dict.items() if key not in skip_fields]

    if other_fields:
        main_msg += f" | {', '.join(other_fields)}"

    return main_msg


def configure_logging(
    log_level: Union[LogLevel, str] = LogLevel.INFO,
    json_logs: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Minimum level for stdlib and structlog output
        json_logs: Pretty JSON output when True, colored single lines otherwise
    """

    global _logging_configured

    # ---- guard: run only once ----
    if _logging_configured:
        return
    _logging_configured = True

    level_name = log_level.value if isinstance(log_level, LogLevel) else str(log_level).upper()

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name),
        handlers=[logging.StreamHandler()]
    )

    renderer = _pretty_json_renderer if json_logs else _dev_formatter

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,  # Adds 'logger' field with module name
            structlog.stdlib.add_log_level,    # Adds 'level' field
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _add_module_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name, typically __name__ to get the module name

    Returns:
        structlog logger

    Usage:
        logger = get_logger(__name__)
        logger.info("Tables selected", selected=["f1.Drivers"], trace_id="abc-123")
    """
    return structlog.get_logger(name)


def get_module_logger() -> structlog.stdlib.BoundLogger:
    """
    Get a logger for the calling module automatically.

    Falls back to 'unknown' module name if frame inspection fails.
    """
    module_name = 'unknown'
    frame = None

    try:
        frame = inspect.currentframe()
        if frame is not None and frame.f_back is not None:
            caller_frame = frame.f_back
            module_name = caller_frame.f_globals.get('__name__', 'unknown')
    except (AttributeError, RuntimeError):
        # Frame inspection can fail in some environments (e.g., some REPL implementations)
        pass
    finally:
        # Clean up frame references to avoid reference cycles
        if frame is not None:
            del frame

    return get_logger(module_name)
