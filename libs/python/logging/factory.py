"""Logger factory with automatic context injection."""

import logging

from libs.python.logging.context import get_context


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that automatically includes context in all log records."""

    def process(self, msg, kwargs):
        context = get_context()

        extra = kwargs.get("extra", {})

        if context:
            # Explicit extra values win over context values
            for key, value in context.to_dict().items():
                if key not in extra:
                    extra[key] = value

        kwargs["extra"] = extra

        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a logger with automatic context injection.

    Args:
        name: Logger name (typically __name__)

    Returns:
        ContextLogger that includes context in all records

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Serving message")  # Automatically includes pod context
    """
    return ContextLogger(logging.getLogger(name), {})
