from contextlib import contextmanager
import asyncio
import sys
import traceback
import services.logger as log

# Initialize logger
l = log.get_logger()


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


def _handle_uncaught_exceptions(exc_type, exc_value, exc_traceback):
    """Global exception handler for uncaught exceptions."""
    if issubclass(exc_type, KeyboardInterrupt):
        # Call default handler for keyboard interrupt (e.g. Ctrl+C)
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    # Log the full traceback for debugging
    l.critical(
        "Unhandled exception caught:\n"
        + ''.join(traceback.format_exception(exc_type, exc_value, exc_traceback))
    )

# Install global exception hook
sys.excepthook = _handle_uncaught_exceptions


def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict):
    """Log errors nobody awaited (e.g. a failed fire-and-forget task) and keep running."""
    exc = context.get("exception")
    message = context.get("message", "unhandled error in event loop")
    if exc is not None:
        l.error(
            f"Unhandled async error: {message}\n"
            + ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        )
    else:
        l.error(f"Unhandled async error: {message}")


def install_loop_handler(loop: asyncio.AbstractEventLoop | None = None):
    """Route unhandled asyncio errors on *loop* (default: the running loop) to the log."""
    (loop or asyncio.get_running_loop()).set_exception_handler(_handle_loop_exception)


@contextmanager
def catch_and_log(context_info: str = ""):
    """
    Context manager to catch and log exceptions without stopping the program.

    The exception is logged with its traceback and then swallowed, so the
    rest of the enclosing block is abandoned but the caller carries on.

    :param context_info: Optional context info to include in the log.
    """
    try:
        yield
    except Exception as e:
        l.error(
            f"Exception caught in context '{context_info}': {e}\n"
            + traceback.format_exc()
        )
