"""Logging for docsmoke.

The `docsmoke` logger carries a NullHandler so importing the package never
prints anything. The CLI calls configure_logging(), which installs one
queue-backed handler writing to stderr through click.

Records tagged with `extra={"context_id": block.label}` show the block they
belong to, so interleaved lines from a worker pool can be told apart:

    WARNING [2026-10-19 10:02:54] docsmoke.subprocess_utils guide.md#3 - run timed out after 10.0s

Emission never waits on stderr: records go into a bounded queue drained by a
QueueListener thread, and are dropped when the queue is full.
"""

import contextlib
import logging
import logging.handlers
import os
import queue

import click

LIBRARY_LOGGER_NAME: str = "docsmoke"
LOG_LEVEL_ENV: str = "DOCSMOKE_LOG_LEVEL"

_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Pool sizes are capped at 64 workers, each logging a few lines per block
_QUEUE_CAPACITY = 1024

_LEVEL_STYLES: dict[int, dict[str, object]] = {
    logging.ERROR: {"fg": "red"},
    logging.WARNING: {"fg": "yellow"},
}


def _level_from_env() -> int | None:
    """Level named by DOCSMOKE_LOG_LEVEL, or None when unset or unknown."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    return logging.getLevelNamesMapping().get(name) or None


class BlockFormatter(logging.Formatter):
    """Adds the block label between logger name and message when one is set."""

    def __init__(self) -> None:
        super().__init__(datefmt=_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        label = getattr(record, "context_id", "")
        where = f"{record.name} {label}" if label else record.name
        message = record.getMessage()
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"
        return f"{record.levelname} [{self.formatTime(record, self.datefmt)}] {where} - {message}"


class _StderrHandler(logging.Handler):
    """Writes on the listener thread; click drops the colors when stderr is not a TTY."""

    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(BlockFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        style = _LEVEL_STYLES.get(record.levelno, {"dim": True})
        if record.levelno > logging.ERROR:
            style = _LEVEL_STYLES[logging.ERROR]
        try:
            click.echo(click.style(self.format(record), **style), err=True)
        except BlockingIOError:
            pass
        except Exception:  # noqa: BLE001
            self.handleError(record)


class _NonBlockingHandler(logging.handlers.QueueHandler):
    """QueueHandler over a bounded queue; full means the record is dropped."""

    def __init__(self) -> None:
        records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=_QUEUE_CAPACITY)
        super().__init__(records)
        self._listener = logging.handlers.QueueListener(records, _StderrHandler(), respect_handler_level=False)
        self._listener.start()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # Same process: the record is formatted by the listener, not pickled
        return record

    def enqueue(self, record: logging.LogRecord) -> None:
        with contextlib.suppress(queue.Full):
            self.queue.put_nowait(record)

    def close(self) -> None:
        self._listener.stop()
        super().close()


_library_logger = logging.getLogger(LIBRARY_LOGGER_NAME)
_library_logger.addHandler(logging.NullHandler())
if (_env_level := _level_from_env()) is not None:
    _library_logger.setLevel(_env_level)


def get_logger(name: str) -> logging.Logger:
    """Logger for a docsmoke module; pass `__name__`."""
    return logging.getLogger(name)


def configure_logging(*, level: int | str | None = None, quiet: bool = False) -> None:
    """Send docsmoke logs to stderr. Safe to call more than once.

    Args:
        level: Explicit level; wins over DOCSMOKE_LOG_LEVEL
        quiet: Only errors, whatever `level` says
    """
    if not any(isinstance(h, _NonBlockingHandler) for h in _library_logger.handlers):
        _library_logger.addHandler(_NonBlockingHandler())

    if quiet:
        _library_logger.setLevel(logging.ERROR)
    elif level is not None:
        _library_logger.setLevel(level)
