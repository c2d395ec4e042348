import logging
import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


# ── column widths ─────────────────────────────────────────────────────────────
_W_SERIAL  = 6
_W_DATE    = 12
_W_TIME    = 10
_W_LEVEL   = 8
_W_UID     = 8
_W_EMAIL   = 30
_W_MODULE  = 32
_W_EVENT   = 48
_SEP       = " | "
_COLUMNS   = (_W_SERIAL, _W_DATE, _W_TIME, _W_LEVEL, _W_UID, _W_EMAIL, _W_MODULE, _W_EVENT)
_TOTAL_WIDTH = sum(_COLUMNS) + len(_SEP) * (len(_COLUMNS) - 1)
_INDENT    = " " * (_W_SERIAL + len(_SEP))


def _row(*cells) -> str:
    return _SEP.join(f"{str(cell):<{width}}" for cell, width in zip(cells, _COLUMNS))


class StructuredFileHandler(logging.FileHandler):
    """File handler that writes one aligned row per record.

    Column layout:
        Serial | Date | Time | Level | User ID | User Email | Module/Function | Event

    User columns come from ``extra={"user_id": ..., "user_email": ...}``
    on the logging call and fall back to ``-``.
    """

    def __init__(self, log_file_path: str):
        super().__init__(log_file_path, mode="a", encoding="utf-8")
        self.log_counter = self._get_next_serial_number()
        self._ensure_header_exists()

    def _get_next_serial_number(self) -> int:
        try:
            if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
                with open(self.baseFilename, "r", encoding="utf-8") as f:
                    for line in reversed(f.readlines()):
                        first = line.split(_SEP)[0].strip()
                        if first.isdigit():
                            return int(first) + 1
            return 1
        except OSError:
            return 1

    def _ensure_header_exists(self):
        if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
            return
        with open(self.baseFilename, "w", encoding="utf-8") as f:
            f.write("=" * _TOTAL_WIDTH + "\n")
            f.write(f"{'NOTEIT API AUTH LOG':^{_TOTAL_WIDTH}}\n")
            f.write("=" * _TOTAL_WIDTH + "\n")
            f.write(_row("#", "Date", "Time", "Level", "User ID", "User Email",
                         "Module/Function", "Event") + "\n")
            f.write("-" * _TOTAL_WIDTH + "\n")

    def emit(self, record: logging.LogRecord):
        try:
            dt = datetime.fromtimestamp(record.created)
            uid = getattr(record, "user_id", None) or "-"
            email = getattr(record, "user_email", None) or "-"
            message = record.getMessage()
            preview = message if len(message) <= _W_EVENT else message[:_W_EVENT - 3] + "..."

            lines = [_row(
                self.log_counter,
                dt.strftime("%Y-%m-%d"),
                dt.strftime("%H:%M:%S"),
                record.levelname,
                uid,
                email,
                f"{record.module}.{record.funcName}",
                preview,
            )]
            if len(message) > _W_EVENT:
                lines.append(f"{_INDENT}Details: {message}")
            if record.exc_info:
                tb = "".join(traceback.format_exception(*record.exc_info))
                lines.append(f"{_INDENT}Exception: {tb}")
            if record.levelno >= logging.ERROR:
                lines.append("-" * _TOTAL_WIDTH)

            with open(self.baseFilename, "a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
            self.log_counter += 1
        except Exception:
            self.handleError(record)


# ── setup ─────────────────────────────────────────────────────────────────────

def setup_file_logging(log_level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured file + console logging.

    The file handler only keeps WARNING and above; the console follows
    *log_level*.
    """
    log_file_path = Path(log_file) if log_file else Path(__file__).parent.parent / "logs" / "logs.txt"
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = StructuredFileHandler(str(log_file_path))
    file_handler.setLevel(logging.WARNING)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    logging.basicConfig(level=log_level, handlers=[file_handler, console_handler], force=True)

    logger = logging.getLogger(__name__)
    logger.warning("NoteIt API SESSION STARTED at %s", datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"))
    return logger


# ── helpers for callers ───────────────────────────────────────────────────────

def log_auth_event(
    event: str,
    email: Optional[str] = None,
    user_id: Optional[int] = None,
    error: Optional[str] = None,
):
    """Record an auth pipeline outcome with user context.

    Failures go out at ERROR, everything else at WARNING so that it lands
    in the file log.
    """
    _log = logging.getLogger("auth_events")
    extra = {"user_id": user_id or "-", "user_email": email or "-"}

    if error:
        _log.error("AUTH %s FAILED: %s", event, error, extra=extra)
    else:
        _log.warning("AUTH %s", event, extra=extra)
