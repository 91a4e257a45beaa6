"""Process logging for the media tools: stderr console output plus an in-memory flight log dumped on failure."""

import logging
import sys
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from src.core.config import get_config

FLIGHT_LOG_CAPACITY = 50_000
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Pillow logs every PNG chunk at DEBUG; at full volume it would evict the records worth keeping.
_NOISY_LOGGERS = ("PIL",)

_flight_logger: "FlightLogger | None" = None


class FlightLogger(logging.Handler):
    """
    Keeps the most recent records of a run (every level) so a failed command can leave
    a forensic trail without writing DEBUG output to the console.
    """

    def __init__(
        self,
        capacity: int = FLIGHT_LOG_CAPACITY,
        forensics_dir: str | Path | None = None,
    ) -> None:
        super().__init__(level=logging.DEBUG)
        self._records: deque[logging.LogRecord] = deque(maxlen=capacity)
        # Resolved against the working directory at dump time.
        self._forensics_dir = Path(forensics_dir or "logs/forensics")

    def emit(self, record: logging.LogRecord) -> None:
        self._records.append(record)

    def dump(self, run_id: str) -> str:
        """Write the buffered records to {forensics_dir}/{run_id}_{UTC timestamp}.log and return the path."""
        self._forensics_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        target = self._forensics_dir / f"{run_id}_{stamp}.log"
        formatter = self.formatter or logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
        lines = [f"# flux {run_id}: {len(self._records)} record(s)"]
        lines.extend(formatter.format(record) for record in self._records)
        target.write_text("\n".join(lines) + "\n")
        return str(target)

    def __len__(self) -> int:
        return len(self._records)


def get_flight_logger() -> FlightLogger | None:
    return _flight_logger


def setup_logging(verbose: bool = False) -> None:
    """
    Install the console and flight-log handlers on the root logger, replacing any earlier ones.

    The root passes everything (DEBUG) so the flight log sees it all; the stderr console
    filters at the configured log_level, or INFO with --verbose.
    """
    global _flight_logger
    cfg = get_config()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.INFO if verbose else cfg.log_level)
    console.setFormatter(formatter)
    root.addHandler(console)

    flight = FlightLogger(forensics_dir=cfg.forensics_dir)
    flight.setFormatter(formatter)
    root.addHandler(flight)
    _flight_logger = flight

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)
