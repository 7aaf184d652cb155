import logging
from pathlib import Path
from datetime import datetime
from typing import Iterable
from zoneinfo import ZoneInfo

# Transport libraries log every frame/request at DEBUG.
NOISY_LOGGERS = ("websockets", "urllib3")


def setup_logging(
    level: str = "INFO",
    component: str = "book",
    market: str = "default",
    base_dir: str | Path = "logs",
    tz: str = "Europe/Berlin",
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> Path:
    """
    Configure process-wide logging for a book watcher:
      - Console (stdout)
      - Daily log file in <base_dir>/<component>/<market>/YYYY-MM-DD.log (date in `tz`)
      - Transport loggers listed in `quiet` capped at WARNING

    Returns:
      Path to the "current" daily log file.
    """

    log_dir = Path(base_dir) / component / market
    log_dir.mkdir(parents=True, exist_ok=True)
    date_str = datetime.now(ZoneInfo(tz)).strftime("%Y-%m-%d")
    log_path = log_dir / f"{date_str}.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(fmt)
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(fh)
    root.addHandler(sh)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_path
