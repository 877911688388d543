import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    component: str = "feed",
    subdir: str = "default",
    base_dir: str | Path = "logs",
    to_file: bool = True,
    tz: str = "UTC",
) -> Optional[Path]:
    """
    Configure logging:
      - Console (stdout)
      - Daily log file in logs/<component>/<subdir>/YYYY-MM-DD.log

    Returns:
      Path to the daily log file, or None when file output is disabled.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(LOG_FORMAT)
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(sh)

    if not to_file:
        return None

    log_dir = Path(base_dir) / component / subdir
    log_dir.mkdir(parents=True, exist_ok=True)
    date_str = datetime.now(ZoneInfo(tz)).strftime("%Y-%m-%d")
    log_path = log_dir / f"{date_str}.log"
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(fmt)
    root.addHandler(fh)
    return log_path
