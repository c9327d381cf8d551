from __future__ import annotations
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

PACKAGE_LOGGER = "catalog_sync"


def setup_logging(config_path: str = "configs/logging.yaml", level: Optional[str] = None) -> None:
    """
    Configure logging from a YAML dictConfig file.

    Directories of file handlers are created first. `level` overrides the
    level of the package logger, e.g. "DEBUG" for a verbose run.
    """
    path = Path(config_path)
    if not path.exists():
        # Safe fallback
        logging.basicConfig(level=level.upper() if level else logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        return

    with path.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    _ensure_handler_dirs(cfg)
    if level:
        cfg.setdefault("loggers", {}).setdefault(PACKAGE_LOGGER, {})["level"] = level.upper()
    logging.config.dictConfig(cfg)


def _ensure_handler_dirs(cfg: Dict[str, Any]) -> None:
    for handler in (cfg.get("handlers") or {}).values():
        filename = handler.get("filename")
        if filename:
            Path(filename).parent.mkdir(parents=True, exist_ok=True)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
