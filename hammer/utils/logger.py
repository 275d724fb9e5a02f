"""
Centralized logging configuration for Hammer.

Provides colored console output and one logger per subsystem:

    hammer.engine     auction lifecycle (bids, settlement, pauses)
    hammer.transfer   payments, refused payments, wrapped fallbacks
    hammer.issuer     unit minting
    hammer.oracle     price reads
    hammer.access     authorization and reentrancy rejections
    hammer.events     published events

Each subsystem can run at its own level, e.g. the engine at DEBUG while
the transfer layer only reports fallbacks (WARNING).
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Mapping, Optional

import colorlog

SUBSYSTEMS = ("engine", "transfer", "issuer", "oracle", "access", "events")


class HammerLogger:
    """Centralized logger for Hammer components"""

    _initialized = False
    _log_dir: Optional[Path] = None
    _console: Optional[logging.Handler] = None
    _file: Optional[logging.Handler] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        subsystem_levels: Optional[Mapping[str, int]] = None,
    ):
        """
        Setup logging configuration.

        Handlers are created once; later calls only adjust levels and
        add the file handler if it was not there yet.

        Args:
            level: Default level for every subsystem
            log_dir: Directory for log files. If None, uses ./logs
            log_to_file: Whether to write logs to file
            subsystem_levels: Per-subsystem overrides, e.g. {"engine": logging.DEBUG}
        """
        unknown = set(subsystem_levels or {}) - set(SUBSYSTEMS)
        if unknown:
            raise ValueError(f"Unknown subsystem(s): {', '.join(sorted(unknown))}")

        root_logger = logging.getLogger("hammer")

        if not cls._initialized:
            root_logger.handlers.clear()
            cls._console = colorlog.StreamHandler(sys.stdout)
            cls._console.setFormatter(colorlog.ColoredFormatter(
                "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors={
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            ))
            root_logger.addHandler(cls._console)
            cls._initialized = True

        if log_to_file and cls._file is None:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(exist_ok=True, parents=True)
            cls._file = logging.FileHandler(cls._log_dir / "hammer.log")
            cls._file.setFormatter(logging.Formatter(
                "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
            root_logger.addHandler(cls._file)

        root_logger.setLevel(level)
        overrides = subsystem_levels or {}
        for name in SUBSYSTEMS:
            cls.set_level(name, overrides.get(name, logging.NOTSET))

        # Handlers must let through the most verbose level any subsystem asked for
        floor = min([level, *(subsystem_levels or {}).values()])
        for handler in root_logger.handlers:
            handler.setLevel(floor)

    @classmethod
    def set_level(cls, name: str, level: int) -> None:
        """Set one subsystem's level; NOTSET inherits the hammer default."""
        if name not in SUBSYSTEMS:
            raise ValueError(f"Unknown subsystem '{name}' (expected one of {', '.join(SUBSYSTEMS)})")
        logging.getLogger(f"hammer.{name}").setLevel(level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific subsystem.

        Args:
            name: Subsystem name (e.g., 'engine', 'transfer', 'issuer')

        Returns:
            Logger instance
        """
        if not cls._initialized:
            cls.setup()

        return logging.getLogger(f"hammer.{name}")


def parse_levels(spec: str) -> Dict[str, int]:
    """
    Parse "engine=DEBUG,transfer=WARNING" into {subsystem: level}.

    Raises:
        ValueError: On a malformed entry, unknown subsystem or unknown level
    """
    levels: Dict[str, int] = {}
    for item in filter(None, (part.strip() for part in spec.split(","))):
        name, sep, level_name = item.partition("=")
        name = name.strip().lower()
        if not sep or not name:
            raise ValueError(f"Expected subsystem=LEVEL, got '{item}'")
        if name not in SUBSYSTEMS:
            raise ValueError(f"Unknown subsystem '{name}'")
        level = logging.getLevelName(level_name.strip().upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level '{level_name.strip()}'")
        levels[name] = level
    return levels


# Convenience functions
def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific subsystem"""
    return HammerLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
    subsystem_levels: Optional[Mapping[str, int]] = None,
):
    """Setup logging configuration"""
    HammerLogger.setup(
        level=level,
        log_dir=log_dir,
        log_to_file=log_to_file,
        subsystem_levels=subsystem_levels,
    )
