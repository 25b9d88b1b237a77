"""
Central configuration for the procurement ingestion and receiving engine.

All paths, parsing tolerances, and defaults are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. config/procurement_settings.json  (admin-editable, persisted)
  2. Environment variables
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default data locations (relative to project root)
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"
DEFAULT_DB_PATH    = DEFAULT_OUTPUT_DIR / "assets.db"
DEFAULT_EXPORT_DIR = DEFAULT_OUTPUT_DIR / "export"
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() != "false"


@dataclass
class Config:
    # --- Storage ---
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )
    export_dir: Path = field(
        default_factory=lambda: Path(os.getenv("EXPORT_DIR", str(DEFAULT_EXPORT_DIR)))
    )
    config_dir: Path = field(
        default_factory=lambda: Path(os.getenv("CONFIG_DIR", str(DEFAULT_CONFIG_DIR)))
    )
    seed_categories: bool = field(
        default_factory=lambda: _env_bool("SEED_CATEGORIES", "true")
    )

    # --- PDF layout reconstruction ---
    line_tolerance: float = field(
        default_factory=lambda: float(os.getenv("PDF_LINE_TOLERANCE", "5.0"))
    )
    # Words whose vertical positions differ by less than this are one visual line.
    column_gap: float = field(
        default_factory=lambda: float(os.getenv("PDF_COLUMN_GAP", "10.0"))
    )
    # A horizontal gap wider than this between two words is a column boundary.

    # --- Draft defaults ---
    default_gst_percent: float = 18.0
    default_uom:         str   = "Nos"
    default_subcategory: str   = "General"

    # --- Receiving ---
    receive_timeout_seconds: int = field(
        default_factory=lambda: int(os.getenv("RECEIVE_TIMEOUT", "60"))
    )
    # Busy-timeout for the receiving transaction; large GRNs touch many rows.

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from procurement_settings.json if present."""
        settings_file = Path(self.config_dir) / "procurement_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "line_tolerance":          float,
            "column_gap":              float,
            "default_gst_percent":     float,
            "default_uom":             str,
            "default_subcategory":     str,
            "receive_timeout_seconds": int,
            "seed_categories":         bool,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key not in _type_map or not hasattr(self, key):
                    continue
                if _type_map[key] is bool and isinstance(val, str):
                    val = val.lower() != "false"
                setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load procurement_settings.json: %s", exc)

    def ensure_output_dir(self) -> None:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        Path(self.export_dir).mkdir(parents=True, exist_ok=True)
