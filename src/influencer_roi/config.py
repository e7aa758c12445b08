"""
Configuration for influencer campaign reporting.

Edit these values, or set the matching INFLUENCER_ROI_* environment
variables, to point the reports at a different dataset.
"""

import os
from dataclasses import dataclass, field, fields
from typing import List, Optional

from .errors import ConfigError

ENV_PREFIX = "INFLUENCER_ROI_"


def _parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class ReportConfig:
    """
    Main configuration for loading the entity tables and writing reports.

    Key switches:
    - drop_unattributed: drop tracking rows without an influencer_id instead
      of failing the load
    - strict_payouts: fail when a stored total_payout disagrees with the
      value derived from rate and counts
    """

    # === Data Source ===
    data_dir: str = "./data"
    influencers_file: str = "influencers.csv"
    posts_file: str = "posts.csv"
    tracking_file: str = "tracking.csv"
    payouts_file: str = "payouts.csv"

    # === Data Quality ===
    drop_unattributed: bool = False
    strict_payouts: bool = False
    payout_tolerance: float = 0.01

    # === Output ===
    output_dir: str = "./reports"
    output_formats: List[str] = field(default_factory=lambda: ["csv"])
    default_limit: int = 10

    # === Logging ===
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def table_path(self, table: str) -> str:
        """Path of one of the four source tables."""
        file_name = getattr(self, f"{table}_file")
        return os.path.join(self.data_dir, file_name)

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            k: v for k, v in self.__dict__.items()
            if not k.startswith('_')
        }

    @classmethod
    def from_env(cls, environ=None, **overrides) -> "ReportConfig":
        """
        Build a config from defaults, INFLUENCER_ROI_* variables and overrides.

        Raises:
            ConfigError: when an environment value cannot be converted.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                if f.type in (bool, "bool"):
                    values[f.name] = _parse_bool(raw)
                elif f.type in (int, "int"):
                    values[f.name] = int(raw)
                elif f.type in (float, "float"):
                    values[f.name] = float(raw)
                elif f.name == "output_formats":
                    values[f.name] = _parse_list(raw)
                else:
                    values[f.name] = raw
            except ValueError as exc:
                raise ConfigError(
                    f"Invalid value for {ENV_PREFIX + f.name.upper()}: {raw!r}"
                ) from exc
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


# === Quick Access Presets ===

def default_config() -> ReportConfig:
    """Get default configuration."""
    return ReportConfig()
