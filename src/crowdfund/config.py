"""Runtime configuration.

Settings come from the process environment, optionally primed from a
.env file, or from a JSON file. Nothing here affects campaign rules:
those are fixed in code. Configuration only says where the event log
lives and which unit the CLI assumes for amounts.

Environment variables:
    CROWDFUND_DATA_DIR      directory holding the event log (default: ./data)
    CROWDFUND_EVENT_LOG     event log file name (default: events.jsonl)
    CROWDFUND_DEFAULT_UNIT  unit for CLI amounts (default: wei)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DATA_DIR = Path("data")
DEFAULT_EVENT_LOG = "events.jsonl"
DEFAULT_UNIT = "wei"

# Units accepted by Web3.to_wei that the CLI exposes
SUPPORTED_UNITS = ("wei", "kwei", "mwei", "gwei", "szabo", "finney", "ether")


@dataclass(frozen=True)
class CrowdfundConfig:
    """Resolved runtime settings."""
    data_dir: Path = DEFAULT_DATA_DIR
    event_log_name: str = DEFAULT_EVENT_LOG
    default_unit: str = DEFAULT_UNIT

    def __post_init__(self) -> None:
        if self.default_unit not in SUPPORTED_UNITS:
            raise ValueError(
                f"Unsupported unit: {self.default_unit}. "
                f"Expected one of: {', '.join(SUPPORTED_UNITS)}"
            )
        if not self.event_log_name.strip():
            raise ValueError("Event log name must not be empty")

    @property
    def event_log_path(self) -> Path:
        return self.data_dir / self.event_log_name

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> CrowdfundConfig:
        """Load settings from the environment, after reading env_file if given.

        Variables already set in the environment win over the file.
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()
        return cls(
            data_dir=Path(os.getenv("CROWDFUND_DATA_DIR", str(DEFAULT_DATA_DIR))),
            event_log_name=os.getenv("CROWDFUND_EVENT_LOG", DEFAULT_EVENT_LOG),
            default_unit=os.getenv("CROWDFUND_DEFAULT_UNIT", DEFAULT_UNIT),
        )

    @classmethod
    def from_file(cls, path: Path) -> CrowdfundConfig:
        """Load settings from a JSON file. Missing keys take defaults."""
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls(
            data_dir=Path(data.get("data_dir", str(DEFAULT_DATA_DIR))),
            event_log_name=data.get("event_log_name", DEFAULT_EVENT_LOG),
            default_unit=data.get("default_unit", DEFAULT_UNIT),
        )
