"""
Tuning knobs of the send pipeline.

Values come from (in order of precedence): explicit constructor arguments,
a YAML file loaded with `from_yaml`, or SENDER_* environment variables
loaded with `from_env` (a .env file is honoured).
"""

import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from pipeline.types import ConfirmationStatus
from utils.logger import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "SENDER_"
_ENV_REF = re.compile(r"\$\{([^}]+)\}")


@dataclass(frozen=True)
class PipelineConfig:
    """Retry ceilings, delays and fee settings for one BatchSender."""

    submission_retries: int = 4
    submission_retry_delay: float = 2.0      # seconds
    simulation_retries: int = 4
    confirmation_retries: int = 4
    confirmation_retry_delay: float = 5.0    # seconds
    compute_unit_margin: int = 1000
    priority_fee_micro_lamports: int = 0
    commitment: str = "confirmed"            # balance, blockhash, simulation
    preflight_commitment: str = "finalized"  # sendTransaction
    confirmation_commitment: str = "confirmed"
    transport_max_retries: int = 0

    def __post_init__(self):
        for name in (
            "submission_retries",
            "simulation_retries",
            "confirmation_retries",
            "compute_unit_margin",
            "priority_fee_micro_lamports",
            "transport_max_retries",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("submission_retry_delay", "confirmation_retry_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("commitment", "preflight_commitment", "confirmation_commitment"):
            ConfirmationStatus.from_commitment(getattr(self, name))

    @property
    def confirmation_threshold(self) -> ConfirmationStatus:
        return ConfirmationStatus.from_commitment(self.confirmation_commitment)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineConfig":
        """Build a config from a mapping, coercing values to field types."""
        known = {f.name: f for f in fields(cls)}
        unknown = set(data) - set(known)
        if unknown:
            logger.warning(f"Ignoring unknown pipeline settings: {sorted(unknown)}")
        kwargs = {}
        for name, value in data.items():
            if name not in known or value is None:
                continue
            kwargs[name] = _coerce(value, known[name].type)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, env_file: Optional[str] = None) -> "PipelineConfig":
        """Read SENDER_<FIELD> variables, e.g. SENDER_SUBMISSION_RETRIES=6."""
        load_dotenv(env_file)
        data = {}
        for f in fields(cls):
            raw = os.getenv(f"{prefix}{f.name.upper()}")
            if raw is not None and raw != "":
                data[f.name] = raw
        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, path: str | Path, section: Optional[str] = "sender") -> "PipelineConfig":
        """Load settings from a YAML file, expanding ${VAR} references.

        Args:
            path: YAML file path
            section: top-level key holding the settings; None uses the whole document

        Raises:
            ValueError: If a referenced environment variable is not set
        """
        load_dotenv()
        raw = Path(path).read_text(encoding="utf-8")

        missing = [var for var in _ENV_REF.findall(raw) if not os.environ.get(var)]
        if missing:
            raise ValueError(f"Environment variables not set: {', '.join(sorted(set(missing)))}")
        expanded = _ENV_REF.sub(lambda m: os.environ[m.group(1)], raw)

        document = yaml.safe_load(expanded) or {}
        if section is not None:
            document = document.get(section) or {}
        if not isinstance(document, dict):
            raise ValueError(f"Sender settings in {path} must be a mapping")
        return cls.from_dict(document)


def _coerce(value: Any, type_name: Any) -> Any:
    # dataclass field types are strings only under postponed annotations
    target = {"int": int, "float": float, "str": str}.get(getattr(type_name, "__name__", type_name))
    if target is None or isinstance(value, target):
        return value
    if target is int and isinstance(value, str):
        return int(value.replace("_", ""))
    return target(value)
