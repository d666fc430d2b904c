"""
Auction configuration parameters for Sealbid.

Defines phase windows, value width and operational limits. Values come from
defaults, an optional JSON file and SEALBID_* environment variables (a local
.env file is honoured), in increasing order of precedence.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from sealbid.core.types import Width

ENV_PREFIX = "SEALBID_"


class AuctionConfig(BaseModel):
    """Auction-wide configuration parameters"""

    # Phase windows (in blocks)
    bidding_window: int = Field(default=100, gt=0)
    reveal_window: int = Field(default=50, gt=0)

    # Bid encoding
    bid_width: Width = Width.UINT32

    # Limits
    max_bids: Optional[int] = Field(default=None, gt=0)  # None = unbounded
    count_unrevealed_bids: bool = True  # Settlement folds unrevealed bids too

    # Decryption oracle (hex, 64-byte uncompressed secp256k1 key)
    oracle_public_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @field_validator("bid_width", mode="before")
    @classmethod
    def _parse_width(cls, value: Any) -> Any:
        if isinstance(value, str):
            name = value.strip().upper()
            if name in Width.__members__:
                return Width[name]
            return int(name)
        return value

    @field_validator("oracle_public_key")
    @classmethod
    def _check_oracle_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        hex_str = value[2:] if value.startswith("0x") else value
        try:
            raw = bytes.fromhex(hex_str)
        except ValueError:
            raise ValueError("oracle_public_key contains invalid hex characters")
        if len(raw) != 64:
            raise ValueError(f"oracle_public_key must be 64 bytes, got {len(raw)}")
        return hex_str.lower()

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level {value}")
        return level

    @property
    def oracle_public_key_bytes(self) -> Optional[bytes]:
        if self.oracle_public_key is None:
            return None
        return bytes.fromhex(self.oracle_public_key)

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in AuctionConfig.model_fields:
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        if raw.strip().lower() in ("", "none", "null"):
            overrides[name] = None
        else:
            overrides[name] = raw
    return overrides


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AuctionConfig:
    """
    Load configuration from file and environment.

    Args:
        config_path: Optional path to a JSON config file
        environ: Environment mapping; defaults to os.environ after load_dotenv()

    Returns:
        Validated AuctionConfig

    Raises:
        FileNotFoundError: config_path does not exist
        pydantic.ValidationError: a value is out of range or malformed
    """
    data: Dict[str, Any] = {}

    if config_path:
        data.update(json.loads(Path(config_path).read_text()))

    if environ is None:
        load_dotenv()
        environ = os.environ
    data.update(_env_overrides(environ))

    return AuctionConfig.model_validate(data)


__all__ = ["AuctionConfig", "load_config", "ENV_PREFIX"]
