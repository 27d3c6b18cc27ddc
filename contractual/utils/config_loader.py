"""
Configuration loader for stub servers and producer verification.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "contractual_config.yml"


class StubServerConfig(BaseModel):
    """Where stub servers listen and how they report unmatched requests"""

    host: str = "127.0.0.1"
    port: int = Field(default=0, ge=0, le=65535)  # 0 picks a free port per producer
    startup_timeout_seconds: float = Field(default=5.0, gt=0)
    no_match_status: int = Field(default=404, ge=400, le=599)
    ambiguous_status: int = Field(default=409, ge=400, le=599)
    log_level: str = "warning"


class VerificationConfig(BaseModel):
    timeout_seconds: Optional[float] = Field(default=10.0, gt=0)


class ContractualConfig(BaseModel):
    contracts_dir: str = "contracts"
    stub_server: StubServerConfig = Field(default_factory=StubServerConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)


def load_config(config_path: Optional[Path] = None) -> ContractualConfig:
    """
    Load and validate configuration from YAML, then apply environment overrides

    Args:
        config_path: Path to config file. Defaults to config/contractual_config.yml;
            when the default file is absent the built-in defaults are used.

    Returns:
        Validated ContractualConfig object

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    load_dotenv()

    data = {}
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        if not config_path.exists():
            logger.info("No config file at %s, using defaults", config_path)
            config_path = None
    elif not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path is not None:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    _apply_env_overrides(data)

    try:
        cfg = ContractualConfig(**data)
        logger.info("Loaded contractual config from %s", config_path or "defaults")
        return cfg
    except ValidationError as e:
        logger.error("Contractual config validation failed: %s", e)
        raise


def _apply_env_overrides(data: dict) -> None:
    stub = data.setdefault("stub_server", {}) or {}
    data["stub_server"] = stub
    verification = data.setdefault("verification", {}) or {}
    data["verification"] = verification

    if os.getenv("CONTRACTUAL_STUB_HOST"):
        stub["host"] = os.environ["CONTRACTUAL_STUB_HOST"]
    if os.getenv("CONTRACTUAL_STUB_PORT"):
        stub["port"] = os.environ["CONTRACTUAL_STUB_PORT"]
    if os.getenv("CONTRACTUAL_VERIFICATION_TIMEOUT"):
        verification["timeout_seconds"] = os.environ["CONTRACTUAL_VERIFICATION_TIMEOUT"]
    if os.getenv("CONTRACTUAL_CONTRACTS_DIR"):
        data["contracts_dir"] = os.environ["CONTRACTUAL_CONTRACTS_DIR"]
