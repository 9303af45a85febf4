"""
Deployment configuration for rollsettle engines.

Loaded from YAML the same way policies are: yaml.safe_load, then checked.
Unknown keys are rejected so a typo cannot silently fall back to a default.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from rollsettle.core.exceptions import ValidationError


DEFAULT_ASSIGNMENT_DOMAIN = "PROVER_ASSIGNMENT"
DEFAULT_CLAIM_DOMAIN      = "CLAIM_AIRDROP"
DEFAULT_MAX_GAS_PAYING_PROVER = 200_000


@dataclass(frozen=True)
class HookConfig:
    """Tunable parameters shared by the assignment hook and claim engine."""
    assignment_domain:     str = DEFAULT_ASSIGNMENT_DOMAIN
    claim_domain:          str = DEFAULT_CLAIM_DOMAIN
    max_gas_paying_prover: int = DEFAULT_MAX_GAS_PAYING_PROVER

    def __post_init__(self):
        for name in ("assignment_domain", "claim_domain"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValidationError(f"{name} must be a non-empty string")
        gas = self.max_gas_paying_prover
        if isinstance(gas, bool) or not isinstance(gas, int) or gas <= 0:
            raise ValidationError(
                "max_gas_paying_prover must be a positive integer",
                {"value": gas},
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HookConfig":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("config root must be a mapping")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError("unknown config keys", {"keys": unknown})
        return cls(**data)

    @classmethod
    def from_yaml(cls, config_file: Path) -> "HookConfig":
        """Load configuration from a YAML file."""
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data)
