"""Simulation-wide configuration (the BYOM ``glo`` structure).

The MATLAB scripts keep these settings in a mutable global that every
function reads.  Here they live in a frozen :class:`ModelConfig` which is
handed explicitly to the flux model and the simulation driver.  JSON files
use the BYOM field names (``delM``, ``dV``, ``len`` ...) and are validated
with pydantic before they are turned into a :class:`ModelConfig`.
"""

from __future__ import annotations

import dataclasses
import json
import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError


class LengthMode(IntEnum):
    """How body size is reported (``glo.len``)."""

    OFF = 0
    ON = 1
    NO_SHRINK = 2


class ModelVariant(str, Enum):
    COMPOUND = "compound"
    DEBKISS = "debkiss"


@dataclass(frozen=True)
class ModelConfig:
    """Read-only settings shared by every call of one experiment."""

    variant: ModelVariant = ModelVariant.DEBKISS
    shape_coefficient: float = 1.0
    dry_weight_density: float = 1.0
    length_mode: LengthMode = LengthMode.OFF
    maturity_maintenance: bool = False
    egg_buffer: bool = False
    survival: bool = False
    solver_family: int = 0
    tolerance_tier: int = 1
    brood_pouch_delay: float = 0.0
    loc_size: int = 0
    loc_repro: int = 1
    min_time_points: int = 500
    initial_size_is_length: bool = True
    max_step: float = math.inf

    def __post_init__(self) -> None:
        object.__setattr__(self, "variant", ModelVariant(self.variant))
        object.__setattr__(self, "length_mode", LengthMode(int(self.length_mode)))
        if self.shape_coefficient <= 0.0 or self.dry_weight_density <= 0.0:
            raise ConfigError("shape_coefficient and dry_weight_density must be positive")
        if self.brood_pouch_delay < 0.0:
            raise ConfigError(f"brood_pouch_delay must be >= 0, got {self.brood_pouch_delay}")
        if {self.loc_size, self.loc_repro} != {0, 1}:
            # egg buffer and survival always follow at positions 2 and 3
            raise ConfigError(
                f"size and reproduction must occupy the first two states, got "
                f"({self.loc_size}, {self.loc_repro})"
            )
        if self.variant is ModelVariant.COMPOUND and (self.egg_buffer or self.survival):
            raise ConfigError("the compound variant only tracks length and reproduction")
        if self.survival and not self.egg_buffer:
            # survival selects embryo vs larva mortality from the egg buffer
            raise ConfigError("survival requires the egg_buffer state")
        if self.min_time_points < 2:
            raise ConfigError(f"min_time_points must be >= 2, got {self.min_time_points}")

    @property
    def length_active(self) -> bool:
        return self.length_mode is not LengthMode.OFF

    @property
    def converts_mass(self) -> bool:
        """True when the size state is a mass that is reported as length."""
        return self.length_active and self.variant is ModelVariant.DEBKISS

    @property
    def n_states(self) -> int:
        return 2 + int(self.egg_buffer) + int(self.survival)

    @property
    def state_names(self) -> Tuple[str, ...]:
        names: List[str] = ["", ""]
        if self.variant is ModelVariant.COMPOUND:
            names[self.loc_size] = "L"
        else:
            names[self.loc_size] = "Lw" if self.length_active else "WV"
        names[self.loc_repro] = "R"
        if self.egg_buffer:
            names.append("WB")
        if self.survival:
            names.append("S")
        return tuple(names)

    def replace(self, **changes: Any) -> "ModelConfig":
        return dataclasses.replace(self, **changes)

    def as_dict(self) -> Dict[str, object]:
        payload = dataclasses.asdict(self)
        payload["variant"] = self.variant.value
        payload["length_mode"] = int(self.length_mode)
        return payload


class ModelConfigSchema(BaseModel):
    """JSON schema for configuration files, keyed by the BYOM names."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    variant: ModelVariant = ModelVariant.DEBKISS
    shape_coefficient: float = Field(1.0, alias="delM", gt=0.0)
    dry_weight_density: float = Field(1.0, alias="dV", gt=0.0)
    length_mode: int = Field(0, alias="len")
    maturity_maintenance: bool = Field(False, alias="mat")
    egg_buffer: bool = False
    survival: bool = False
    stiff: Optional[List[int]] = None
    solver_family: int = 0
    tolerance_tier: int = 1
    brood_pouch_delay: float = Field(0.0, alias="Tbp", ge=0.0)
    loc_size: int = Field(1, alias="locL", ge=1)
    loc_repro: int = Field(2, alias="locR", ge=1)
    min_time_points: int = Field(500, ge=2)
    initial_size_is_length: bool = True
    max_step: Optional[float] = None

    @field_validator("length_mode")
    def length_mode_allowed(cls, value: int) -> int:
        if value not in (0, 1, 2):
            raise ValueError(f"len must be 0, 1 or 2, got {value}")
        return value

    @field_validator("stiff")
    def stiff_pair(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is not None and not 1 <= len(value) <= 2:
            raise ValueError("stiff must hold [solver] or [solver, tolerance tier]")
        return value

    def to_config(self) -> ModelConfig:
        family = self.solver_family
        tier = self.tolerance_tier
        if self.stiff:
            family = self.stiff[0]
            tier = self.stiff[1] if len(self.stiff) > 1 else 1
        return ModelConfig(
            variant=self.variant,
            shape_coefficient=self.shape_coefficient,
            dry_weight_density=self.dry_weight_density,
            length_mode=LengthMode(self.length_mode),
            maturity_maintenance=self.maturity_maintenance,
            egg_buffer=self.egg_buffer,
            survival=self.survival,
            solver_family=family,
            tolerance_tier=tier,
            brood_pouch_delay=self.brood_pouch_delay,
            # the files count states from 1 like the MATLAB scripts do
            loc_size=self.loc_size - 1,
            loc_repro=self.loc_repro - 1,
            min_time_points=self.min_time_points,
            initial_size_is_length=self.initial_size_is_length,
            max_step=math.inf if self.max_step in (None, 0.0) else float(self.max_step),
        )


def config_from_mapping(payload: Mapping[str, object]) -> ModelConfig:
    try:
        schema = ModelConfigSchema.model_validate(dict(payload))
    except ValidationError as exc:
        raise ConfigError(f"invalid model configuration:\n{exc}") from exc
    return schema.to_config()


def load_config(path: Union[Path, str]) -> ModelConfig:
    """Load a JSON configuration file into a :class:`ModelConfig`."""

    config_path = Path(path)
    try:
        payload = json.loads(config_path.read_text(encoding="utf8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"configuration file {config_path} not found") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{config_path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")
    return config_from_mapping(payload)


__all__ = [
    "LengthMode",
    "ModelConfig",
    "ModelConfigSchema",
    "ModelVariant",
    "config_from_mapping",
    "load_config",
]
