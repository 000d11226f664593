r"""Utilities for ingesting DEBkiss parameter catalogues.

BYOM scripts declare every model parameter as a row
``[value fit lower upper (log_scale)]``, where ``fit`` flags the parameter
as free during optimisation and the bounds constrain the search.  The
catalogues read here accept that compact form as well as a verbose list of
``{name, value, fit, bounds, log_scale, description}`` records.

The simulation core only ever reads the current scalar value; the fit flag,
bounds and scale are consumed by :mod:`debkiss.fitting`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import json
import math
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple, Union

from .errors import ParameterError


@dataclass(frozen=True)
class Parameter:
    """Container describing a resolved parameter entry."""

    name: str
    value: float
    fit: bool = False
    lower: float = -math.inf
    upper: float = math.inf
    log_scale: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        if self.lower > self.upper:
            raise ParameterError(f"{self.name}: lower bound {self.lower} exceeds upper bound {self.upper}")
        if not self.lower <= self.value <= self.upper:
            raise ParameterError(
                f"{self.name}: value {self.value} outside bounds [{self.lower}, {self.upper}]"
            )
        if self.log_scale and self.lower < 0.0:
            raise ParameterError(f"{self.name}: log-scale parameters need a non-negative lower bound")

    @classmethod
    def from_row(cls, name: str, row: Sequence[float], description: str = "") -> "Parameter":
        """Build from a BYOM row ``[value fit lower upper (log_scale)]``."""

        values = list(row)
        if not values:
            raise ParameterError(f"{name}: empty parameter row")
        value = float(values[0])
        fit = bool(values[1]) if len(values) > 1 else False
        lower = float(values[2]) if len(values) > 2 else -math.inf
        upper = float(values[3]) if len(values) > 3 else math.inf
        # BYOM stores 0 for log scale and 1 for normal scale in the fifth slot
        log_scale = len(values) > 4 and int(values[4]) == 0
        return cls(
            name=name,
            value=value,
            fit=fit,
            lower=lower,
            upper=upper,
            log_scale=log_scale,
            description=description,
        )


class ParameterSet(Mapping[str, float]):
    """Mapping-like wrapper around a resolved parameter catalogue."""

    def __init__(self, parameters: Union[Mapping[str, Parameter], Iterable[Parameter]]):
        if isinstance(parameters, Mapping):
            self._parameters = dict(parameters)
        else:
            self._parameters = {entry.name: entry for entry in parameters}

    def __getitem__(self, key: str) -> float:  # type: ignore[override]
        return self._parameters[key].value

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self._parameters)

    def __len__(self) -> int:  # type: ignore[override]
        return len(self._parameters)

    def __repr__(self) -> str:
        body = ", ".join(f"{name}={entry.value:g}" for name, entry in self._parameters.items())
        return f"ParameterSet({body})"

    def metadata(self, name: str) -> Parameter:
        """Return the full :class:`Parameter` record for *name*."""

        return self._parameters[name]

    def free_names(self) -> List[str]:
        """Names of the parameters flagged for fitting, in catalogue order."""

        return [name for name, entry in self._parameters.items() if entry.fit]

    def with_values(self, values: Mapping[str, float]) -> "ParameterSet":
        """Return a copy with updated values; the bounds are re-checked."""

        updated = dict(self._parameters)
        for name, value in values.items():
            if name not in updated:
                raise ParameterError(f"unknown parameter '{name}'")
            updated[name] = replace(updated[name], value=float(value))
        return ParameterSet(updated)

    def with_fit_flags(self, names: Iterable[str]) -> "ParameterSet":
        """Return a copy in which exactly *names* are flagged as free."""

        selected = set(names)
        unknown = selected.difference(self._parameters)
        if unknown:
            raise ParameterError(f"unknown parameters {sorted(unknown)}")
        return ParameterSet(
            {name: replace(entry, fit=name in selected) for name, entry in self._parameters.items()}
        )


def parameter_set_from_rows(rows: Mapping[str, Sequence[float]]) -> ParameterSet:
    """Build a :class:`ParameterSet` from BYOM-style ``name -> row`` pairs."""

    return ParameterSet(Parameter.from_row(name, row) for name, row in rows.items())


def load_parameter_set(path: Union[Path, str]) -> ParameterSet:
    """Load a JSON parameter catalogue.

    Parameters
    ----------
    path:
        Path to the JSON file.  The document is either an object mapping
        names to BYOM rows, or a list of records with ``name`` and ``value``
        plus optional ``fit``, ``bounds``, ``log_scale`` and ``description``.
    """

    with Path(path).open("r", encoding="utf8") as handle:
        raw = json.load(handle)

    if isinstance(raw, dict):
        return parameter_set_from_rows(raw)
    if not isinstance(raw, list):
        raise ParameterError(f"{path}: expected a JSON object or list of records")

    resolved: Dict[str, Parameter] = {}
    for entry in raw:
        name = str(entry["name"])
        if entry.get("value") is None:
            raise ParameterError(f"Parameter {name} is missing an explicit value")
        resolved[name] = _record_to_parameter(name, float(entry["value"]), entry)
    return ParameterSet(resolved)


def _record_to_parameter(name: str, value: float, entry: Mapping[str, object]) -> Parameter:
    lower, upper = _bounds(entry.get("bounds"))
    return Parameter(
        name=name,
        value=value,
        fit=bool(entry.get("fit", False)),
        lower=lower,
        upper=upper,
        log_scale=bool(entry.get("log_scale", False)),
        description=str(entry.get("description", "")),
    )


def _bounds(raw: object) -> Tuple[float, float]:
    if raw is None:
        return -math.inf, math.inf
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ParameterError(f"bounds must be a [lower, upper] pair, got {raw!r}")
    lower = -math.inf if raw[0] is None else float(raw[0])
    upper = math.inf if raw[1] is None else float(raw[1])
    return lower, upper


__all__ = [
    "Parameter",
    "ParameterSet",
    "load_parameter_set",
    "parameter_set_from_rows",
]
