"""
===========================================================
parameters.py
Author: Veronica Scerra
Last Updated: 2026-10-14
===========================================================

Description:
    Model parameters, the fixed/free assignment used for fitting,
    and the transforms between the optimizer's unconstrained vector
    and the model's natural parameter space.

API:
    ParameterVector(beta0, beta1, k, tau1, f, offset, sigma, gamma)
    Fixed(value)       - natural-space constant, not estimated
    Free(start)        - estimated, start value in unconstrained space
    ParameterSpec({...}) / ParameterSpec.from_mappings(fixed, free)
      - free_names, start_vector()
      - to_natural(theta) -> ParameterVector
      - to_unconstrained(params) -> ndarray

Notes:
    - beta0, k, offset (and sigma, gamma when free) use exp -> strictly positive
    - beta1, f use the logistic transform -> (0, 1)
    - tau1 is on the natural (days) scale
    - offset may be fixed at -inf: "no reporting delay" (0 days)
    - tau1 left out of a ParameterSpec defaults to the offset
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, asdict, replace as dc_replace
from typing import Dict, Iterator, Optional, Tuple, Union

import numpy as np
from scipy.special import expit, logit

from .exceptions import ConfigurationError

PARAMETER_NAMES: Tuple[str, ...] = ("beta0", "beta1", "k", "tau1", "f", "offset", "sigma", "gamma")

LOG_PARAMS = frozenset({"beta0", "k", "offset", "sigma", "gamma"})
LOGIT_PARAMS = frozenset({"beta1", "f"})

# tau1 is the only parameter allowed to be left out
OPTIONAL_PARAMS = frozenset({"tau1"})


@dataclass(frozen=True)
class ParameterVector:
    """
    Natural-space model parameters.

    beta0 : float. Baseline transmission rate (per day)
    beta1 : float. Post-intervention transmission as a fraction of beta0
    k     : float. Decay rate of transmission after the intervention (per day)
    tau1  : float. Intervention onset time (days since epidemic start)
    f     : float. Case-fatality fraction
    offset: float. Days between epidemic start and the first observation
    sigma : float. E->I rate (1/latent period)
    gamma : float. I->R/D rate (1/infectious period)
    """
    beta0: float
    beta1: float
    k: float
    tau1: float
    f: float
    offset: float
    sigma: float
    gamma: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def replace(self, **changes) -> "ParameterVector":
        return dc_replace(self, **changes)


@dataclass(frozen=True)
class Fixed:
    """Parameter held at a natural-space value"""
    value: float


@dataclass(frozen=True)
class Free:
    """Parameter to be estimated, starting from an unconstrained-space value"""
    start: float


Entry = Union[Fixed, Free]


def to_natural_value(name: str, value: float) -> float:
    """Map one unconstrained value to its natural scale"""
    if name in LOG_PARAMS:
        with np.errstate(over="ignore"):
            return float(np.exp(value))
    if name in LOGIT_PARAMS:
        return float(expit(value))
    return float(value)


def to_unconstrained_value(name: str, value: float) -> float:
    """Inverse of to_natural_value"""
    if name in LOG_PARAMS:
        with np.errstate(divide="ignore"):
            return float(np.log(value))
    if name in LOGIT_PARAMS:
        return float(logit(value))
    return float(value)


def _check_fixed(name: str, value: float) -> None:
    if name == "offset":
        if value == -np.inf or (np.isfinite(value) and value >= 0):
            return
        raise ConfigurationError(f"fixed offset must be >= 0 or -inf (no delay), got {value}")
    if not np.isfinite(value):
        raise ConfigurationError(f"fixed {name} must be finite, got {value}")
    if name in LOGIT_PARAMS and not (0.0 <= value <= 1.0):
        raise ConfigurationError(f"fixed {name} must lie in [0, 1], got {value}")
    if name in ("sigma", "gamma") and value <= 0:
        raise ConfigurationError(f"fixed {name} must be positive, got {value}")
    if name in ("beta0", "k") and value < 0:
        raise ConfigurationError(f"fixed {name} must be non-negative, got {value}")


class ParameterSpec(Mapping):
    """
    Assignment of every model parameter to exactly one of Fixed or Free.

    The free parameters are always ordered as in PARAMETER_NAMES, so the
    unconstrained vector does not depend on how the caller built the spec.
    """

    def __init__(self, entries: Mapping[str, Entry]):
        entries = dict(entries)
        unknown = sorted(set(entries) - set(PARAMETER_NAMES))
        if unknown:
            raise ConfigurationError(f"Unknown parameter(s): {unknown}. Known: {list(PARAMETER_NAMES)}")
        missing = [n for n in PARAMETER_NAMES if n not in entries and n not in OPTIONAL_PARAMS]
        if missing:
            raise ConfigurationError(f"Parameter(s) neither fixed nor free: {missing}")

        for name, entry in entries.items():
            if isinstance(entry, Fixed):
                _check_fixed(name, float(entry.value))
            elif isinstance(entry, Free):
                if not np.isfinite(entry.start):
                    raise ConfigurationError(f"start value for free {name} must be finite, got {entry.start}")
            else:
                raise ConfigurationError(f"{name}: expected Fixed or Free, got {type(entry).__name__}")

        self._entries: Dict[str, Entry] = {n: entries[n] for n in PARAMETER_NAMES if n in entries}
        self.free_names: Tuple[str, ...] = tuple(n for n, e in self._entries.items() if isinstance(e, Free))

    @classmethod
    def from_mappings(
            cls,
            fixed: Optional[Mapping[str, float]] = None,
            free: Optional[Mapping[str, float]] = None
    ) -> "ParameterSpec":
        """Build a spec from plain name->value mappings (fixed: natural, free: unconstrained starts)"""
        fixed = dict(fixed or {})
        free = dict(free or {})
        clash = sorted(set(fixed) & set(free))
        if clash:
            raise ConfigurationError(f"Parameter(s) both fixed and free: {clash}")
        entries: Dict[str, Entry] = {n: Fixed(float(v)) for n, v in fixed.items()}
        entries.update({n: Free(float(v)) for n, v in free.items()})
        return cls(entries)

    # Mapping protocol
    def __getitem__(self, name: str) -> Entry:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ParameterSpec({self._entries!r})"

    @property
    def n_free(self) -> int:
        return len(self.free_names)

    @property
    def fixed_values(self) -> Dict[str, float]:
        return {n: float(e.value) for n, e in self._entries.items() if isinstance(e, Fixed)}

    def start_vector(self) -> np.ndarray:
        return np.array([self._entries[n].start for n in self.free_names], dtype=float)

    def to_natural(self, theta) -> ParameterVector:
        """Merge fixed values with the transformed free vector"""
        theta = np.asarray(theta, dtype=float)
        if theta.shape != (self.n_free,):
            raise ConfigurationError(f"expected {self.n_free} free values {self.free_names}, got shape {theta.shape}")

        values: Dict[str, float] = {}
        for name, entry in self._entries.items():
            if isinstance(entry, Fixed):
                values[name] = float(entry.value)
        for name, x in zip(self.free_names, theta):
            values[name] = to_natural_value(name, x)

        if values["offset"] == -np.inf:
            values["offset"] = 0.0
        values.setdefault("tau1", values["offset"])
        return ParameterVector(**values)

    def to_unconstrained(self, params: ParameterVector) -> np.ndarray:
        """Free values of a natural-space vector, on the optimizer scale"""
        return np.array([to_unconstrained_value(n, getattr(params, n)) for n in self.free_names], dtype=float)
