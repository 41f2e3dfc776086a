# src/nodal_core/solver/config.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..constants import SINGULAR_PIVOT_RTOL

logger = logging.getLogger(__name__)


class ConfigParsingError(ValueError):
    """Custom exception for errors during solver configuration parsing."""
    pass


class SolverMode(Enum):
    """Which solution path the linear solver takes."""
    AUTO = "auto"
    SYMBOLIC = "symbolic"
    NUMERIC = "numeric"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class SolverConfig:
    """
    Options for one analysis run.

    - `mode`: AUTO picks the exact symbolic path when a coefficient is symbolic or
      every input is exact, and the float LU path otherwise.
    - `singular_rtol`: relative pivot threshold of the numeric path.
    - `simplify`: run `sympy.simplify` over symbolic results.
    """
    mode: SolverMode = SolverMode.AUTO
    singular_rtol: float = SINGULAR_PIVOT_RTOL
    simplify: bool = True

    def __post_init__(self):
        if not isinstance(self.mode, SolverMode):
            raise TypeError(f"SolverConfig.mode must be a SolverMode, got {type(self.mode).__name__}.")
        if not (self.singular_rtol > 0):
            raise ValueError(f"SolverConfig.singular_rtol must be > 0, got {self.singular_rtol}.")


_KNOWN_KEYS = ("mode", "singular_rtol", "simplify")


def parse_solver_config(raw_config: Optional[Dict[str, Any]]) -> SolverConfig:
    """
    Parses a raw configuration dictionary such as
    ``{"mode": "numeric", "singular_rtol": 1e-12}`` into a `SolverConfig`.
    Missing keys take their defaults; an empty or None input gives the default config.
    """
    if not raw_config:
        return SolverConfig()
    try:
        unknown = sorted(set(raw_config) - set(_KNOWN_KEYS))
        if unknown:
            raise ValueError(f"Unknown option(s) {unknown}. Allowed: {list(_KNOWN_KEYS)}.")

        kwargs: Dict[str, Any] = {}
        if 'mode' in raw_config:
            mode = raw_config['mode']
            kwargs['mode'] = mode if isinstance(mode, SolverMode) else SolverMode(str(mode).strip().lower())
        if 'singular_rtol' in raw_config:
            kwargs['singular_rtol'] = float(raw_config['singular_rtol'])
        if 'simplify' in raw_config:
            simplify = raw_config['simplify']
            if not isinstance(simplify, bool):
                raise ValueError(f"'simplify' must be a boolean, got {simplify!r}.")
            kwargs['simplify'] = simplify

        config = SolverConfig(**kwargs)
        logger.debug(f"Parsed solver configuration: {config}")
        return config
    except (TypeError, ValueError) as e:
        raise ConfigParsingError(f"Failed to parse solver configuration: {e}") from e
