"""pylagfem.config
Runtime settings read from ``PYLAGFEM_*`` environment variables.
"""
import os
from dataclasses import dataclass
from functools import lru_cache


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name}={raw!r} is not a number.")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name}={raw!r} is not an integer.")


@dataclass(frozen=True)
class Settings:
    degeneracy_tol: float = 1e-12    # |det J| / prod(|J_i|) and 1/cond(M) below this are singular
    time_tol: float = 0.0            # abs tolerance of the exact-time field lookup
    dual_basis_order: int = 3
    normal_order: int = 3
    newton_maxiter: int = 50

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            degeneracy_tol=_env_float("PYLAGFEM_DEGENERACY_TOL", cls.degeneracy_tol),
            time_tol=_env_float("PYLAGFEM_TIME_TOL", cls.time_tol),
            dual_basis_order=_env_int("PYLAGFEM_DUAL_BASIS_ORDER", cls.dual_basis_order),
            normal_order=_env_int("PYLAGFEM_NORMAL_ORDER", cls.normal_order),
            newton_maxiter=_env_int("PYLAGFEM_NEWTON_MAXITER", cls.newton_maxiter),
        )


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Settings of this process, read from the environment on first use."""
    return Settings.from_env()
