"""
Configuration for below-MDL imputation runs.

Supports YAML and JSON config files; keyword overrides always win over
file values.

Example YAML:

    imputation:
      inner_iters: 50
      outer_cycles: 10
      seed: 20240611
      penalty_mix: [0.1, 0.5, 0.9, 1.0]
      fallback_spread: 1.0
"""

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from mdlimpute.impute.predictors import DEFAULT_PENALTY_MIX, PREDICTORS, Predictor, make_predictor

__all__ = ['ImputationConfig', 'load_config', 'config_from_dict']


@dataclass
class ImputationConfig:
    """
    Options recognized by the GSimp imputation engine.

    Attributes:
        inner_iters: Refit rounds per column per sweep
        outer_cycles: Number of full sweeps over the censored columns
        seed: RNG seed for reproducibility (None = fresh entropy)
        penalty_mix: Elastic-net L1/L2 balances searched by CV
        fallback_spread: Spread used for zero-variance columns during scaling;
            None makes such columns an error
        predictor: Regression family for the Gibbs step ("elastic_net", "random_forest")
        n_alphas: Penalty strengths on the elastic-net path
        cv_folds: Folds for the elastic-net CV
        max_iter: Coordinate-descent iteration cap
        tune_sigma: Spread multiplier for the QRILC initializer draws
        tol: Early-stop threshold on censored-cell mean changes between sweeps
    """
    inner_iters: int = 50
    outer_cycles: int = 10
    seed: Optional[int] = None
    penalty_mix: Tuple[float, ...] = field(default_factory=lambda: DEFAULT_PENALTY_MIX)
    fallback_spread: Optional[float] = 1.0
    predictor: str = "elastic_net"
    n_alphas: int = 20
    cv_folds: int = 5
    max_iter: int = 5000
    tune_sigma: float = 1.0
    tol: Optional[float] = None

    def __post_init__(self):
        self.penalty_mix = tuple(float(r) for r in self.penalty_mix)

    def validate(self) -> List[str]:
        """Return a list of problems (empty list = valid)."""
        errors: List[str] = []
        if self.inner_iters < 1:
            errors.append(f"inner_iters must be >= 1, got {self.inner_iters}")
        if self.outer_cycles < 1:
            errors.append(f"outer_cycles must be >= 1, got {self.outer_cycles}")
        if not self.penalty_mix:
            errors.append("penalty_mix must contain at least one value")
        elif any(not (0.0 < r <= 1.0) for r in self.penalty_mix):
            errors.append(f"penalty_mix values must be in (0, 1], got {self.penalty_mix}")
        if self.fallback_spread is not None and self.fallback_spread <= 0:
            errors.append(f"fallback_spread must be positive, got {self.fallback_spread}")
        if self.predictor not in PREDICTORS:
            errors.append(f"predictor must be one of {sorted(PREDICTORS)}, got '{self.predictor}'")
        if self.n_alphas < 1:
            errors.append(f"n_alphas must be >= 1, got {self.n_alphas}")
        if self.cv_folds < 2:
            errors.append(f"cv_folds must be >= 2, got {self.cv_folds}")
        if self.tune_sigma <= 0:
            errors.append(f"tune_sigma must be positive, got {self.tune_sigma}")
        if self.tol is not None and self.tol <= 0:
            errors.append(f"tol must be positive if specified, got {self.tol}")
        return errors

    def replace(self, **overrides: Any) -> "ImputationConfig":
        """
        Return a copy with ``overrides`` applied.

        Raises:
            ValueError: If an override names an unknown option
        """
        _check_keys(overrides)
        return dataclasses.replace(self, **overrides)

    def make_predictor(self) -> Predictor:
        """Build the predictor named by ``predictor``."""
        if self.predictor == "elastic_net":
            return make_predictor(
                "elastic_net",
                penalty_mix=self.penalty_mix,
                n_alphas=self.n_alphas,
                cv_folds=self.cv_folds,
                max_iter=self.max_iter,
            )
        return make_predictor(self.predictor)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable view, used for provenance in Transform params."""
        d = dataclasses.asdict(self)
        d['penalty_mix'] = list(self.penalty_mix)
        return d


def _check_keys(values: Dict[str, Any]) -> None:
    known = {f.name for f in dataclasses.fields(ImputationConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(
            f"Unknown imputation option(s): {unknown}. Known options: {sorted(known)}"
        )


def config_from_dict(values: Dict[str, Any]) -> ImputationConfig:
    """
    Build an ImputationConfig from a mapping.

    A top-level ``imputation`` mapping is unwrapped if present.

    Raises:
        ValueError: On unknown keys or invalid values
    """
    if 'imputation' in values and isinstance(values['imputation'], dict):
        values = values['imputation']

    _check_keys(values)
    config = ImputationConfig(**values)

    errors = config.validate()
    if errors:
        raise ValueError(
            "Invalid imputation config:\n" + "\n".join(f"  - {err}" for err in errors)
        )
    return config


def load_config(config_path: Path) -> ImputationConfig:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Validated ImputationConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("gsimp.yaml"))
        >>> config.outer_cycles
        10
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                raw = yaml.safe_load(f)
            elif suffix == '.json':
                raw = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if raw is None:
        return ImputationConfig()

    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config_from_dict(raw)
