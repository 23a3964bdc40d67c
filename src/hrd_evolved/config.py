"""
Trainer configuration, loaded from a YAML file.

Example:

    population_size: 50
    number_of_generations: 100
    domain_architecture_scoring: true
    corpus: ./training_corpus.json
    parameters:
      token_score_bit_score_weight: 0.468
      token_score_database_score_weight: 0.2098
      token_score_overlap_score_weight: 0.3221
      description_score_bit_score_weight: 2.717
      blast_db_weights:
        swissprot: 653
        trembl: 904
    parameter_bounds:
      blast_db_weight: [0, 1000]
    description_blacklist: ["^uncharacterized"]
    database_filters:
      trembl:
        description_filter: ["isoform [0-9]+"]

Some defaults are read from environment variables when a configuration is
created:
    HRD_SEED=42
    HRD_MAX_WORKERS=1   # >1 evaluates individuals in worker processes
    HRD_LOG_LEVEL=INFO
"""

from __future__ import annotations

import dataclasses
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from hrd_evolved.datasets import FILTER_KEYS
from hrd_evolved.errors import ConfigurationError, ParameterRangeError
from hrd_evolved.evaluation import EvaluationSettings
from hrd_evolved.logger import resolve_level
from hrd_evolved.parameters import DEFAULT_MUTATION_STEP, Parameters, ParameterSpace

DEFAULT_SEED = 42
DEFAULT_MAX_WORKERS = 1
DEFAULT_LOG_LEVEL = "INFO"

GENERATIONAL_SURVIVAL_RATE = 0.2
GENERATIONAL_OFFSPRING_RATE = 0.2
GENERATIONAL_MUTANT_RATE = 0.2

_BOUND_KEYS = (
    "token_score_weight",
    "description_score_bit_score_weight",
    "description_score_domain_similarity_weight",
    "blast_db_weight",
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _env_int(name: str, default: int):
    def read() -> int:
        raw = os.environ.get(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be an integer", {name: raw}) from e

    return read


def _env_log_level() -> str:
    return os.environ.get("HRD_LOG_LEVEL", DEFAULT_LOG_LEVEL)


@dataclass
class TrainerConfig:
    """Complete configuration of a training run."""

    population_size: int = 50
    number_of_generations: int = 100
    survival_rate: float = GENERATIONAL_SURVIVAL_RATE
    offspring_rate: float = GENERATIONAL_OFFSPRING_RATE
    mutant_rate: float = GENERATIONAL_MUTANT_RATE
    mutation_step: float = DEFAULT_MUTATION_STEP
    seed: int = field(default_factory=_env_int("HRD_SEED", DEFAULT_SEED))
    max_workers: int = field(default_factory=_env_int("HRD_MAX_WORKERS", DEFAULT_MAX_WORKERS))

    f_measure_beta: float = 1.0
    domain_architecture_scoring: bool = False
    evaluate_ontology_annotations: bool = False

    parameters: dict[str, Any] = field(default_factory=dict)
    """Starting ("seed") parameter set, in ``Parameters.to_config_dict`` form."""

    parameter_bounds: dict[str, list[float]] = field(default_factory=dict)
    """Per field group ranges; see ``ParameterSpace``."""

    token_blacklist: list[str] = field(default_factory=list)
    description_blacklist: list[str] = field(default_factory=list)
    description_filter: list[str] = field(default_factory=list)
    database_filters: dict[str, dict[str, list[str]]] = field(default_factory=dict)
    """Per source database replacements of the three filter settings above."""

    corpus: str | None = None
    output_dir: str = "results"
    log_file: str | None = None
    log_level: str = field(default_factory=_env_log_level)
    verbose: bool = False

    def __post_init__(self) -> None:
        self.validate()

    @property
    def number_of_survivors(self) -> int:
        return round_half_up(self.population_size * self.survival_rate)

    @property
    def number_of_offspring(self) -> int:
        return round_half_up(self.population_size * self.offspring_rate)

    @property
    def number_of_mutants(self) -> int:
        return round_half_up(self.population_size * self.mutant_rate)

    @property
    def database_names(self) -> list[str]:
        return sorted(self.parameters.get("blast_db_weights", {}))

    def validate(self) -> None:
        if self.population_size < 2:
            raise ConfigurationError("population_size must be at least 2", {"population_size": self.population_size})
        if self.number_of_generations < 1:
            raise ConfigurationError(
                "number_of_generations must be positive", {"number_of_generations": self.number_of_generations}
            )
        for name in ("survival_rate", "offspring_rate", "mutant_rate"):
            rate = getattr(self, name)
            if not 0.0 < rate <= 1.0:
                raise ConfigurationError("Rate must lie in (0, 1]", {name: rate})
        if self.number_of_survivors < 1:
            raise ConfigurationError("No individual would survive a generation", {"survival_rate": self.survival_rate})
        planned = self.number_of_survivors + self.number_of_offspring + self.number_of_mutants
        if planned > self.population_size:
            raise ConfigurationError(
                "Survivors, offspring and mutants exceed the population size",
                {"planned": planned, "population_size": self.population_size},
            )
        if self.mutation_step <= 0:
            raise ConfigurationError("mutation_step must be positive", {"mutation_step": self.mutation_step})
        if not isinstance(self.seed, int):
            raise ConfigurationError("seed must be an integer", {"seed": self.seed})
        if not isinstance(self.max_workers, int):
            raise ConfigurationError("max_workers must be an integer", {"max_workers": self.max_workers})
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1", {"max_workers": self.max_workers})
        if self.f_measure_beta <= 0:
            raise ConfigurationError("f_measure_beta must be positive", {"f_measure_beta": self.f_measure_beta})
        unknown = set(self.parameter_bounds) - set(_BOUND_KEYS)
        if unknown:
            raise ConfigurationError("Unknown parameter bounds", {"keys": sorted(unknown)})
        if not self.database_names:
            raise ConfigurationError("parameters.blast_db_weights must name at least one database")
        for database, overrides in self.database_filters.items():
            if database not in self.database_names:
                raise ConfigurationError("Filters for an unconfigured database", {"database": database})
            unknown = set(overrides) - set(FILTER_KEYS)
            if unknown:
                raise ConfigurationError(
                    "Unknown filter settings", {"database": database, "keys": sorted(unknown)}
                )
        resolve_level(self.log_level)
        # Seed parameters must lie within the configured space
        self.seed_parameters()

    def parameter_space(self) -> ParameterSpace:
        bounds = {key: tuple(value) for key, value in self.parameter_bounds.items()}
        try:
            return ParameterSpace(database_names=tuple(self.database_names), **bounds)
        except (ParameterRangeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid parameter bounds: {e}") from e

    def seed_parameters(self) -> Parameters:
        try:
            return Parameters.from_config_dict(self.parameters, self.parameter_space(), origin="seed")
        except ParameterRangeError as e:
            raise ConfigurationError(f"Invalid seed parameters: {e.message}", e.details) from e

    def evaluation_settings(self) -> EvaluationSettings:
        return EvaluationSettings(
            f_measure_beta=self.f_measure_beta,
            domain_architecture_scoring=self.domain_architecture_scoring,
            evaluate_ontology_annotations=self.evaluate_ontology_annotations,
        )

    def with_parameters(self, parameters: Parameters) -> TrainerConfig:
        """Copy of this configuration using ``parameters`` as its parameter set."""
        return dataclasses.replace(self, parameters=parameters.to_config_dict())

    def to_dict(self) -> dict[str, Any]:
        """Serialize config to dict for logging and output."""
        return dataclasses.asdict(self)


def load_config(path: str | Path) -> TrainerConfig:
    """Reads a YAML trainer configuration. Relative paths are resolved against its directory."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration: {e}", {"path": str(path)}) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML: {e}", {"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping", {"path": str(path)})
    known = {f.name for f in dataclasses.fields(TrainerConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError("Unknown configuration keys", {"keys": sorted(unknown)})

    for key in ("corpus", "output_dir", "log_file"):
        if data.get(key) and not Path(data[key]).is_absolute():
            data[key] = str(path.parent / data[key])
    return TrainerConfig(**data)
