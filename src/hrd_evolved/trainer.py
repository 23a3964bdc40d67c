"""
Genetic algorithm search for description scoring parameters.

Each generation:

1. Evaluate every individual that has no fitness yet.
2. Survival of the fittest: keep the top ``number_of_survivors``.
3. Recombine pairs of survivors into ``number_of_offspring`` children.
4. Add ``number_of_mutants`` mutated survivors, plus one more for every
   offspring place a converged recombination left empty.
5. Fill the rest of the population with random parameter sets.
6. Remember the best individual seen so far and the generation it was found in.

Parents and mutation templates are drawn with a strong bias towards the fitter
survivors (see ``population.rank_biased_choice``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from hrd_evolved.config import TrainerConfig
from hrd_evolved.corpus import EntityCorpus
from hrd_evolved.domains import DomainTable
from hrd_evolved.errors import ConfigurationError, HrdError, TrainingAborted
from hrd_evolved.evaluation import avg_max_evaluation_score, avg_max_go_f_score
from hrd_evolved.output import TrainerOutput
from hrd_evolved.parameters import Parameters
from hrd_evolved.population import Population, rank_biased_choice
from hrd_evolved.workers import FitnessEvaluator

logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    """What happened in one generation."""

    generation: int
    best_score: float
    diff_to_last_generation: float
    best_origin: str
    survivors: int
    offspring: int
    mutants: int
    population_size: int


class GeneticTrainer:
    """
    Args:
        config: Trainer configuration; provides the seed parameters and all rates.
        corpus: Entities with their references.
        table: Domain lookup tables, required for domain architecture scoring.
        writer: Receives progress and final results; optional.
        rng: Random generator; defaults to one seeded with ``config.seed``.
    """

    def __init__(
        self,
        config: TrainerConfig,
        corpus: EntityCorpus,
        table: DomainTable | None = None,
        writer: TrainerOutput | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config
        self.corpus = corpus
        self.table = table
        self.writer = writer
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)
        self.space = config.parameter_space()
        self.evaluator = FitnessEvaluator(
            corpus,
            table,
            config.evaluation_settings(),
            max_workers=config.max_workers,
            verbose=config.verbose,
        )
        self.population = Population()
        self.best_parameters: Parameters | None = None
        self.generation_best_parameters_were_found_in: int | None = None
        self.history: list[GenerationReport] = []

    @property
    def number_of_survivors(self) -> int:
        return self.config.number_of_survivors

    @property
    def number_of_offspring(self) -> int:
        return self.config.number_of_offspring

    @property
    def number_of_mutants(self) -> int:
        return self.config.number_of_mutants

    # ------------------------------------------------------------------
    # Generation steps
    # ------------------------------------------------------------------

    def initialize_population(self) -> None:
        """The configured seed parameters plus random individuals."""
        self.population = Population()
        seed = self.config.seed_parameters()
        seed.origin = "seed"
        self.population.add(seed)
        self.refill()

    def refill(self) -> None:
        """Adds random individuals until the population is complete."""
        attempts = 0
        limit = 100 * self.config.population_size
        while len(self.population) < self.config.population_size:
            if attempts >= limit:
                raise ConfigurationError(
                    "Parameter space too narrow to fill the population with distinct individuals",
                    {"population_size": self.config.population_size, "members": len(self.population)},
                )
            attempts += 1
            self.population.add(Parameters.random(self.space, self.rng))

    def recombine_survivors(self, survivors: list[Parameters]) -> int:
        """
        Adds children of rank-biased pairs of distinct survivors.

        Gives up after ``3 * number_of_offspring`` attempts: by then the
        survivors are too similar to one another to yield new parameter sets.
        Returns the number of children added.
        """
        if len(survivors) < 2:
            logger.info("Fewer than two survivors, skipping recombination")
            return 0
        added = attempts = 0
        while added < self.number_of_offspring:
            if attempts >= 3 * self.number_of_offspring:
                logger.info(
                    "Recombination converged after %d attempts (%d of %d offspring)",
                    attempts, added, self.number_of_offspring,
                )
                break
            attempts += 1
            mama = rank_biased_choice(survivors, self.rng)
            papa = rank_biased_choice(survivors, self.rng)
            while papa is mama:
                papa = rank_biased_choice(survivors, self.rng)
            if self.population.add(mama.recombine(papa, self.rng)) is not None:
                added += 1
        return added

    def mutate_survivors(self, survivors: list[Parameters], offspring: int | None = None) -> int:
        """
        Adds mutants of rank-biased survivors. Returns the number added.

        Offspring places left empty by a converged recombination (``offspring``
        children added out of ``number_of_offspring``) are filled with
        additional mutants.
        """
        offspring = self.number_of_offspring if offspring is None else offspring
        target = self.number_of_mutants + max(self.number_of_offspring - offspring, 0)
        added = attempts = 0
        while added < target and attempts < 3 * target:
            attempts += 1
            mutant = rank_biased_choice(survivors, self.rng).neighbour(self.rng, self.config.mutation_step)
            if self.population.add(mutant) is not None:
                added += 1
        return added

    def track_best(self, generation: int, fittest: Parameters) -> float:
        """Remembers ``fittest`` if it beats every earlier generation. Returns the score delta."""
        diff = 0.0
        if self.best_parameters is not None:
            diff = fittest.avg_evaluation_score - self.best_parameters.avg_evaluation_score
        if self.best_parameters is None or fittest.avg_evaluation_score > self.best_parameters.avg_evaluation_score:
            self.best_parameters = fittest.clone(keep_scores=True)
            self.generation_best_parameters_were_found_in = generation
        return diff

    def run_generation(self, generation: int) -> GenerationReport:
        self.evaluator.evaluate(
            self.population.unevaluated(),
            desc=f"Generation {generation}/{self.config.number_of_generations}",
        )

        survivors = self.population.truncate(self.number_of_survivors)
        offspring = self.recombine_survivors(survivors)
        mutants = self.mutate_survivors(survivors, offspring)
        self.refill()

        diff = self.track_best(generation, survivors[0])
        best = self.best_parameters
        report = GenerationReport(
            generation=generation,
            best_score=best.avg_evaluation_score,
            diff_to_last_generation=diff,
            best_origin=best.origin,
            survivors=len(survivors),
            offspring=offspring,
            mutants=mutants,
            population_size=len(self.population),
        )
        self.history.append(report)
        logger.info(
            "Generation %d/%d: best %.4f (%+.4f, %s)",
            generation, self.config.number_of_generations, best.avg_evaluation_score, diff, best.origin,
        )
        if self.writer is not None:
            self.writer.write_generation(generation, best, diff, best.origin)
        return report

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def train(self) -> Parameters:
        """
        Runs all generations and returns the best parameters found.

        Any error while scoring the corpus aborts the run: a partially
        evaluated population cannot be ranked.
        """
        self.best_parameters = None
        self.generation_best_parameters_were_found_in = None
        self.history = []
        try:
            with self.evaluator:
                self.initialize_population()
                for generation in range(1, self.config.number_of_generations + 1):
                    self.run_generation(generation)
        except HrdError as e:
            logger.error("Training aborted: %s", e)
            raise TrainingAborted(f"Training aborted: {e.message}", e.details) from e
        return self.best_parameters

    def run(self) -> Parameters:
        """Train, then report the best parameters next to the best achievable scores."""
        settings = self.config.evaluation_settings()
        try:
            avg_max = avg_max_evaluation_score(self.corpus, settings.f_measure_beta)
            avg_max_go = (
                avg_max_go_f_score(self.corpus, settings.f_measure_beta)
                if settings.evaluate_ontology_annotations
                else None
            )
        except HrdError as e:
            logger.error("Training aborted: %s", e)
            raise TrainingAborted(f"Training aborted: {e.message}", e.details) from e
        logger.info("Average maximum evaluation score: %.4f", avg_max)

        best = self.train()
        if self.writer is not None:
            self.writer.write_final(best, avg_max, self.generation_best_parameters_were_found_in, avg_max_go)
        return best
