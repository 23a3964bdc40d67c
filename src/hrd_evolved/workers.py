"""
Fitness evaluation of a generation, serially or in worker processes.

Evaluating one individual re-scores the whole corpus and is independent of
every other individual of the same generation. With ``max_workers > 1`` each
worker process gets its own copy of the corpus, domain table and settings
once, through the pool initializer, and only fitness results travel back.

Worker functions live at module level so child processes can unpickle them.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor

from tqdm import tqdm

from hrd_evolved.corpus import EntityCorpus
from hrd_evolved.domains import DomainTable
from hrd_evolved.evaluation import EvaluationSettings, FitnessResult, evaluate_parameters
from hrd_evolved.parameters import Parameters

logger = logging.getLogger(__name__)

_WORKER_STATE: dict = {}


def _init_worker(corpus: EntityCorpus, table: DomainTable | None, settings: EvaluationSettings) -> None:
    _WORKER_STATE["corpus"] = corpus
    _WORKER_STATE["table"] = table
    _WORKER_STATE["settings"] = settings


def _worker_evaluate(parameters: Parameters) -> FitnessResult:
    """Worker: fitness of one individual against the worker's private corpus copy."""
    return evaluate_parameters(
        parameters,
        _WORKER_STATE["corpus"],
        _WORKER_STATE["table"],
        _WORKER_STATE["settings"],
    )


class FitnessEvaluator:
    """
    Memoizes fitness on every individual passed to ``evaluate``.

    Args:
        corpus: Entities with references.
        table: Domain lookup tables (required for domain architecture scoring).
        settings: Evaluation switches.
        max_workers: Number of worker processes; 1 evaluates in-process.
        verbose: Show a progress bar per generation.
    """

    def __init__(
        self,
        corpus: EntityCorpus,
        table: DomainTable | None = None,
        settings: EvaluationSettings | None = None,
        max_workers: int = 1,
        verbose: bool = False,
    ):
        self.corpus = corpus
        self.table = table
        self.settings = settings or EvaluationSettings()
        self.max_workers = max_workers
        self.verbose = verbose
        self.evaluations = 0
        self._executor: ProcessPoolExecutor | None = None

    def __enter__(self) -> FitnessEvaluator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown()
            self._executor = None

    def _pool(self) -> ProcessPoolExecutor:
        if self._executor is None:
            logger.info("Starting %d evaluation worker processes", self.max_workers)
            self._executor = ProcessPoolExecutor(
                max_workers=self.max_workers,
                initializer=_init_worker,
                initargs=(self.corpus, self.table, self.settings),
            )
        return self._executor

    def evaluate_one(self, individual: Parameters) -> FitnessResult:
        result = evaluate_parameters(individual, self.corpus, self.table, self.settings)
        result.apply(individual)
        self.evaluations += 1
        return result

    def evaluate(self, individuals: list[Parameters], desc: str = "Evaluating") -> None:
        """Evaluates the individuals lacking a score; already scored ones are skipped."""
        pending = [individual for individual in individuals if not individual.is_evaluated]
        if not pending:
            return

        if self.max_workers <= 1 or len(pending) == 1:
            for individual in tqdm(pending, desc=desc, unit="individual", disable=not self.verbose):
                self.evaluate_one(individual)
            return

        # map() yields in submission order, so results stay reproducible
        results = self._pool().map(_worker_evaluate, pending)
        for individual, result in tqdm(
            zip(pending, results), total=len(pending), desc=desc, unit="individual", disable=not self.verbose
        ):
            result.apply(individual)
            self.evaluations += 1
