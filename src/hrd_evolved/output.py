"""Progress log and final result files of a training run."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from hrd_evolved.parameters import SCALAR_FIELDS, Parameters

logger = logging.getLogger(__name__)


class TrainerOutput(Protocol):
    """What the genetic trainer reports to while it runs."""

    def write_generation(
        self, generation: int, best: Parameters, diff_to_last_generation: float, origin: str
    ) -> None: ...

    def write_final(
        self,
        best: Parameters,
        avg_max_evaluation_score: float,
        generation_found_in: int,
        avg_max_go_f_score: float | None = None,
    ) -> None: ...


def _fmt(value: float | None) -> str:
    return "NA" if value is None else f"{value:.6f}"


class GeneticTrainerOutputWriter:
    """
    Writes one tab-separated row per generation and a final JSON document.

    Args:
        output_dir: Directory for ``generations.tsv`` and ``best_parameters.json``.
        database_names: Sorted database names (columns of the progress log).
    """

    def __init__(self, output_dir: str | Path, database_names: list[str]):
        self.output_dir = Path(output_dir)
        self.database_names = list(database_names)
        self.path_log = self.output_dir / "generations.tsv"
        self.final_output = self.output_dir / "best_parameters.json"
        self._header_written = False

    def _header(self) -> list[str]:
        return (
            ["generation", "avg_evaluation_score", "avg_true_positive_rate", "avg_false_positive_rate",
             "diff_to_last_generation", "origin"]
            + list(SCALAR_FIELDS)
            + [f"{db}_weight" for db in self.database_names]
        )

    def write_generation(
        self, generation: int, best: Parameters, diff_to_last_generation: float, origin: str
    ) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        mode = "a" if self._header_written else "w"
        with open(self.path_log, mode) as f:
            if not self._header_written:
                f.write("\t".join(self._header()) + "\n")
                self._header_written = True
            row = [
                str(generation),
                _fmt(best.avg_evaluation_score),
                _fmt(best.avg_true_positive_rate),
                _fmt(best.avg_false_positive_rate),
                _fmt(diff_to_last_generation),
                origin,
            ] + [_fmt(value) for _, value in best.items()]
            f.write("\t".join(row) + "\n")

    def write_final(
        self,
        best: Parameters,
        avg_max_evaluation_score: float,
        generation_found_in: int,
        avg_max_go_f_score: float | None = None,
    ) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output = {
            "parameters": best.to_config_dict(),
            "origin": best.origin,
            "avg_evaluation_score": best.avg_evaluation_score,
            "avg_true_positive_rate": best.avg_true_positive_rate,
            "avg_false_positive_rate": best.avg_false_positive_rate,
            "avg_go_f_score": best.avg_go_f_score,
            "avg_max_evaluation_score": avg_max_evaluation_score,
            "avg_max_go_f_score": avg_max_go_f_score,
            "generation_found_in": generation_found_in,
        }
        with open(self.final_output, "w") as f:
            json.dump(output, f, indent=2)
        logger.info("Best parameters written to %s", self.final_output)
