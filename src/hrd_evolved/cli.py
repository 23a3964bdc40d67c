"""
Train description scoring parameters with a genetic algorithm.

Usage:
    hrd-train trainer.yml
    hrd-train trainer.yml --generations 20 --max-workers 8 --verbose
"""

from __future__ import annotations

import argparse
import dataclasses
import sys

from hrd_evolved.config import load_config
from hrd_evolved.datasets import load_corpus
from hrd_evolved.errors import ConfigurationError, HrdError
from hrd_evolved.logger import setup_logger
from hrd_evolved.output import GeneticTrainerOutputWriter
from hrd_evolved.trainer import GeneticTrainer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Genetic training of description scoring parameters"
    )
    parser.add_argument("config", type=str, help="Trainer configuration (YAML)")
    parser.add_argument(
        "--generations", type=int, default=None, help="Override number_of_generations"
    )
    parser.add_argument(
        "--max-workers", type=int, default=None, help="Override max_workers (1 = in-process)"
    )
    parser.add_argument(
        "--output", type=str, default=None, help="Override output_dir"
    )
    parser.add_argument("--verbose", action="store_true", help="Progress bars and debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        overrides = {
            "number_of_generations": args.generations,
            "max_workers": args.max_workers,
            "output_dir": args.output,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if args.verbose:
            overrides.update(verbose=True, log_level="DEBUG")
        config = dataclasses.replace(config, **overrides)

        logger = setup_logger(level=config.log_level, file=config.log_file)
        if not config.corpus:
            raise ConfigurationError("No corpus configured")
        corpus, table = load_corpus(
            config.corpus,
            token_blacklist=config.token_blacklist,
            description_blacklist=config.description_blacklist,
            description_filter=config.description_filter,
            database_filters=config.database_filters,
        )
        logger.info("Loaded %d entities, %d domain weights", len(corpus), len(table))

        writer = GeneticTrainerOutputWriter(config.output_dir, config.database_names)
        trainer = GeneticTrainer(config, corpus, table, writer=writer)
        best = trainer.run()
    except HrdError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    logger.info(
        "Best parameters (score %.4f) found in generation %d",
        best.avg_evaluation_score,
        trainer.generation_best_parameters_were_found_in,
    )
    print(f"Logged path through parameter and score space into:\n{writer.path_log}")
    print(f"Written output into:\n{writer.final_output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
