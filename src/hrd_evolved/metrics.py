from collections.abc import Iterable

import numpy as np


def _as_set_array(items: Iterable[str]) -> np.ndarray:
    return np.array(sorted(set(items)), dtype=str)


def true_positives(relevant: Iterable[str], retrieved: Iterable[str]) -> int:
    """Number of distinct retrieved items that are relevant."""
    retrieved_arr = _as_set_array(retrieved)
    if retrieved_arr.size == 0:
        return 0
    return int(np.isin(retrieved_arr, _as_set_array(relevant)).sum())


def precision(relevant: Iterable[str], retrieved: Iterable[str]) -> float:
    """
    Computes precision of a set of assigned items.

    Args:
        relevant: Reference items (tokens or ontology terms).
        retrieved: Assigned items.

    Returns:
        Fraction of distinct assigned items that are relevant (0.0 if nothing was assigned).
    """
    retrieved = set(retrieved)
    if not retrieved:
        return 0.0
    return true_positives(relevant, retrieved) / len(retrieved)


def recall(relevant: Iterable[str], retrieved: Iterable[str]) -> float:
    """
    Computes recall of a set of assigned items.

    Args:
        relevant: Reference items.
        retrieved: Assigned items.

    Returns:
        Fraction of distinct reference items that were assigned (0.0 for an empty reference).
    """
    relevant = set(relevant)
    if not relevant:
        return 0.0
    return true_positives(relevant, retrieved) / len(relevant)


def f_measure(relevant: Iterable[str], retrieved: Iterable[str], beta: float = 1.0) -> float:
    """
    Computes the F-beta score of assigned vs. reference items.

        F = (1 + beta^2) * P * R / (beta^2 * P + R)

    Args:
        relevant: Reference items.
        retrieved: Assigned items.
        beta: Weight of recall relative to precision.

    Returns:
        F-beta score, 0.0 when precision and recall are both 0.
    """
    relevant, retrieved = set(relevant), set(retrieved)
    p = precision(relevant, retrieved)
    r = recall(relevant, retrieved)
    denominator = beta**2 * p + r
    if denominator == 0:
        return 0.0
    return (1 + beta**2) * p * r / denominator


def true_positive_rate(relevant: Iterable[str], retrieved: Iterable[str]) -> float:
    """TP / |relevant|; the recall of the assignment."""
    return recall(relevant, retrieved)


def false_positive_rate(
    relevant: Iterable[str], retrieved: Iterable[str], universe: Iterable[str]
) -> float:
    """
    Computes FP / |negatives|.

    Args:
        relevant: Reference items.
        retrieved: Assigned items.
        universe: All items that could have been assigned; those not relevant are the negatives.

    Returns:
        False positive rate (0.0 if there are no negatives).
    """
    relevant = set(relevant)
    negatives = set(universe) - relevant
    if not negatives:
        return 0.0
    false_positives = set(retrieved) - relevant
    return len(false_positives & negatives) / len(negatives)


def mean(values: list[float]) -> float:
    """Mean of per-entity scores, 0.0 for an empty list."""
    if not values:
        return 0.0
    return float(np.mean(values))
