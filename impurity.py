"""Two-class Gini impurity.

Labels are {0, 1} only and class counts are a two-slot table. A multi-class
criterion replaces this module and nothing else.
"""
import numpy as np

from tree_errors import LabelError

N_CLASSES = 2


def class_counts(labels: np.ndarray) -> np.ndarray:
    """Return ``[count_0, count_1]`` for a label vector."""
    labels = np.asarray(labels)
    zeros = int(np.count_nonzero(labels == 0))
    ones = int(np.count_nonzero(labels == 1))
    if zeros + ones != labels.size:
        raise LabelError("labels must be 0 or 1")
    return np.array([zeros, ones], dtype=np.int64)


def gini_impurity(labels: np.ndarray) -> float:
    """``1 - sum_c (count_c / n)^2``; an empty set scores 0.0."""
    n = np.asarray(labels).size
    if n == 0:
        return 0.0
    p = class_counts(labels) / float(n)
    return float(1.0 - np.sum(p * p))


def weighted_impurity(labels: np.ndarray, left_mask: np.ndarray) -> float:
    """Size-weighted Gini of the two sides of a prospective split."""
    labels = np.asarray(labels)
    n = labels.size
    if n == 0:
        return 0.0

    left = labels[left_mask]
    right = labels[~left_mask]
    return gini_impurity(left) * (left.size / float(n)) + gini_impurity(right) * (
        right.size / float(n)
    )


def majority_label(labels: np.ndarray) -> int:
    """Majority class, ties going to 0."""
    counts = class_counts(labels)
    return 0 if counts[0] >= counts[1] else 1
