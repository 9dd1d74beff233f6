from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
import time
from typing import Iterable

import numpy as np

from dataset import Dataset
from impurity import weighted_impurity
from partition import partition_mask

logger = logging.getLogger(__name__)

DEFAULT_N_WORKERS = 2

# Weighted Gini never exceeds 0.5, so any real candidate beats this baseline.
NO_SPLIT_IMPURITY = 1.0


@dataclass(frozen=True)
class SplitCandidate:
    feature: int
    threshold: float
    impurity: float

    def beats(self, other: SplitCandidate | None) -> bool:
        """Whether this candidate wins against ``other`` in feature-ascending scan order.

        Exact impurity ties go to the lower feature index, which is the
        candidate a single sequential scan would have met first.
        """
        if other is None:
            return self.impurity < NO_SPLIT_IMPURITY
        if self.impurity != other.impurity:
            return self.impurity < other.impurity
        return self.feature < other.feature


@dataclass
class SplitSearchMetrics:
    candidates_evaluated: int = 0
    n_workers: int = 0  # 0 means the in-thread sequential scan
    features_per_worker: list[int] = field(default_factory=list)
    time_spent_sec: float = 0.0


@dataclass
class SplitSearchResult:
    candidate: SplitCandidate | None
    metrics: SplitSearchMetrics

    @property
    def split(self) -> tuple[int, float] | None:
        if self.candidate is None:
            return None
        return self.candidate.feature, self.candidate.threshold


def scan_features(
    X: np.ndarray,
    y: np.ndarray,
    features: Iterable[int],
) -> tuple[SplitCandidate | None, int]:
    """Try every observed value of every listed feature as a threshold.

    Features are visited in the given order and points in row order; the best
    candidate only changes on a strict improvement, so the first of several
    equal candidates is kept. Returns the local best (None when nothing beats
    the no-split baseline) and the number of candidates evaluated.
    """
    best: SplitCandidate | None = None
    best_impurity = NO_SPLIT_IMPURITY
    evaluated = 0

    for feature in features:
        column = X[:, feature]
        for i in range(column.shape[0]):
            threshold = float(column[i])
            left_mask = partition_mask(X, feature, threshold)
            impurity = weighted_impurity(y, left_mask)
            evaluated += 1
            if impurity < best_impurity:
                best_impurity = impurity
                best = SplitCandidate(feature=int(feature), threshold=threshold, impurity=impurity)

    return best, evaluated


class SplitSearch:
    """Exhaustive (feature, threshold) search for one node.

    With ``n_workers=None`` the scan runs in the calling thread. Otherwise the
    feature axis is dealt out in strides (worker ``w`` owns features
    ``w, w + W, w + 2W, ...``) to a thread pool created for this call only;
    all workers are joined before their local bests are reduced in worker
    order. Workers share the dataset read-only and each returns its own
    result, so no locking is involved.
    """

    def __init__(self, dataset: Dataset, n_workers: int | None = None) -> None:
        if n_workers is not None and n_workers < 1:
            raise ValueError("n_workers must be a positive integer")
        self.dataset = dataset
        self.n_workers = None if n_workers is None else int(n_workers)

    def worker_features(self, worker: int) -> range:
        assert self.n_workers is not None
        return range(worker, self.dataset.n_features, self.n_workers)

    def _search_sequential(self, metrics: SplitSearchMetrics) -> SplitCandidate | None:
        candidate, evaluated = scan_features(
            self.dataset.X, self.dataset.y, range(self.dataset.n_features)
        )
        metrics.candidates_evaluated = evaluated
        metrics.features_per_worker = [self.dataset.n_features]
        return candidate

    def _search_parallel(self, metrics: SplitSearchMetrics) -> SplitCandidate | None:
        assert self.n_workers is not None
        X, y = self.dataset.X, self.dataset.y
        slots = [self.worker_features(w) for w in range(self.n_workers)]

        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            futures = [executor.submit(scan_features, X, y, features) for features in slots]
            local_results = [future.result() for future in futures]

        best: SplitCandidate | None = None
        for local_best, evaluated in local_results:
            metrics.candidates_evaluated += evaluated
            if local_best is not None and local_best.beats(best):
                best = local_best

        metrics.features_per_worker = [len(features) for features in slots]
        return best

    def search(self) -> SplitSearchResult:
        start = time.perf_counter()
        metrics = SplitSearchMetrics(n_workers=self.n_workers or 0)

        if len(self.dataset) == 0 or self.dataset.n_features == 0:
            candidate = None
        elif self.n_workers is None:
            candidate = self._search_sequential(metrics)
        else:
            candidate = self._search_parallel(metrics)

        metrics.time_spent_sec = time.perf_counter() - start
        logger.debug(
            "split search n=%d d=%d workers=%d evaluated=%d -> %s",
            len(self.dataset),
            self.dataset.n_features,
            metrics.n_workers,
            metrics.candidates_evaluated,
            candidate,
        )
        return SplitSearchResult(candidate=candidate, metrics=metrics)


def find_best_split(dataset: Dataset) -> tuple[int, float] | None:
    """Best (feature, threshold) by a single sequential scan, or None."""
    return SplitSearch(dataset).search().split


def find_best_split_parallel(
    dataset: Dataset,
    n_workers: int = DEFAULT_N_WORKERS,
) -> tuple[int, float] | None:
    """Same result as :func:`find_best_split`, with the features spread over workers."""
    return SplitSearch(dataset, n_workers=n_workers).search().split
