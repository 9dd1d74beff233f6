from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

import numpy as np

from impurity import class_counts
from tree_errors import DimensionMismatchError, FeatureIndexError, LabelError


def check_labels(y: np.ndarray) -> None:
    """Raise LabelError unless every entry of y is exactly 0 or 1."""
    bad = (y != 0) & (y != 1)
    if np.any(bad):
        row = int(np.flatnonzero(bad)[0])
        raise LabelError(f"label at row {row} is {y[row]!r}; labels must be 0 or 1")


def check_feature_index(feature: int, n_features: int) -> None:
    # Negative indices would silently wrap in numpy.
    if not 0 <= feature < n_features:
        raise FeatureIndexError(
            f"feature index {feature} out of range for {n_features} features"
        )


@dataclass(frozen=True)
class Point:
    features: tuple[float, ...]
    label: int

    def __post_init__(self) -> None:
        if self.label not in (0, 1):
            raise LabelError(f"label is {self.label!r}; labels must be 0 or 1")
        object.__setattr__(self, "features", tuple(float(v) for v in self.features))
        object.__setattr__(self, "label", int(self.label))

    @property
    def n_features(self) -> int:
        return len(self.features)


class Dataset:
    """Validated, read-only collection of labeled points.

    Features live in an (n, D) float64 matrix and labels in an int64 vector.
    Both arrays are copies owned by the dataset and flagged read-only, so a
    dataset can be shared with concurrent search workers without locking.
    Subsets are always fresh copies, never views into the parent.
    """

    def __init__(self, X: np.ndarray, y: np.ndarray) -> None:
        try:
            X = np.array(X, dtype=np.float64)
        except ValueError as e:
            raise DimensionMismatchError(
                "X rows must all have the same number of features"
            ) from e
        y = np.array(y)
        if X.ndim != 2:
            raise DimensionMismatchError("X must be a 2D array")
        if y.ndim != 1 or y.shape[0] != X.shape[0]:
            raise DimensionMismatchError(
                "y must be a 1D array with the same number of rows as X"
            )
        check_labels(y)
        self._set_arrays(X, y.astype(np.int64))

    def _set_arrays(self, X: np.ndarray, y: np.ndarray) -> None:
        X.setflags(write=False)
        y.setflags(write=False)
        self.X = X
        self.y = y

    @classmethod
    def _from_trusted(cls, X: np.ndarray, y: np.ndarray) -> Dataset:
        dataset = cls.__new__(cls)
        dataset._set_arrays(X, y)
        return dataset

    @classmethod
    def from_points(cls, points: Iterable[Point], n_features: int | None = None) -> Dataset:
        points = list(points)
        if not points:
            return cls(np.empty((0, n_features or 0)), np.empty(0, dtype=np.int64))

        dim = points[0].n_features if n_features is None else n_features
        for i, point in enumerate(points):
            if point.n_features != dim:
                raise DimensionMismatchError(
                    f"point {i} has {point.n_features} features, expected {dim}"
                )

        X = np.array([point.features for point in points], dtype=np.float64).reshape(
            len(points), dim
        )
        y = np.array([point.label for point in points], dtype=np.int64)
        return cls._from_trusted(X, y)

    @property
    def n_samples(self) -> int:
        return int(self.X.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.X.shape[1])

    def __len__(self) -> int:
        return self.n_samples

    def __getitem__(self, idx: int) -> Point:
        return Point(tuple(self.X[idx]), int(self.y[idx]))

    def __iter__(self) -> Iterator[Point]:
        for i in range(self.n_samples):
            yield self[i]

    def __repr__(self) -> str:
        return f"Dataset(n_samples={self.n_samples}, n_features={self.n_features})"

    def class_counts(self) -> np.ndarray:
        return class_counts(self.y)

    def subset(self, mask: np.ndarray) -> Dataset:
        """Copy out the rows selected by a boolean mask, keeping their order."""
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (self.n_samples,):
            raise DimensionMismatchError("mask must have one entry per point")
        return Dataset._from_trusted(self.X[mask], self.y[mask])


def load_dataset(features_path: str | Path, labels_path: str | Path) -> Dataset:
    """Load a feature CSV (one header row) and a whitespace-separated label file."""
    X = np.loadtxt(features_path, delimiter=",", skiprows=1, ndmin=2, dtype=np.float64)
    # Labels are a free-form whitespace-separated stream of integer tokens.
    tokens = Path(labels_path).read_text().split()
    try:
        y = np.array(tokens, dtype=np.int64)
    except ValueError as e:
        raise LabelError(f"{labels_path} holds a non-integer label token") from e

    if X.shape[0] != y.shape[0]:
        raise DimensionMismatchError(
            f"{features_path} has {X.shape[0]} rows but {labels_path} has {y.shape[0]} labels"
        )
    return Dataset(X, y)
