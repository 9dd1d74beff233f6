import numpy as np

from dataset import Dataset, check_feature_index

# Points whose value equals the threshold must fall on the left even though the
# predicate is a strict less-than. Training and prediction share this constant.
SPLIT_TOLERANCE = 0.0001


def goes_left(value: float, threshold: float) -> bool:
    return value < threshold + SPLIT_TOLERANCE


def partition_mask(X: np.ndarray, feature: int, threshold: float) -> np.ndarray:
    """Boolean mask of the rows of X routed to the left child."""
    check_feature_index(feature, X.shape[1])
    return X[:, feature] < threshold + SPLIT_TOLERANCE


def partition(dataset: Dataset, feature: int, threshold: float) -> tuple[Dataset, Dataset]:
    """Split a dataset into independent (left, right) copies, order preserved."""
    left_mask = partition_mask(dataset.X, feature, threshold)
    return dataset.subset(left_mask), dataset.subset(~left_mask)
