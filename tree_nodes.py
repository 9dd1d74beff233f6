from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from dataset import Point, check_feature_index
from partition import goes_left
from tree_errors import EmptyTreeError, LabelError


@dataclass(frozen=True)
class LeafNode:
    label: int

    def __post_init__(self) -> None:
        if self.label not in (0, 1):
            raise LabelError(f"leaf label is {self.label!r}; labels must be 0 or 1")


@dataclass(frozen=True)
class InternalNode:
    feature: int
    threshold: float
    left: TreeNode
    right: TreeNode


TreeNode = Union[LeafNode, InternalNode]


def predict(root: TreeNode | None, point: Point | Sequence[float] | np.ndarray) -> int:
    """Route a point from the root to a leaf and return the leaf's label."""
    if root is None:
        raise EmptyTreeError("cannot predict through an absent tree")

    features = point.features if isinstance(point, Point) else point
    n_features = len(features)

    node = root
    while isinstance(node, InternalNode):
        check_feature_index(node.feature, n_features)
        if goes_left(float(features[node.feature]), node.threshold):
            node = node.left
        else:
            node = node.right

    return node.label


def predict_batch(root: TreeNode | None, X: np.ndarray) -> np.ndarray:
    if root is None:
        raise EmptyTreeError("cannot predict through an absent tree")
    X = np.asarray(X, dtype=np.float64)
    if X.ndim == 1:
        X = X.reshape(1, -1)
    preds = np.zeros(X.shape[0], dtype=np.int64)
    for i in range(X.shape[0]):
        preds[i] = predict(root, X[i])
    return preds


def tree_depth(node: TreeNode) -> int:
    if isinstance(node, LeafNode):
        return 0
    return 1 + max(tree_depth(node.left), tree_depth(node.right))


def count_nodes(node: TreeNode) -> int:
    if isinstance(node, LeafNode):
        return 1
    return 1 + count_nodes(node.left) + count_nodes(node.right)


def count_leaves(node: TreeNode) -> int:
    if isinstance(node, LeafNode):
        return 1
    return count_leaves(node.left) + count_leaves(node.right)
