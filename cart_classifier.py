from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from dataset import Dataset
from split_search import DEFAULT_N_WORKERS
from tree_builder import TreeBuilder, TreeBuilderParams
from tree_nodes import TreeNode, count_leaves, predict_batch, tree_depth


@dataclass
class CARTParams:
    max_depth: int = 3
    n_workers: int = DEFAULT_N_WORKERS
    split_search: str = "parallel"  # one of: parallel, sequential
    validation_mode: str = "off"  # one of: off, compare
    compare_every_n_nodes: int = 1

    def to_builder_params(self) -> TreeBuilderParams:
        return TreeBuilderParams(
            max_depth=self.max_depth,
            n_workers=self.n_workers,
            split_search=self.split_search,
            validation_mode=self.validation_mode,
            compare_every_n_nodes=self.compare_every_n_nodes,
        )


class CARTClassifier:
    """Binary Gini decision tree with an exact, optionally parallel, split search."""

    def __init__(self, params: CARTParams | None = None) -> None:
        self.params = params or CARTParams()
        # Validate eagerly so bad settings fail before any data is touched.
        self.params.to_builder_params()

        self.root_: TreeNode | None = None
        self.n_features_: int | None = None
        self.metrics: dict = {}

    def fit(self, X: np.ndarray, y: np.ndarray) -> "CARTClassifier":
        dataset = Dataset(X, y)

        builder = TreeBuilder(self.params.to_builder_params())
        self.root_ = builder.build_tree(dataset)
        self.n_features_ = dataset.n_features

        self.metrics = {
            "n_samples": len(dataset),
            "depth": tree_depth(self.root_),
            "n_leaves": count_leaves(self.root_),
            "nodes_visited": builder.metrics.nodes_visited,
            "nodes_split": builder.metrics.nodes_split,
            "candidates_evaluated": builder.metrics.candidates_evaluated,
            "split_search_time_sec": builder.metrics.split_search_time_sec,
            "compare_checked_nodes": builder.metrics.compare_checked_nodes,
            "compare_mismatches": builder.metrics.compare_mismatches,
            "node_metrics": builder.metrics.node_metrics,
        }
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        if self.root_ is None:
            raise RuntimeError("Model must be fitted before prediction")
        return predict_batch(self.root_, X)

    def score(self, X: np.ndarray, y: np.ndarray) -> float:
        y = np.asarray(y).reshape(-1)
        return float(np.mean(self.predict(X) == y))
