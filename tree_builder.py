from __future__ import annotations

from dataclasses import dataclass, field
import logging

from dataset import Dataset
from impurity import majority_label
from partition import partition
from split_search import DEFAULT_N_WORKERS, SplitSearch, SplitSearchResult
from tree_errors import EmptyDatasetError, TreeInvariantError
from tree_nodes import InternalNode, LeafNode, TreeNode, count_leaves

logger = logging.getLogger(__name__)


@dataclass
class TreeBuildMetrics:
    nodes_visited: int = 0
    nodes_split: int = 0
    leaves: int = 0
    candidates_evaluated: int = 0
    split_search_time_sec: float = 0.0
    compare_checked_nodes: int = 0
    compare_mismatches: int = 0
    node_metrics: list[dict] = field(default_factory=list)


@dataclass
class TreeBuilderParams:
    max_depth: int = 3
    n_workers: int = DEFAULT_N_WORKERS

    split_search: str = "parallel"  # one of: parallel, sequential
    validation_mode: str = "off"  # one of: off, compare
    compare_every_n_nodes: int = 1

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.n_workers < 1:
            raise ValueError("n_workers must be a positive integer")
        if self.split_search not in {"parallel", "sequential"}:
            raise ValueError("split_search must be one of: parallel, sequential")
        if self.validation_mode not in {"off", "compare"}:
            raise ValueError("validation_mode must be one of: off, compare")


class TreeBuilder:
    """Grows a binary Gini tree by recursive partitioning.

    Each call owns the dataset it is handed; partitioning gives each child a
    fresh copy, so sibling subtrees never share storage and only the split
    search itself runs concurrently.
    """

    def __init__(self, params: TreeBuilderParams | None = None) -> None:
        self.params = params or TreeBuilderParams()
        self.metrics = TreeBuildMetrics()
        self._node_counter = 0

    def _workers_for(self, split_search: str) -> int | None:
        return self.params.n_workers if split_search == "parallel" else None

    def _find_best_split(self, dataset: Dataset, depth: int) -> SplitSearchResult:
        self._node_counter += 1
        result = SplitSearch(dataset, self._workers_for(self.params.split_search)).search()

        self.metrics.candidates_evaluated += result.metrics.candidates_evaluated
        self.metrics.split_search_time_sec += result.metrics.time_spent_sec

        if (
            self.params.validation_mode == "compare"
            and self.params.compare_every_n_nodes > 0
            and self._node_counter % self.params.compare_every_n_nodes == 0
        ):
            self.metrics.compare_checked_nodes += 1
            other = "sequential" if self.params.split_search == "parallel" else "parallel"
            reference = SplitSearch(dataset, self._workers_for(other)).search()
            if result.split != reference.split:
                self.metrics.compare_mismatches += 1
                logger.warning(
                    "split search mismatch at depth %d: %s=%s %s=%s",
                    depth,
                    self.params.split_search,
                    result.candidate,
                    other,
                    reference.candidate,
                )

        self.metrics.node_metrics.append(
            {
                "depth": depth,
                "node_size": len(dataset),
                "candidates_evaluated": result.metrics.candidates_evaluated,
                "features_per_worker": result.metrics.features_per_worker,
                "impurity": None if result.candidate is None else result.candidate.impurity,
            }
        )
        return result

    def _leaf(self, label: int) -> LeafNode:
        self.metrics.leaves += 1
        return LeafNode(label=int(label))

    def _build_node(self, dataset: Dataset, depth_left: int, depth: int) -> TreeNode | None:
        if len(dataset) == 0:
            return None

        self.metrics.nodes_visited += 1
        count0, count1 = (int(c) for c in dataset.class_counts())
        if count1 == 0:
            return self._leaf(0)
        if count0 == 0:
            return self._leaf(1)

        majority = majority_label(dataset.y)
        if depth_left <= 0:
            logger.debug("depth budget spent at depth %d, leaf=%d", depth, majority)
            return self._leaf(majority)

        split = self._find_best_split(dataset, depth).split
        if split is None:
            logger.debug("no improving split at depth %d, leaf=%d", depth, majority)
            return self._leaf(majority)

        feature, threshold = split
        left_data, right_data = partition(dataset, feature, threshold)
        if len(left_data) == 0 or len(right_data) == 0:
            # Constant features over mixed labels: the best cut sends everything one way.
            logger.debug("one-sided split at depth %d, leaf=%d", depth, majority)
            return self._leaf(majority)

        left = self._build_node(left_data, depth_left - 1, depth + 1)
        right = self._build_node(right_data, depth_left - 1, depth + 1)
        if left is None or right is None:
            raise TreeInvariantError(
                f"empty child under split feature={feature} threshold={threshold}"
            )

        self.metrics.nodes_split += 1
        logger.debug(
            "split at depth %d on feature %d < %.6g (+tol), n=%d -> %d/%d",
            depth,
            feature,
            threshold,
            len(dataset),
            len(left_data),
            len(right_data),
        )
        return InternalNode(feature=feature, threshold=threshold, left=left, right=right)

    def build_tree(self, dataset: Dataset) -> TreeNode:
        root = self._build_node(dataset, self.params.max_depth, 0)
        if root is None:
            raise EmptyDatasetError("cannot build a tree from an empty dataset")

        logger.info(
            "built tree on n=%d d=%d: %d splits, %d leaves, search %.3fs",
            len(dataset),
            dataset.n_features,
            self.metrics.nodes_split,
            count_leaves(root),
            self.metrics.split_search_time_sec,
        )
        return root


def build_tree(
    dataset: Dataset,
    max_depth: int,
    n_workers: int = DEFAULT_N_WORKERS,
    split_search: str = "parallel",
) -> TreeNode:
    """Grow a tree on a non-empty dataset; ``max_depth=0`` yields a single leaf."""
    params = TreeBuilderParams(
        max_depth=max_depth,
        n_workers=n_workers,
        split_search=split_search,
    )
    return TreeBuilder(params).build_tree(dataset)
