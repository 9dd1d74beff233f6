import numpy as np
import pytest

from cart_classifier import CARTClassifier, CARTParams
from dataset import Dataset, Point
from partition import partition
from tree_builder import TreeBuilder, TreeBuilderParams, build_tree
from tree_errors import EmptyDatasetError, EmptyTreeError, FeatureIndexError
from tree_nodes import (
    InternalNode,
    LeafNode,
    count_leaves,
    count_nodes,
    predict,
    predict_batch,
    tree_depth,
)


def _reference_dataset():
    X = [[1, 2], [2, 1], [2, 3], [3, 2], [5, 3], [6, 3], [7, 1], [8, 2]]
    y = [0, 0, 0, 0, 1, 1, 1, 1]
    return Dataset(X, y)


def _collect_tree_signature(node, depth=0):
    if isinstance(node, LeafNode):
        return [("L", depth, node.label)]

    signature = [("S", depth, node.feature, node.threshold)]
    signature.extend(_collect_tree_signature(node.left, depth + 1))
    signature.extend(_collect_tree_signature(node.right, depth + 1))
    return signature


def _noisy_dataset(seed, n=80, d=4):
    rng = np.random.default_rng(seed)
    X = rng.normal(size=(n, d))
    y = ((X[:, 0] > 0.3) ^ (X[:, 1] < -0.2)).astype(int)
    flip = rng.uniform(size=n) < 0.1
    y[flip] = 1 - y[flip]
    return Dataset(X, y)


@pytest.mark.parametrize("max_depth", [1, 2, 5])
def test_reference_scenario_separates_the_classes(max_depth):
    dataset = _reference_dataset()
    root = build_tree(dataset, max_depth)

    assert isinstance(root, InternalNode)
    assert root.feature == 0
    assert 3.0 <= root.threshold < 5.0
    assert root.left == LeafNode(0)
    assert root.right == LeafNode(1)
    for point in dataset:
        assert predict(root, point) == point.label


def test_pure_dataset_is_a_single_leaf():
    dataset = Dataset([[1.0, 2.0], [3.0, 4.0], [5.0, 0.0]], [1, 1, 1])
    for max_depth in (0, 1, 4):
        assert build_tree(dataset, max_depth) == LeafNode(1)


def test_depth_zero_yields_majority_leaf():
    assert build_tree(_reference_dataset(), 0) == LeafNode(0)
    assert build_tree(Dataset([[1.0], [2.0], [3.0]], [1, 0, 1]), 0) == LeafNode(1)


def test_constant_features_with_mixed_labels_become_majority_leaf():
    dataset = Dataset(np.ones((5, 2)), [1, 0, 1, 0, 1])
    assert build_tree(dataset, 3) == LeafNode(1)


def test_empty_dataset_is_a_contract_violation():
    with pytest.raises(EmptyDatasetError):
        build_tree(Dataset.from_points([], n_features=2), 3)


def test_depth_budget_is_respected():
    dataset = _noisy_dataset(5)
    for max_depth in (1, 2, 3):
        root = build_tree(dataset, max_depth)
        assert tree_depth(root) <= max_depth
        assert count_nodes(root) == 2 * count_leaves(root) - 1


def test_sequential_and_parallel_builders_grow_identical_trees():
    dataset = _noisy_dataset(7)
    sequential = build_tree(dataset, 4, split_search="sequential")

    for n_workers in (1, 2, 3, 4):
        parallel = build_tree(dataset, 4, n_workers=n_workers)
        assert _collect_tree_signature(parallel) == _collect_tree_signature(sequential)


def test_compare_mode_checks_every_searched_node():
    builder = TreeBuilder(
        TreeBuilderParams(max_depth=4, n_workers=3, validation_mode="compare")
    )
    root = builder.build_tree(_noisy_dataset(13))

    assert builder.metrics.compare_checked_nodes == len(builder.metrics.node_metrics)
    assert builder.metrics.compare_checked_nodes > 0
    assert builder.metrics.compare_mismatches == 0
    assert builder.metrics.leaves == count_leaves(root)
    assert builder.metrics.nodes_split == count_nodes(root) - count_leaves(root)


def test_compare_mode_can_sample_every_nth_node():
    builder = TreeBuilder(
        TreeBuilderParams(
            max_depth=4,
            n_workers=2,
            validation_mode="compare",
            compare_every_n_nodes=2,
        )
    )
    builder.build_tree(_noisy_dataset(13))

    searched = len(builder.metrics.node_metrics)
    assert searched > 1
    assert builder.metrics.compare_checked_nodes == searched // 2
    assert builder.metrics.compare_mismatches == 0


def test_training_points_route_like_their_partition():
    dataset = _noisy_dataset(21)
    root = build_tree(dataset, 1)
    assert isinstance(root, InternalNode)

    left, right = partition(dataset, root.feature, root.threshold)
    stump = InternalNode(root.feature, root.threshold, LeafNode(0), LeafNode(1))
    assert len(left) + len(right) == len(dataset)
    assert all(predict(stump, point) == 0 for point in left)
    assert all(predict(stump, point) == 1 for point in right)


def test_predict_is_idempotent_and_accepts_sequences():
    root = build_tree(_reference_dataset(), 2)
    point = Point((2.5, 1.0), 0)

    first = predict(root, point)
    assert predict(root, point) == first
    assert predict(root, [2.5, 1.0]) == first
    assert predict(root, np.array([7.5, 0.0])) == 1
    assert list(predict_batch(root, [[1.0, 1.0], [9.0, 9.0]])) == [0, 1]


def test_predict_preconditions():
    with pytest.raises(EmptyTreeError):
        predict(None, [1.0, 2.0])
    with pytest.raises(EmptyTreeError):
        predict_batch(None, np.empty((0, 2)))

    root = InternalNode(feature=3, threshold=0.0, left=LeafNode(0), right=LeafNode(1))
    with pytest.raises(FeatureIndexError):
        predict(root, [1.0, 2.0])


def test_builder_params_validation():
    with pytest.raises(ValueError):
        TreeBuilderParams(max_depth=-1)
    with pytest.raises(ValueError):
        TreeBuilderParams(n_workers=0)
    with pytest.raises(ValueError):
        TreeBuilderParams(split_search="random")
    with pytest.raises(ValueError):
        TreeBuilderParams(validation_mode="exact_match")


def test_classifier_fits_separable_data():
    rng = np.random.default_rng(3)
    X = rng.uniform(-1.0, 1.0, size=(120, 3))
    y = (X[:, 1] > 0.0).astype(int)
    X[y == 1, 1] += 0.5

    model = CARTClassifier(CARTParams(max_depth=2)).fit(X, y)

    assert model.score(X, y) == 1.0
    assert model.metrics["n_samples"] == 120
    assert model.metrics["depth"] >= 1
    assert list(model.predict([[0.0, -0.9, 0.0], [0.0, 1.2, 0.0]])) == [0, 1]


def test_classifier_sequential_and_parallel_agree():
    dataset = _noisy_dataset(17)
    X, y = np.asarray(dataset.X), np.asarray(dataset.y)

    sequential = CARTClassifier(CARTParams(max_depth=3, split_search="sequential")).fit(X, y)
    parallel = CARTClassifier(
        CARTParams(max_depth=3, n_workers=2, validation_mode="compare")
    ).fit(X, y)

    assert sequential.root_ == parallel.root_
    assert parallel.metrics["compare_mismatches"] == 0


def test_classifier_requires_fit_before_predict():
    with pytest.raises(RuntimeError):
        CARTClassifier().predict([[1.0, 2.0]])
    with pytest.raises(ValueError):
        CARTClassifier(CARTParams(n_workers=0))
