import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np

# Allow running as: python experiments/quick_tree_eval.py
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cart_classifier import CARTClassifier, CARTParams
from dataset import load_dataset

logger = logging.getLogger("quick_tree_eval")

REFERENCE_X = np.array(
    [[1, 2], [2, 1], [2, 3], [3, 2], [5, 3], [6, 3], [7, 1], [8, 2]],
    dtype=np.float64,
)
REFERENCE_Y = np.array([0, 0, 0, 0, 1, 1, 1, 1], dtype=np.int64)


def _subsample(X, y, max_samples, rng):
    if max_samples is None or X.shape[0] <= max_samples:
        return X, y
    idx = rng.choice(X.shape[0], size=max_samples, replace=False)
    return X[idx], y[idx]


def _train_test_split(X, y, test_size, random_state):
    rng = np.random.default_rng(random_state)
    train_parts = []
    test_parts = []
    for c in np.unique(y):
        idx = np.where(y == c)[0]
        rng.shuffle(idx)
        n_test = max(1, int(round(idx.size * test_size)))
        test_parts.append(idx[:n_test])
        train_parts.append(idx[n_test:])
    train_idx = np.concatenate(train_parts)
    test_idx = np.concatenate(test_parts)
    rng.shuffle(train_idx)
    rng.shuffle(test_idx)
    return X[train_idx], X[test_idx], y[train_idx], y[test_idx]


def _load_breast_cancer():
    try:
        from sklearn.datasets import load_breast_cancer
    except ModuleNotFoundError as e:
        raise ModuleNotFoundError(
            "breast_cancer requires scikit-learn, which is not installed. "
            "Use reference/synthetic or install the experiments extra."
        ) from e

    ds = load_breast_cancer()
    return ds.data.astype(np.float64), ds.target.astype(np.int64)


def load_named_dataset(name: str, random_state: int, max_samples: int | None):
    rng = np.random.default_rng(random_state)
    key = name.lower()

    if key == "reference":
        return REFERENCE_X.copy(), REFERENCE_Y.copy()
    if key == "breast_cancer":
        X, y = _load_breast_cancer()
    elif key == "synthetic":
        n_samples = 400
        n_features = 6
        X = rng.normal(size=(n_samples, n_features))
        w = rng.normal(size=n_features)
        logits = X @ w + 0.5 * rng.normal(size=n_samples)
        y = (logits > 0.0).astype(np.int64)
    else:
        raise ValueError(
            f"Unknown dataset '{name}'. Choose from: reference, synthetic, breast_cancer"
        )

    return _subsample(X, y, max_samples=max_samples, rng=rng)


def evaluate_one(X_train, X_test, y_train, y_test, split_search, max_depth, n_workers):
    params = CARTParams(
        max_depth=max_depth,
        n_workers=n_workers,
        split_search=split_search,
    )
    model = CARTClassifier(params)
    t0 = time.perf_counter()
    model.fit(X_train, y_train)
    fit_time = time.perf_counter() - t0

    return {
        "model": model,
        "fit_time_sec": fit_time,
        "train_accuracy": model.score(X_train, y_train),
        "test_accuracy": model.score(X_test, y_test),
    }


def main():
    parser = argparse.ArgumentParser(
        description="Train a Gini tree with sequential and parallel split search"
    )
    parser.add_argument(
        "--datasets",
        type=str,
        default="reference,synthetic",
        help="Comma-separated: reference, synthetic, breast_cancer",
    )
    parser.add_argument("--features", type=Path, help="Feature CSV (one header row)")
    parser.add_argument("--labels", type=Path, help="Label file matching --features")
    parser.add_argument("--max-samples", type=int, default=300)
    parser.add_argument("--max-depth", type=int, default=3)
    parser.add_argument("--n-workers", type=int, default=2)
    parser.add_argument("--test-size", type=float, default=0.25)
    parser.add_argument("--random-state", type=int, default=42)
    parser.add_argument("--log-level", type=str, default="INFO")

    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    jobs = []
    if args.features is not None or args.labels is not None:
        if args.features is None or args.labels is None:
            parser.error("--features and --labels must be given together")
        dataset = load_dataset(args.features, args.labels)
        jobs.append((args.features.name, np.asarray(dataset.X), np.asarray(dataset.y)))
    else:
        names = [d.strip() for d in args.datasets.split(",") if d.strip()]
        if not names:
            raise ValueError("No datasets provided")
        for name in names:
            X, y = load_named_dataset(name, args.random_state, args.max_samples)
            jobs.append((name, X, y))

    for name, X, y in jobs:
        print(f"\nDataset={name} n={X.shape[0]} d={X.shape[1]}")
        if name == "reference":
            # Too small to hold out; evaluate on the training points.
            X_train, X_test, y_train, y_test = X, X, y, y
        else:
            X_train, X_test, y_train, y_test = _train_test_split(
                X, y, test_size=args.test_size, random_state=args.random_state
            )

        outputs = {}
        for split_search in ("sequential", "parallel"):
            out = evaluate_one(
                X_train,
                X_test,
                y_train,
                y_test,
                split_search=split_search,
                max_depth=args.max_depth,
                n_workers=args.n_workers,
            )
            outputs[split_search] = out
            metrics = out["model"].metrics
            print(
                f"{split_search:>10}"
                f" time={out['fit_time_sec']:.3f}s"
                f" split_search_time={metrics['split_search_time_sec']:.3f}s"
                f" candidates={metrics['candidates_evaluated']}"
                f" depth={metrics['depth']}"
                f" leaves={metrics['n_leaves']}"
                f" train_acc={out['train_accuracy']:.3f}"
                f" test_acc={out['test_accuracy']:.3f}"
            )

        same = outputs["sequential"]["model"].root_ == outputs["parallel"]["model"].root_
        print(f"  identical trees: {same}")
        if not same:
            logger.warning("sequential and parallel trees differ on %s", name)


if __name__ == "__main__":
    main()
