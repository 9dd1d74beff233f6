class ContractViolation(Exception):
    """Input broke a precondition of the tree core. Caller bug, not recovered."""


class DimensionMismatchError(ContractViolation, ValueError):
    """Feature vectors (or feature rows and labels) disagree in shape."""


class LabelError(ContractViolation, ValueError):
    """A label outside {0, 1} was supplied."""


class FeatureIndexError(ContractViolation, IndexError):
    """Feature index outside the dimensionality of the data."""


class EmptyDatasetError(ContractViolation, ValueError):
    """A tree was requested for a dataset with no points."""


class EmptyTreeError(ContractViolation, ValueError):
    """Prediction was attempted through an absent root."""


class TreeInvariantError(ContractViolation, RuntimeError):
    """Tree construction reached a state the stopping rules should prevent."""
