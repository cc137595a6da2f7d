"""
Input validation for vector batches.

Every check runs before any clustering work; failures name the offending
identifier.
"""

import numbers
from typing import Any, List, Mapping, Optional, Tuple

import numpy as np

from vector_clustering.utils.error_handling import ValidationError


def validate_vectors(vectors: Mapping[Any, Any]) -> Tuple[List[str], np.ndarray]:
    """
    Validate an {id: vector} mapping and convert it to a matrix.

    Args:
        vectors: Mapping of identifier to numeric sequence

    Returns:
        Tuple of (ids, matrix) where matrix row k belongs to ids[k]

    Raises:
        ValidationError: If an identifier is missing, empty or not a string,
            a vector is missing/empty/non-numeric (strings and booleans
            included), dimensions differ, or a component is NaN or infinite
    """
    ids: List[str] = []
    rows: List[np.ndarray] = []
    dimension = -1

    for vector_id, vector in vectors.items():
        if vector_id is None or vector_id == "":
            raise ValidationError(
                f"Vector ID cannot be null or empty, got: {vector_id!r}",
                details={"vector_id": repr(vector_id)},
            )
        if not isinstance(vector_id, str):
            raise ValidationError(
                f"Vector ID must be a string, got {type(vector_id).__name__}: {vector_id!r}",
                details={"vector_id": repr(vector_id), "type": type(vector_id).__name__},
            )

        if vector is None:
            raise ValidationError(
                f"Vector for ID '{vector_id}' is null",
                details={"vector_id": vector_id},
            )

        try:
            bad = _first_non_numeric(vector)
            if bad is None:
                row = np.asarray(vector, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"Vector for ID '{vector_id}' is not numeric: {e}",
                details={"vector_id": vector_id},
            ) from e
        if bad is not None:
            index, value = bad
            raise ValidationError(
                f"Vector for ID '{vector_id}' has a non-numeric component at index {index}: {value!r}",
                details={"vector_id": vector_id, "index": index, "value": repr(value)},
            )

        if row.ndim != 1:
            raise ValidationError(
                f"Vector for ID '{vector_id}' must be one-dimensional, got shape {row.shape}",
                details={"vector_id": vector_id, "shape": list(row.shape)},
            )

        if row.size == 0:
            raise ValidationError(
                f"Vector for ID '{vector_id}' is empty",
                details={"vector_id": vector_id},
            )

        if dimension == -1:
            dimension = row.size
        elif row.size != dimension:
            raise ValidationError(
                f"Vector dimension mismatch: expected {dimension} but got {row.size} "
                f"for ID '{vector_id}'",
                details={"vector_id": vector_id, "expected": dimension, "actual": row.size},
            )

        non_finite = np.flatnonzero(~np.isfinite(row))
        if non_finite.size:
            index = int(non_finite[0])
            raise ValidationError(
                f"Vector for ID '{vector_id}' contains invalid value at index {index}: {row[index]}",
                details={"vector_id": vector_id, "index": index, "value": str(row[index])},
            )

        ids.append(vector_id)
        rows.append(row)

    if not rows:
        return ids, np.empty((0, 0), dtype=np.float64)
    return ids, np.vstack(rows)


def _first_non_numeric(vector: Any) -> Optional[Tuple[int, Any]]:
    """
    Find the first component numpy would coerce but is not a real number.

    Strings and booleans convert to float silently, so they are caught
    here. Nested sequences are left for the shape check.
    """
    if isinstance(vector, (str, bytes)):
        raise TypeError(f"expected a sequence of numbers, got {type(vector).__name__}")
    if isinstance(vector, np.ndarray) and vector.dtype.kind in "iuf":
        return None

    for index, component in enumerate(vector):
        if isinstance(component, (list, tuple, np.ndarray)):
            continue
        if isinstance(component, (bool, np.bool_)) or not isinstance(component, numbers.Real):
            return index, component
    return None
