"""Vector encoding and the distance function used for nearest-neighbour ranking.

Embeddings live in BLOB columns on their owning rows (float32, little-endian,
the sqlite-vec wire format) so they cascade with the row. Ranking uses the
sqlite-vec scalar ``vec_distance_cosine`` ordered ascending.
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlite_vec

DISTANCE_FN = "vec_distance_cosine"


def to_blob(embedding: Sequence[float], dimensions: int | None = None) -> bytes:
    """Serialise *embedding* for storage or as a query parameter.

    Args:
        embedding: The vector.
        dimensions: Expected length; ``None`` skips the check.

    Raises:
        ValueError: If the vector is empty or has the wrong length.
    """
    if not embedding:
        raise ValueError("embedding must not be empty")
    if dimensions is not None and len(embedding) != dimensions:
        raise ValueError(
            f"embedding has {len(embedding)} dimensions, expected {dimensions}"
        )
    return sqlite_vec.serialize_float32(list(embedding))
