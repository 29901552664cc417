"""
Reference vs. proposed API comparison.

Both snapshots are flattened into polars frames (one row per element, one string column
per breaking metadata key) and joined on ``element_id``. A proposed API is compatible with
a reference when every reference element still exists and none of its breaking keys
changed. Added elements are never breaking.

Examples:
    >>> from trellis.api.snapshot import ApiSnapshot, ElementEntry
    >>> ref = ApiSnapshot(elements={"a.b": ElementEntry(type_name="NumberIO")})
    >>> new = ApiSnapshot(elements={"a.b": ElementEntry(type_name="StringIO")})
    >>> compare_apis(ref, new)
    ['invalid metadata for a.b, key=type_name, expected NumberIO but received StringIO']
"""

from __future__ import annotations

import polars as pl

from .snapshot import BREAKING_API_KEYS, ApiSnapshot

__all__ = ["api_differences", "compare_apis", "elements_frame"]


def elements_frame(snapshot: ApiSnapshot) -> pl.DataFrame:
    """One row per element with the breaking keys rendered as strings."""
    schema = {"element_id": pl.Utf8, **{key: pl.Utf8 for key in BREAKING_API_KEYS}}
    rows = [
        {"element_id": element_id, **{key: str(getattr(entry, key)) for key in BREAKING_API_KEYS}}
        for element_id, entry in snapshot.elements.items()
    ]
    return pl.DataFrame(rows, schema=schema)


def api_differences(reference: ApiSnapshot, proposed: ApiSnapshot) -> pl.DataFrame:
    """
    Breaking differences between two snapshots.

    Returns:
        pl.DataFrame: Columns ``element_id``, ``key``, ``expected``, ``received``, sorted by
        element_id then key. Missing elements have a null ``key``.
    """
    ref = elements_frame(reference)
    prop = elements_frame(proposed).with_columns(pl.lit(True).alias("_present"))
    joined = ref.join(prop, on="element_id", how="left", suffix="_proposed")

    missing = joined.filter(pl.col("_present").is_null()).select(
        pl.col("element_id"),
        pl.lit(None, dtype=pl.Utf8).alias("key"),
        pl.lit(None, dtype=pl.Utf8).alias("expected"),
        pl.lit(None, dtype=pl.Utf8).alias("received"),
    )
    present = joined.filter(pl.col("_present").is_not_null())
    changed = [
        present.filter(pl.col(key) != pl.col(f"{key}_proposed")).select(
            pl.col("element_id"),
            pl.lit(key, dtype=pl.Utf8).alias("key"),
            pl.col(key).alias("expected"),
            pl.col(f"{key}_proposed").alias("received"),
        )
        for key in BREAKING_API_KEYS
    ]
    out = pl.concat([missing, *changed], how="vertical")
    return out.sort(["element_id", "key"], nulls_last=False)


def compare_apis(reference: ApiSnapshot, proposed: ApiSnapshot) -> list[str]:
    """
    Human-readable list of breaking changes (empty when compatible).
    """
    report: list[str] = []
    for row in api_differences(reference, proposed).iter_rows(named=True):
        if row["key"] is None:
            report.append(f"missing element: {row['element_id']}")
        else:
            report.append(
                f"invalid metadata for {row['element_id']}, key={row['key']}, "
                f"expected {row['expected']} but received {row['received']}"
            )
    return report
