from __future__ import annotations

from typing import Mapping, Sequence

from spinup.errors import HardMismatch, TransientQueryError, UnexpectedWarnings
from spinup.verify.query import QueryResult


def check_warnings(result: QueryResult) -> None:
    if result.warnings:
        raise UnexpectedWarnings(result.warnings)


def expect_series_count(result: QueryResult, expected: int) -> None:
    if len(result) != expected:
        raise TransientQueryError(f"unexpected result size {len(result)}, expected {expected}")


def compare(expected: Sequence[Mapping[str, str]], result: QueryResult) -> None:
    """Positional label-set equality. Neither side is reordered: the backend's
    sort order is part of what is checked."""
    check_warnings(result)
    actual = result.label_sets()
    for idx, (want, got) in enumerate(zip(expected, actual)):
        if dict(want) != got:
            raise HardMismatch(
                f"series {idx} mismatch:\n  expected: {_fmt(want)}\n  actual:   {_fmt(got)}"
            )
    if len(actual) != len(expected):
        raise HardMismatch(
            f"series count {len(actual)} != expected {len(expected)}; actual: "
            + "; ".join(_fmt(item) for item in actual)
        )


def _fmt(labels: Mapping[str, str]) -> str:
    inner = ", ".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
    return "{" + inner + "}"
