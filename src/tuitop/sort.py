"""Process table ordering."""

from collections.abc import Iterable, Sequence
from functools import cmp_to_key

from tuitop.models import COLUMNS, Column, ProcessSnapshot


def sort_processes(
    processes: Iterable[ProcessSnapshot],
    sort_column: int,
    sort_desc: bool,
    columns: Sequence[Column] = COLUMNS,
) -> list[ProcessSnapshot]:
    """
    Sort processes by a column's comparator.

    Descending order negates the comparator rather than reversing the
    output, so rows with equal keys keep their input order either way.
    """
    compare = columns[sort_column].comparator.compare

    if sort_desc:
        def ordering(a: ProcessSnapshot, b: ProcessSnapshot) -> int:
            return -compare(a, b)
    else:
        ordering = compare

    return sorted(processes, key=cmp_to_key(ordering))
