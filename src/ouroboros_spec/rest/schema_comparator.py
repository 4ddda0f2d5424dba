"""Name-keyed structural comparison of two schema sets."""

from dataclasses import dataclass, field

from ..models import Components
from .flattener import TypeCounts, count_differences, flatten_schemas


@dataclass
class SchemaMatch:
    name: str
    same: bool
    scan_counts: TypeCounts | None = None
    file_counts: TypeCounts | None = None
    differences: dict[str, tuple[int, int]] = field(default_factory=dict)


@dataclass
class SchemaComparison:
    """Per-schema equivalence, computed from each side's names.

    A name missing on the other side is never equivalent.
    """

    scan_results: dict[str, bool]
    file_results: dict[str, bool]
    matches: dict[str, SchemaMatch] = field(default_factory=dict)

    def merged(self) -> dict[str, bool]:
        """Union of both sides; scan-side results take precedence."""
        return {**self.file_results, **self.scan_results}


def compare_flattened(scan_flat: dict[str, TypeCounts], file_flat: dict[str, TypeCounts]) -> SchemaComparison:
    matches: dict[str, SchemaMatch] = {}
    for name in list(scan_flat) + [n for n in file_flat if n not in scan_flat]:
        scan_counts = scan_flat.get(name)
        file_counts = file_flat.get(name)
        if scan_counts is None or file_counts is None:
            matches[name] = SchemaMatch(name, False, scan_counts, file_counts)
            continue
        differences = count_differences(file_counts, scan_counts)
        matches[name] = SchemaMatch(name, not differences, scan_counts, file_counts, differences)

    return SchemaComparison(
        scan_results={name: matches[name].same for name in scan_flat},
        file_results={name: matches[name].same for name in file_flat},
        matches=matches,
    )


def compare_schemas(scan_components: Components | None, file_components: Components | None) -> SchemaComparison:
    """Flatten both component sets and compare them name by name."""
    return compare_flattened(flatten_schemas(scan_components), flatten_schemas(file_components))
