"""Metrics records produced by the two scan passes and merged per package."""

from __future__ import annotations

from dataclasses import dataclass, field

from rustgeiger.package_id import PackageId

GLOBAL_SCOPE = "__global_scope__"


@dataclass(frozen=True)
class ForeignBoundaryDefinition:
    """A function declared with (or exposed through) a non-native ABI."""

    file: str
    line: int
    column: int
    name: str
    has_pointer_argument: bool
    args: tuple[str, ...] = ()

    def sort_key(self) -> tuple:
        return (self.file, self.line, self.column, self.name)

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "name": self.name,
            "contains_pointer_argument": self.has_pointer_argument,
            "args": list(self.args),
        }


@dataclass(frozen=True)
class ForeignCallSite:
    """One call expression whose callee resolves by name to a foreign definition."""

    definition: ForeignBoundaryDefinition
    file: str
    line: int
    column: int
    calling_function: str
    package_id: PackageId | None = None

    def sort_key(self) -> tuple:
        return (self.file, self.line, self.column, self.calling_function, str(self.package_id))

    def to_dict(self) -> dict:
        return {
            "extern_definition": self.definition.to_dict(),
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "calling_function": self.calling_function,
            "package_id": str(self.package_id) if self.package_id else None,
        }


@dataclass
class Count:
    """Safe vs unsafe occurrence counts."""

    safe: int = 0
    unsafe: int = 0

    def count(self, is_unsafe: bool) -> None:
        if is_unsafe:
            self.unsafe += 1
        else:
            self.safe += 1

    @property
    def total(self) -> int:
        return self.safe + self.unsafe

    def __add__(self, other: Count) -> Count:
        return Count(self.safe + other.safe, self.unsafe + other.unsafe)

    def to_dict(self) -> dict:
        return {"safe": self.safe, "unsafe": self.unsafe}


@dataclass
class CounterBlock:
    """Counts per syntactic category."""

    functions: Count = field(default_factory=Count)
    exprs: Count = field(default_factory=Count)
    item_impls: Count = field(default_factory=Count)
    item_traits: Count = field(default_factory=Count)
    methods: Count = field(default_factory=Count)

    CATEGORIES = ("functions", "exprs", "item_impls", "item_traits", "methods")

    def __add__(self, other: CounterBlock) -> CounterBlock:
        return CounterBlock(
            functions=self.functions + other.functions,
            exprs=self.exprs + other.exprs,
            item_impls=self.item_impls + other.item_impls,
            item_traits=self.item_traits + other.item_traits,
            methods=self.methods + other.methods,
        )

    def has_unsafe(self) -> bool:
        return any(getattr(self, name).unsafe > 0 for name in self.CATEGORIES)

    def to_dict(self) -> dict:
        return {name: getattr(self, name).to_dict() for name in self.CATEGORIES}


ForeignCalls = dict[ForeignBoundaryDefinition, list[ForeignCallSite]]


def merge_foreign_calls(left: ForeignCalls, right: ForeignCalls) -> ForeignCalls:
    """Union by definition, concatenating call lists in canonical order."""
    merged: ForeignCalls = {}
    for source in (left, right):
        for definition, calls in source.items():
            merged.setdefault(definition, []).extend(calls)
    return {
        definition: sorted(merged[definition], key=ForeignCallSite.sort_key)
        for definition in sorted(merged, key=ForeignBoundaryDefinition.sort_key)
    }


@dataclass
class UnitMetrics:
    """Pass-2 result for one compilation unit."""

    counters: CounterBlock = field(default_factory=CounterBlock)
    forbids_unsafe: bool = False
    foreign_calls: ForeignCalls = field(default_factory=dict)


@dataclass
class PackageMetrics:
    """All units of one package merged together.

    forbids_unsafe is recorded per file; it is a property of a file, not
    something that can be summed. entry_points lists the crate root files
    (lib.rs, main.rs, ...) whose `#![forbid(unsafe_code)]` covers the whole
    target.
    """

    counters: CounterBlock = field(default_factory=CounterBlock)
    forbids_unsafe: dict[str, bool] = field(default_factory=dict)
    foreign_calls: ForeignCalls = field(default_factory=dict)
    entry_points: tuple[str, ...] = ()

    def add_unit(self, path: str, unit: UnitMetrics) -> None:
        self.counters = self.counters + unit.counters
        self.forbids_unsafe = dict(sorted({**self.forbids_unsafe, path: unit.forbids_unsafe}.items()))
        self.foreign_calls = merge_foreign_calls(self.foreign_calls, unit.foreign_calls)

    def merge(self, other: PackageMetrics) -> PackageMetrics:
        return PackageMetrics(
            counters=self.counters + other.counters,
            forbids_unsafe=dict(sorted({**self.forbids_unsafe, **other.forbids_unsafe}.items())),
            foreign_calls=merge_foreign_calls(self.foreign_calls, other.foreign_calls),
            entry_points=tuple(sorted(set(self.entry_points) | set(other.entry_points))),
        )

    @property
    def all_files_forbid_unsafe(self) -> bool:
        return bool(self.forbids_unsafe) and all(self.forbids_unsafe.values())

    @property
    def crate_forbids_unsafe(self) -> bool:
        """Every crate root forbids unsafe code.

        A root that was not scanned (missing or unparsable) counts as not
        forbidding. Without known roots every scanned file must forbid.
        """
        if not self.entry_points:
            return self.all_files_forbid_unsafe
        return all(self.forbids_unsafe.get(path, False) for path in self.entry_points)

    @property
    def foreign_call_count(self) -> int:
        return sum(len(calls) for calls in self.foreign_calls.values())

    def to_dict(self) -> dict:
        return {
            "counters": self.counters.to_dict(),
            "forbids_unsafe": dict(self.forbids_unsafe),
            "entry_points": list(self.entry_points),
            "crate_forbids_unsafe": self.crate_forbids_unsafe,
            "foreign_calls": [
                {
                    "extern_definition": definition.to_dict(),
                    "extern_calls": [call.to_dict() for call in calls],
                }
                for definition, calls in self.foreign_calls.items()
            ],
        }
