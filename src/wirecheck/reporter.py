"""Reports: per-expectation results, grouped by interface then method, plus a verdict.

The verdict distinguishes four states:

    pass          expectations present, none mismatched
    fail          at least one mismatch
    empty         no expectations at all (likely missing instrumentation)
    inconsistent  a provider contract disagrees with itself and that is fatal
"""

from __future__ import annotations

import json
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from wirecheck.model import Contract, ContractInconsistency, CorrespondenceResult, ResultKind
from wirecheck.registry import OverwriteEvent, Registry


class Verdict(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    EMPTY = "empty"
    INCONSISTENT = "inconsistent"


@dataclass
class Report:
    """Everything a verification run found."""

    results: list[CorrespondenceResult] = field(default_factory=list)
    inconsistencies: list[ContractInconsistency] = field(default_factory=list)
    contracts: list[Contract] = field(default_factory=list)
    overwrites: list[OverwriteEvent] = field(default_factory=list)
    expectation_count: int = 0
    inconsistency_fatal: bool = True
    aborted: bool = False

    @property
    def mismatches(self) -> list[CorrespondenceResult]:
        return [r for r in self.results if r.is_mismatch]

    @property
    def verdict(self) -> Verdict:
        if self.inconsistencies and self.inconsistency_fatal:
            return Verdict.INCONSISTENT
        if self.expectation_count == 0:
            return Verdict.EMPTY
        if self.mismatches:
            return Verdict.FAIL
        return Verdict.PASS

    def counts(self) -> dict[str, int]:
        """Result count per kind, every kind listed."""
        counter = Counter(r.kind for r in self.results)
        return {kind.value: counter.get(kind, 0) for kind in ResultKind}

    def grouped(self) -> "OrderedDict[str, OrderedDict[str, list[CorrespondenceResult]]]":
        groups: OrderedDict[str, OrderedDict[str, list[CorrespondenceResult]]] = OrderedDict()
        for result in self.results:
            groups.setdefault(result.interface_name, OrderedDict()).setdefault(
                result.method_name, []
            ).append(result)
        return groups

    def contract(self, interface_name: str) -> Contract | None:
        for contract in self.contracts:
            if contract.interface_name == interface_name:
                return contract
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "aborted": self.aborted,
            "inconsistencyFatal": self.inconsistency_fatal,
            "expectations": self.expectation_count,
            "mismatches": len(self.mismatches),
            "counts": self.counts(),
            "inconsistencies": [i.to_dict() for i in self.inconsistencies],
            "contracts": [
                {"interface": c.interface_name, "version": c.version, "source": c.source}
                for c in self.contracts
            ],
            "overwrites": [
                {
                    "interface": o.interface_name,
                    "previousVersion": o.previous_version,
                    "previousSource": o.previous_source,
                    "newVersion": o.new_version,
                    "newSource": o.new_source,
                }
                for o in self.overwrites
            ],
            "results": [r.to_dict() for r in self.results],
        }


def build_report(
    registry: Registry,
    results: list[CorrespondenceResult],
    *,
    inconsistency_fatal: bool = True,
    aborted: bool = False,
) -> Report:
    return Report(
        results=list(results),
        inconsistencies=registry.inconsistencies(),
        contracts=registry.contracts(),
        overwrites=registry.overwrites(),
        expectation_count=registry.expectation_count(),
        inconsistency_fatal=inconsistency_fatal,
        aborted=aborted,
    )


# =============================================================================
# Text
# =============================================================================

_VERDICT_LINES = {
    Verdict.PASS: "PASS: every consumer expectation corresponds to a provider contract",
    Verdict.FAIL: "FAIL: consumer expectations disagree with provider contracts",
    Verdict.EMPTY: (
        "NOTHING TO CHECK: no consumer expectations were recorded "
        "(collaboration tests may not be instrumented)"
    ),
    Verdict.INCONSISTENT: "INCONSISTENT: provider contracts contradict themselves; fix them first",
}


def render_text(report: Report, *, show_corresponds: bool = True) -> str:
    lines: list[str] = ["wirecheck report", "================", ""]

    if report.inconsistencies:
        severity = "fatal" if report.inconsistency_fatal else "advisory"
        lines.append(f"CONTRACT INCONSISTENCIES ({len(report.inconsistencies)}, {severity})")
        for inconsistency in report.inconsistencies:
            lines.append(f"  ! {inconsistency.describe()}")
        lines.append("")

    if report.aborted:
        lines.append("Matching skipped: contract inconsistencies are fatal.")
        lines.append("")

    for interface_name, methods in report.grouped().items():
        contract = report.contract(interface_name)
        if contract is None:
            lines.append(f"{interface_name}  (no contract)")
        else:
            lines.append(
                f"{interface_name}  (contract {contract.short_version}, provider {contract.source})"
            )
        for method_name, results in methods.items():
            shown = [r for r in results if show_corresponds or r.is_mismatch]
            if not shown:
                continue
            lines.append(f"  {method_name}")
            for result in shown:
                status = "FAIL" if result.is_mismatch else "ok"
                lines.append(
                    f"    {status:<5} {result.kind.value:<17} {result.expectation.source.describe()}"
                )
                lines.append(f"          {result.expectation.describe()}")
                lines.append(f"          {result.explanation}")
                for note in result.notes:
                    lines.append(f"          note: {note}")
        lines.append("")

    if report.overwrites:
        lines.append("Contract overwrites (last writer wins)")
        for event in report.overwrites:
            lines.append(f"  {event.describe()}")
        lines.append("")

    lines.append("Summary")
    for kind, count in report.counts().items():
        lines.append(f"  {kind:<17} {count}")
    lines.append(f"  {'Inconsistencies':<17} {len(report.inconsistencies)}")
    lines.append(
        f"  expectations: {report.expectation_count}, mismatches: {len(report.mismatches)}, "
        f"contracts: {len(report.contracts)}"
    )
    lines.append("")
    lines.append(_VERDICT_LINES[report.verdict])
    return "\n".join(lines) + "\n"


def render_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2, default=str) + "\n"


def render(report: Report, fmt: str = "text", *, show_corresponds: bool = True) -> str:
    if fmt == "json":
        return render_json(report)
    return render_text(report, show_corresponds=show_corresponds)
