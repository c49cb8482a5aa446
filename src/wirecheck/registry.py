"""Per-run registry of contracts and the expectations that reference them.

A :class:`Registry` is built fresh for each verification run and passed by
reference to the matcher and reporter; nothing survives between runs.

Writes are insert-only and safe from concurrent extractor threads.
Registering a contract for an interface that already has one replaces it
(last writer wins); the replaced version is kept in the interface's
history and the overwrite is logged, never merged.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from wirecheck.model import Contract, ContractInconsistency, Expectation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverwriteEvent:
    """A contract registration that replaced an earlier one."""

    interface_name: str
    previous_version: str
    previous_source: str
    new_version: str
    new_source: str

    def describe(self) -> str:
        return (
            f"{self.interface_name}: contract from {self.new_source} "
            f"({self.new_version[7:19]}) replaced {self.previous_source} ({self.previous_version[7:19]})"
        )


class Registry:
    """Interface name → latest Contract + every Expectation referencing it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._contracts: dict[str, Contract] = {}
        self._history: dict[str, list[Contract]] = {}
        self._expectations: dict[str, list[Expectation]] = {}
        self._inconsistencies: list[ContractInconsistency] = []
        self._overwrites: list[OverwriteEvent] = []

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register_contract(self, contract: Contract) -> Contract | None:
        """Store *contract* as the current one for its interface.

        Returns the contract it replaced, or ``None``.
        """
        name = contract.interface_name
        event: OverwriteEvent | None = None
        with self._lock:
            previous = self._contracts.get(name)
            self._contracts[name] = contract
            self._history.setdefault(name, []).append(contract)
            if previous is not None:
                event = OverwriteEvent(
                    interface_name=name,
                    previous_version=previous.version,
                    previous_source=previous.source,
                    new_version=contract.version,
                    new_source=contract.source,
                )
                self._overwrites.append(event)
        if event is not None:
            logger.warning("Contract overwrite: %s", event.describe())
        return previous

    def add_expectations(self, expectations: Iterable[Expectation]) -> int:
        """Append expectations under their target interface.  Returns the count added."""
        added = 0
        with self._lock:
            for expectation in expectations:
                self._expectations.setdefault(expectation.interface_name, []).append(expectation)
                added += 1
        return added

    def add_inconsistencies(self, inconsistencies: Iterable[ContractInconsistency]) -> None:
        with self._lock:
            self._inconsistencies.extend(inconsistencies)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def contract(self, interface_name: str) -> Contract | None:
        with self._lock:
            return self._contracts.get(interface_name)

    def contracts(self) -> list[Contract]:
        with self._lock:
            return [self._contracts[name] for name in sorted(self._contracts)]

    def history(self, interface_name: str) -> list[Contract]:
        """Every contract registered for *interface_name* this run, oldest first."""
        with self._lock:
            return list(self._history.get(interface_name, []))

    def expectations(self, interface_name: str) -> list[Expectation]:
        """Expectations for one interface, in a deterministic order."""
        with self._lock:
            items = list(self._expectations.get(interface_name, []))
        return sorted(items, key=Expectation.sort_key)

    def all_expectations(self) -> list[Expectation]:
        with self._lock:
            items = [e for group in self._expectations.values() for e in group]
        return sorted(items, key=Expectation.sort_key)

    def interface_names(self) -> list[str]:
        """Every interface named by a contract or an expectation, sorted."""
        with self._lock:
            return sorted(set(self._contracts) | set(self._expectations))

    def inconsistencies(self, interface_name: str | None = None) -> list[ContractInconsistency]:
        with self._lock:
            items = list(self._inconsistencies)
        if interface_name is not None:
            items = [i for i in items if i.interface_name == interface_name]
        return items

    def overwrites(self) -> list[OverwriteEvent]:
        with self._lock:
            return list(self._overwrites)

    def expectation_count(self) -> int:
        with self._lock:
            return sum(len(group) for group in self._expectations.values())

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def stats(self) -> dict[str, object]:
        """Return diagnostic counts about the registry contents."""
        with self._lock:
            return {
                "contracts": len(self._contracts),
                "examples": sum(len(c.examples) for c in self._contracts.values()),
                "expectations": sum(len(g) for g in self._expectations.values()),
                "inconsistencies": len(self._inconsistencies),
                "overwrites": len(self._overwrites),
                "unreferenced_contracts": sorted(set(self._contracts) - set(self._expectations)),
            }
