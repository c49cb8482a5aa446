"""A verification run, from artifact locations to a report and exit status.

    providers ─┐ (concurrent per artifact set)
               ├─► Registry ─► barrier ─► CorrespondenceMatcher ─► Report
    consumers ─┘

Contracts are registered in the order their locations were given, so when
two provider sets declare the same interface the later one wins.  With
``inconsistency_fatal`` the run stops after extraction if any provider
contract contradicts itself; every inconsistency found is still reported.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from wirecheck.artifacts import ArtifactSet, load_artifact_set
from wirecheck.config import VerifyConfig
from wirecheck.contracts import ContractExtraction, ContractExtractor, extract_contracts
from wirecheck.expectations import ExpectationExtractor
from wirecheck.matcher import CorrespondenceMatcher
from wirecheck.registry import Registry
from wirecheck.remote import ReadOnlyFetcher, is_remote
from wirecheck.reporter import Report, Verdict, build_report

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_MISMATCH = 1
EXIT_INCONSISTENT = 3
EXIT_ARTIFACT_ERROR = 4
EXIT_EMPTY = 5


def exit_status(report: Report, *, fail_on_empty: bool = False) -> int:
    """Map a report's verdict to a process exit status."""
    verdict = report.verdict
    if verdict == Verdict.INCONSISTENT:
        return EXIT_INCONSISTENT
    if verdict == Verdict.FAIL:
        return EXIT_MISMATCH
    if verdict == Verdict.EMPTY and fail_on_empty:
        return EXIT_EMPTY
    return EXIT_PASS


class VerificationRun:
    """One run: a fresh Registry, two extraction phases, one matching phase."""

    def __init__(self, config: VerifyConfig | None = None, *, fetcher: ReadOnlyFetcher | None = None) -> None:
        self.config = config or VerifyConfig()
        self.registry = Registry()
        self._fetcher = fetcher

    def execute(self, providers: Sequence[str], consumers: Sequence[str]) -> Report:
        """Load, extract, match.  Raises :class:`ArtifactError` on malformed input."""
        if self._fetcher is None and any(is_remote(str(loc)) for loc in [*providers, *consumers]):
            with ReadOnlyFetcher(allowed_hosts=set(self.config.allowed_hosts or ()) or None) as fetcher:
                self._fetcher = fetcher
                try:
                    return self._execute(providers, consumers)
                finally:
                    self._fetcher = None
        return self._execute(providers, consumers)

    def _execute(self, providers: Sequence[str], consumers: Sequence[str]) -> Report:
        workers = self.config.workers
        with ThreadPoolExecutor(max_workers=workers) as pool:
            contract_futures = [pool.submit(self._extract_provider, loc) for loc in providers]
            consumer_futures = [pool.submit(self._extract_consumer, loc) for loc in consumers]

            # Barrier: every extraction finishes before matching starts.
            extractions = [f.result() for f in contract_futures]
            for future in consumer_futures:
                future.result()

        contract_extractor = ContractExtractor(self.registry)
        for extraction in extractions:
            contract_extractor.register(extraction)

        stats = self.registry.stats()
        logger.info(
            "Registry: %d contracts, %d expectations, %d inconsistencies",
            stats["contracts"],
            stats["expectations"],
            stats["inconsistencies"],
        )

        fatal = self.config.inconsistency_fatal
        if fatal and self.registry.inconsistencies():
            logger.error("Aborting before matching: contract inconsistencies are fatal")
            return build_report(self.registry, [], inconsistency_fatal=True, aborted=True)

        matcher = CorrespondenceMatcher(
            self.registry,
            ignore_fields=self.config.ignore_fields,
            workers=workers,
        )
        results = matcher.match()
        return build_report(self.registry, results, inconsistency_fatal=fatal)

    def _load(self, location: str) -> ArtifactSet:
        return load_artifact_set(location, fetcher=self._fetcher)

    def _extract_provider(self, location: str) -> ContractExtraction:
        return extract_contracts(self._load(location))

    def _extract_consumer(self, location: str) -> int:
        return len(ExpectationExtractor(self.registry).extract(self._load(location)))


def verify(
    providers: Sequence[str],
    consumers: Sequence[str],
    config: VerifyConfig | None = None,
) -> Report:
    """Run a verification and return its report."""
    return VerificationRun(config).execute(providers, consumers)
