"""wirecheck: detect disconnected wires between collaboration and contract tests.

Consumer tests stub and verify collaborators; provider tests assert what the
real implementation does.  wirecheck reads the interaction records both
suites emit and reports every consumer expectation that no provider contract
backs up.

Usage:
    from wirecheck import verify

    report = verify(["build/provider.jsonl"], ["build/consumer.jsonl"])
    print(report.verdict)
"""

from wirecheck.artifacts import ArtifactRecord, ArtifactSet, load_artifact_set, parse_records
from wirecheck.config import VerifyConfig, load_config
from wirecheck.contracts import ContractExtraction, ContractExtractor, extract_contracts
from wirecheck.errors import ArtifactError, ConfigError, ReadOnlyViolation, WirecheckError
from wirecheck.expectations import ExpectationExtractor, extract_expectations
from wirecheck.matcher import CorrespondenceMatcher
from wirecheck.model import (
    ArgMatcher,
    BehavioralExample,
    Contract,
    ContractInconsistency,
    CorrespondenceResult,
    Expectation,
    InterfaceSignature,
    MethodSignature,
    Outcome,
    ResultKind,
)
from wirecheck.registry import Registry
from wirecheck.reporter import Report, Verdict, render_json, render_text
from wirecheck.runner import VerificationRun, exit_status, verify

__all__ = [
    "ArtifactRecord",
    "ArtifactSet",
    "load_artifact_set",
    "parse_records",
    "VerifyConfig",
    "load_config",
    "ContractExtraction",
    "ContractExtractor",
    "extract_contracts",
    "ArtifactError",
    "ConfigError",
    "ReadOnlyViolation",
    "WirecheckError",
    "ExpectationExtractor",
    "extract_expectations",
    "CorrespondenceMatcher",
    "ArgMatcher",
    "BehavioralExample",
    "Contract",
    "ContractInconsistency",
    "CorrespondenceResult",
    "Expectation",
    "InterfaceSignature",
    "MethodSignature",
    "Outcome",
    "ResultKind",
    "Registry",
    "Report",
    "Verdict",
    "render_json",
    "render_text",
    "VerificationRun",
    "exit_status",
    "verify",
]
__version__ = "0.1.0"
