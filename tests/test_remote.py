"""Unit tests for read-only remote artifact fetching."""

import json

import httpx
import pytest
from conftest import CAR_X, consumer_record, provider_record
from wirecheck.artifacts import load_artifact_set
from wirecheck.errors import ArtifactError, ReadOnlyViolation
from wirecheck.remote import ReadOnlyFetcher, is_remote
from wirecheck.reporter import Verdict
from wirecheck.runner import VerificationRun

PROVIDER_URL = "https://artifacts.example.com/car-service/provider.jsonl"


def artifact_transport(routes):
    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def provider_body():
    return json.dumps(provider_record(outcome={"returns": [CAR_X]})) + "\n"


def test_is_remote():
    assert is_remote(PROVIDER_URL)
    assert not is_remote("build/provider.jsonl")


def test_check_host_blocks_private_ip():
    fetcher = ReadOnlyFetcher()
    with pytest.raises(ReadOnlyViolation, match="private"):
        fetcher._check_host("http://192.168.1.1/provider.jsonl")


def test_check_host_blocks_loopback():
    fetcher = ReadOnlyFetcher()
    with pytest.raises(ReadOnlyViolation, match="private"):
        fetcher._check_host("http://127.0.0.1/provider.jsonl")


def test_check_host_allowlist_enforced():
    fetcher = ReadOnlyFetcher(allowed_hosts={"artifacts.example.com"})
    fetcher._check_host(PROVIDER_URL)
    with pytest.raises(ReadOnlyViolation, match="not in allowed_hosts"):
        fetcher._check_host("https://evil.example.com/provider.jsonl")


def test_allow_private_skips_check():
    ReadOnlyFetcher(allow_private=True)._check_host("http://10.0.0.5/provider.jsonl")


def test_post_blocked():
    with ReadOnlyFetcher(transport=artifact_transport({})) as fetcher:
        with pytest.raises(ReadOnlyViolation, match="not allowed"):
            fetcher._send("POST", PROVIDER_URL)


def test_offline_mode_blocks_everything(monkeypatch):
    monkeypatch.setenv("WIRECHECK_OFFLINE", "1")
    with ReadOnlyFetcher(transport=artifact_transport({})) as fetcher:
        with pytest.raises(ReadOnlyViolation, match="disabled"):
            fetcher.fetch_text(PROVIDER_URL)


def test_fetcher_requires_context_manager():
    with pytest.raises(RuntimeError, match="not open"):
        ReadOnlyFetcher().fetch_text(PROVIDER_URL)


def test_load_remote_artifact_set(provider_body):
    with ReadOnlyFetcher(transport=artifact_transport({PROVIDER_URL: provider_body})) as fetcher:
        artifacts = load_artifact_set(PROVIDER_URL, fetcher=fetcher)
    assert len(artifacts) == 1
    assert artifacts.records[0].source.artifact == PROVIDER_URL


def test_http_error_is_an_artifact_error():
    with ReadOnlyFetcher(transport=artifact_transport({})) as fetcher:
        with pytest.raises(ArtifactError, match="HTTP 404"):
            load_artifact_set(PROVIDER_URL, fetcher=fetcher)


def test_run_with_remote_provider(provider_body, write_jsonl):
    consumer = write_jsonl("consumer.jsonl", [consumer_record(outcome={"returns": [CAR_X]})])
    with ReadOnlyFetcher(transport=artifact_transport({PROVIDER_URL: provider_body})) as fetcher:
        report = VerificationRun(fetcher=fetcher).execute([PROVIDER_URL], [str(consumer)])
    assert report.verdict == Verdict.PASS
    assert report.contracts[0].source == PROVIDER_URL
