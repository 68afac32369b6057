"""Unit tests for the one-shot ingestion engine."""

from __future__ import annotations

import asyncio

import httpx
import pytest

import ingest.engine as ingest_engine
from core.config import PipelineOptions
from core.errors import DocumentParseError, MissingCredentialError
from core.types import Credentials, ItemOutcome, ParsedDocument
from ingest.engine import IngestionEngine, group_outcomes, split_key

_CREDENTIALS = Credentials(account_id="acct", namespace_id="ns", api_token="secret")


def _engine(fake_kv, **option_fields) -> IngestionEngine:
    options = PipelineOptions(quiet=True, **option_fields)
    return IngestionEngine(options, transport=fake_kv.transport)


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("posts/a-b", ("posts", "a-b")),
        ("about", ("none", "about")),
        ("docs/guides/intro", ("docs", "guides/intro")),
    ],
)
def test_split_key_uses_first_separator(key: str, expected: tuple[str, str]) -> None:
    """Keys should split on the first separator or use the fallback."""
    assert split_key(key) == expected


def test_group_outcomes_skips_failures_and_keeps_order() -> None:
    """Grouping should drop failed outcomes and keep input order."""
    outcomes = [
        ItemOutcome("posts/b", "posts", "b", item={"kv_key": "posts/b"}),
        ItemOutcome("posts/x", "posts", "x", error="boom"),
        ItemOutcome("posts/a", "posts", "a", item={"kv_key": "posts/a"}),
    ]

    collections = group_outcomes(outcomes)

    assert list(collections["posts"]) == ["b", "a"]


@pytest.mark.asyncio
async def test_ingest_groups_every_listed_key(fake_kv) -> None:
    """Every successfully fetched key should yield exactly one item."""
    fake_kv.values = {
        "posts/first": "---\ntitle: First\n---\nHello",
        "posts/second": "Plain body",
        "about": "---\nlayout: page\n---\nAbout us",
    }

    collections = await _engine(fake_kv).ingest(_CREDENTIALS)

    assert sum(len(items) for items in collections.values()) == 3
    assert collections["posts"]["first"] == {
        "content": "Hello",
        "title": "First",
        "kv_key": "posts/first",
    }
    assert collections["none"]["about"]["layout"] == "page"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "credentials, missing_name",
    [
        (Credentials(None, "ns", "secret"), "CLOUDFLARE_ACCOUNT_ID"),
        (Credentials("acct", "", "secret"), "CLOUDFLARE_KV_NS_ID"),
        (Credentials("acct", "ns", None), "CLOUDFLARE_API_TOKEN"),
    ],
)
async def test_ingest_requires_every_credential(
    fake_kv, credentials: Credentials, missing_name: str
) -> None:
    """Missing credentials should fail before any request is sent."""
    engine = _engine(fake_kv)

    with pytest.raises(MissingCredentialError) as error_info:
        await engine.ingest(credentials)

    assert error_info.value.missing_variables == (missing_name,)
    assert fake_kv.requests == []
    assert engine.has_run is False


@pytest.mark.asyncio
async def test_ingest_runs_once_per_engine(fake_kv) -> None:
    """A second ingest should reuse the first result without requests."""
    fake_kv.values = {"posts/a": "A", "posts/b": "B"}
    engine = _engine(fake_kv)

    first = await engine.ingest(_CREDENTIALS)
    request_count = len(fake_kv.requests)
    second = await engine.ingest(_CREDENTIALS)

    assert request_count == 3
    assert len(fake_kv.requests) == request_count
    assert second == first


@pytest.mark.asyncio
async def test_concurrent_first_calls_share_one_run(fake_kv) -> None:
    """Callers racing on the first ingest should share one listing."""
    fake_kv.values = {"posts/a": "A"}
    engine = _engine(fake_kv)

    first, second = await asyncio.gather(
        engine.ingest(_CREDENTIALS), engine.ingest(_CREDENTIALS)
    )

    assert first == second
    assert len(fake_kv.requests) == 2


@pytest.mark.asyncio
async def test_failed_fetch_does_not_affect_siblings(fake_kv) -> None:
    """A server error for one key should only drop that key."""
    fake_kv.values = {"posts/ok": "fine", "posts/bad": "never served", "pages/home": "home"}
    fake_kv.failing_keys = {"posts/bad"}

    collections = await _engine(fake_kv).ingest(_CREDENTIALS)

    assert list(collections["posts"]) == ["ok"]
    assert list(collections["pages"]) == ["home"]


@pytest.mark.asyncio
async def test_missing_value_is_excluded(fake_kv) -> None:
    """Keys deleted between listing and fetching should be skipped."""
    fake_kv.values = {"posts/kept": "kept"}
    fake_kv.listed_keys = ["posts/kept", "posts/deleted"]

    collections = await _engine(fake_kv).ingest(_CREDENTIALS)

    assert list(collections["posts"]) == ["kept"]


@pytest.mark.asyncio
async def test_parse_failure_is_isolated(fake_kv) -> None:
    """A parser error for one value should only drop that key."""
    fake_kv.values = {"posts/good": "good", "posts/broken": "broken"}

    def _parser(text: str) -> ParsedDocument:
        if text == "broken":
            raise DocumentParseError("unparseable")
        return ParsedDocument(body=text, fields={})

    collections = await _engine(fake_kv).ingest(_CREDENTIALS, _parser)

    assert list(collections["posts"]) == ["good"]


@pytest.mark.asyncio
async def test_listing_failure_yields_empty_result(fake_kv) -> None:
    """A failed listing should be contained and return no collections."""
    fake_kv.values = {"posts/a": "A"}
    fake_kv.list_status = 500

    collections = await _engine(fake_kv).ingest(_CREDENTIALS)

    assert collections == {}
    assert fake_kv.value_requests == []


@pytest.mark.asyncio
async def test_empty_listing_yields_no_fetches(fake_kv) -> None:
    """An empty namespace should return no collections and fetch nothing."""
    collections = await _engine(fake_kv).ingest(_CREDENTIALS)

    assert collections == {}
    assert len(fake_kv.requests) == 1


@pytest.mark.asyncio
async def test_fetches_are_issued_concurrently(fake_kv) -> None:
    """Without a cap every fetch should be in flight at once."""
    fake_kv.values = {f"posts/{index}": str(index) for index in range(6)}

    await _engine(fake_kv).ingest(_CREDENTIALS)

    assert fake_kv.max_in_flight == 6


@pytest.mark.asyncio
async def test_max_concurrency_caps_in_flight_fetches(fake_kv) -> None:
    """A configured cap should bound simultaneous fetches."""
    fake_kv.values = {f"posts/{index}": str(index) for index in range(6)}

    collections = await _engine(fake_kv, max_concurrency=2).ingest(_CREDENTIALS)

    assert fake_kv.max_in_flight <= 2
    assert len(collections["posts"]) == 6


class _RecordingLogger:
    def __init__(self) -> None:
        self.warnings: list[tuple[str, dict[str, object]]] = []

    def warning(self, event: str, **fields: object) -> None:
        self.warnings.append((event, fields))


@pytest.mark.asyncio
async def test_colliding_item_keys_keep_first_listed_key(
    fake_kv, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Keys mapping to one collection entry should keep the first and warn."""
    recorder = _RecordingLogger()
    monkeypatch.setattr("ingest.engine._LOGGER", recorder)
    fake_kv.values = {"x": "plain", "none/x": "prefixed"}

    collections = await _engine(fake_kv).ingest(_CREDENTIALS)

    assert collections == {"none": {"x": {"content": "plain", "kv_key": "x"}}}
    assert recorder.warnings == [
        (
            "kv_item_key_collision",
            {"collection": "none", "item_key": "x", "kept_key": "x", "dropped_key": "none/x"},
        )
    ]


@pytest.mark.asyncio
async def test_client_construction_failure_does_not_consume_run(
    fake_kv, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A failure building the client should leave the engine retryable."""
    fake_kv.values = {"posts/a": "A"}
    engine = _engine(fake_kv)
    real_client = ingest_engine.KVStoreClient
    attempts: list[str] = []

    def _flaky_client(*args, **kwargs):
        attempts.append("built")
        if len(attempts) == 1:
            raise httpx.InvalidURL("bad base url")
        return real_client(*args, **kwargs)

    monkeypatch.setattr(ingest_engine, "KVStoreClient", _flaky_client)

    with pytest.raises(httpx.InvalidURL):
        await engine.ingest(_CREDENTIALS)
    assert engine.has_run is False
    collections = await engine.ingest(_CREDENTIALS)

    assert list(collections["posts"]) == ["a"]
