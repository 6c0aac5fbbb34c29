"""Shared test fixtures and configuration.

Engine traffic is served by :class:`FakeEngine`, a small in-memory stand-in
for the search engine's REST API plugged into ``httpx.MockTransport``.  It
implements just enough of ``_search``, ``_search/scroll``, ``_bulk``,
``_cat/indices``, index deletion, and cluster health to exercise the client
end to end.
"""

from __future__ import annotations

import itertools
import json
import logging
import re
from collections.abc import Iterator
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from distant.client.client import AsyncDistantClient
from distant.config.settings import Settings
from distant.engine.transport import HttpxTransport
from distant.models.document import SearchDocument
from distant.models.index import BulkInputEntry

_TOKEN_RE = re.compile(r"\w+")
MAX_RESULT_WINDOW = 10_000


def _levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (ca != cb)))
        previous = current
    return previous[-1]


def _auto_fuzziness(term: str) -> int:
    if len(term) <= 2:
        return 0
    if len(term) <= 5:
        return 1
    return 2


def _error(status: int, error_type: str, reason: str) -> httpx.Response:
    return httpx.Response(
        status,
        json={
            "error": {
                "root_cause": [{"type": error_type, "reason": reason}],
                "type": error_type,
                "reason": reason,
            },
            "status": status,
        },
    )


class FakeEngine:
    """In-memory search engine speaking a subset of the REST API."""

    def __init__(self) -> None:
        self.indices: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self._scrolls: dict[str, dict[str, Any]] = {}
        self._context_ids = itertools.count(1)

    # ── Test helpers ─────────────────────────────────────────────────────

    def add(self, index: str, doc_id: str, source: dict[str, Any]) -> None:
        self.indices.setdefault(index, {})[doc_id] = source

    def expire_scrolls(self) -> None:
        self._scrolls.clear()

    @property
    def open_scrolls(self) -> int:
        return len(self._scrolls)

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]

    # ── Dispatch ─────────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path)
        method = request.method

        if path == "/_search/scroll":
            return self._clear_scroll(request) if method == "DELETE" else self._scroll(request)
        if path == "/_cat/indices" and method == "GET":
            return self._cat_indices()
        if path == "/_cluster/health" and method == "GET":
            return httpx.Response(
                200,
                json={"cluster_name": "fake", "status": "green", "number_of_nodes": 1, "active_shards": 1},
            )
        if path.endswith("/_bulk") and method == "POST":
            return self._bulk(path.strip("/").split("/")[0], request)
        if path.endswith("/_search") and method == "POST":
            return self._search(path.strip("/").split("/")[0].split(","), request)
        if method == "DELETE" and path.count("/") == 1:
            return self._delete_index(path.strip("/"))
        return _error(400, "unsupported_operation_exception", f"{method} {path}")

    # ── Endpoints ────────────────────────────────────────────────────────

    def _bulk(self, default_index: str, request: httpx.Request) -> httpx.Response:
        lines = [json.loads(line) for line in request.content.decode("utf-8").splitlines() if line]
        items = []
        for action_line, document in zip(lines[::2], lines[1::2], strict=True):
            (action, meta), = action_line.items()
            index = meta.get("_index", default_index)
            doc_id = meta["_id"]
            if not isinstance(document, dict):
                items.append(
                    {
                        action: {
                            "_index": index,
                            "_id": doc_id,
                            "status": 400,
                            "error": {"type": "mapper_parsing_exception", "reason": "document must be an object"},
                        }
                    }
                )
                continue
            existed = doc_id in self.indices.get(index, {})
            self.add(index, doc_id, document)
            items.append(
                {
                    action: {
                        "_index": index,
                        "_id": doc_id,
                        "status": 200 if existed else 201,
                        "result": "updated" if existed else "created",
                    }
                }
            )
        errors = any("error" in next(iter(item.values())) for item in items)
        return httpx.Response(200, json={"took": 3, "errors": errors, "items": items})

    def _search(self, indices: list[str], request: httpx.Request) -> httpx.Response:
        for index in indices:
            if index not in self.indices:
                return _error(404, "index_not_found_exception", f"no such index [{index}]")

        body = json.loads(request.content or b"{}")
        size = body.get("size", 10)
        offset = body.get("from", 0)
        if size + offset > MAX_RESULT_WINDOW:
            return _error(
                400,
                "illegal_argument_exception",
                f"Result window is too large, from + size must be less than or equal to: [{MAX_RESULT_WINDOW}]",
            )

        hits = self._match(indices, body.get("query", {}))
        for sort in body.get("sort", []):
            (field, spec), = sort.items()
            hits.sort(key=lambda h: h["_source"].get(field), reverse=spec.get("order") == "desc")
            for hit in hits:
                hit["_score"] = None

        payload: dict[str, Any] = {
            "took": 1,
            "timed_out": False,
            "_shards": {"total": 1, "successful": 1, "skipped": 0, "failed": 0},
            "hits": {
                "total": {"value": len(hits), "relation": "eq"},
                "max_score": max((h["_score"] or 0.0 for h in hits), default=None),
                "hits": hits[offset : offset + size],
            },
        }
        if "scroll" in request.url.params:
            context = str(next(self._context_ids))
            self._scrolls[context] = {"hits": hits, "position": offset + size, "size": size, "generation": 0}
            payload["_scroll_id"] = f"{context}:0"
        return httpx.Response(200, json=payload)

    def _scroll(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        token = body.get("scroll_id", "")
        context_id, _, generation = token.partition(":")
        if not generation.isdigit():
            return _error(400, "illegal_argument_exception", "Cannot parse scroll id")

        context = self._scrolls.get(context_id)
        if context is None or context["generation"] != int(generation):
            return _error(404, "search_phase_execution_exception", "No search context found")

        page = context["hits"][context["position"] : context["position"] + context["size"]]
        context["position"] += context["size"]
        context["generation"] += 1
        return httpx.Response(
            200,
            json={
                "_scroll_id": f"{context_id}:{context['generation']}",
                "took": 1,
                "timed_out": False,
                "hits": {
                    "total": {"value": len(context["hits"]), "relation": "eq"},
                    "max_score": None,
                    "hits": page,
                },
            },
        )

    def _clear_scroll(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        freed = 0
        for token in body.get("scroll_id", []):
            if self._scrolls.pop(token.partition(":")[0], None) is not None:
                freed += 1
        if not freed:
            return httpx.Response(404, json={"succeeded": True, "num_freed": 0})
        return httpx.Response(200, json={"succeeded": True, "num_freed": freed})

    def _cat_indices(self) -> httpx.Response:
        return httpx.Response(
            200,
            json=[
                {
                    "health": "green",
                    "status": "open",
                    "index": name,
                    "uuid": f"uuid-{name}",
                    "pri": "1",
                    "rep": "0",
                    "docs.count": str(len(docs)),
                    "docs.deleted": "0",
                    "store.size": "1kb",
                    "pri.store.size": "1kb",
                }
                for name, docs in self.indices.items()
            ],
        )

    def _delete_index(self, name: str) -> httpx.Response:
        if self.indices.pop(name, None) is None:
            return _error(404, "index_not_found_exception", f"no such index [{name}]")
        return httpx.Response(200, json={"acknowledged": True})

    # ── Matching ─────────────────────────────────────────────────────────

    def _match(self, indices: list[str], query: dict[str, Any]) -> list[dict[str, Any]]:
        hits: list[dict[str, Any]] = []
        for index in indices:
            for doc_id, source in self.indices[index].items():
                hit = self._score(index, doc_id, source, query)
                if hit is not None:
                    hits.append(hit)
        hits.sort(key=lambda h: h["_score"], reverse=True)
        return hits

    def _score(self, index: str, doc_id: str, source: dict[str, Any], query: dict[str, Any]) -> dict[str, Any] | None:
        base = {"_index": index, "_id": doc_id, "_source": source}
        if "term" in query:
            (field, value), = query["term"].items()
            if source.get(field.removesuffix(".keyword")) == value:
                return {**base, "_score": 1.0}
            return None

        clause = query.get("multi_match") or query.get("query_string") or {}
        terms = _TOKEN_RE.findall(str(clause.get("query", "")).lower())
        fields = clause.get("fields", [])
        if "*" in fields:
            fields = [name for name, value in source.items() if isinstance(value, str)]

        score = 0.0
        highlight: dict[str, list[str]] = {}
        for field in fields:
            value = source.get(field)
            if not isinstance(value, str):
                continue
            matched = {
                token
                for token in _TOKEN_RE.findall(value)
                for term in terms
                if _levenshtein(term, token.lower()) <= _auto_fuzziness(term)
            }
            if matched:
                score += len(matched)
                highlight[field] = [_TOKEN_RE.sub(lambda m: f"<em>{m[0]}</em>" if m[0] in matched else m[0], value)]
        if not score:
            return None
        return {**base, "_score": score, "highlight": highlight}


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo handler changes made by setup_logging (app lifespan, CLI)."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers, root.level = handlers, level


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        engine={"hosts": ["http://engine.test"], "scroll_keep_alive": "5m"},
    )


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def transport_factory(fake_engine: FakeEngine):
    """Build fresh transports bound to the shared fake engine."""

    def _make() -> HttpxTransport:
        return HttpxTransport(
            client=httpx.AsyncClient(
                base_url="http://engine.test",
                transport=httpx.MockTransport(fake_engine.handler),
            )
        )

    return _make


@pytest.fixture
def transport(transport_factory) -> HttpxTransport:
    return transport_factory()


@pytest.fixture
def client(transport: HttpxTransport) -> AsyncDistantClient[SearchDocument]:
    return AsyncDistantClient(transport, document_type=SearchDocument)


@pytest.fixture
def fruit_entries() -> list[BulkInputEntry[SearchDocument]]:
    """The two-document banana/apple corpus."""
    return [
        BulkInputEntry(
            doc_type="pdf",
            unique_id="unique_a",
            document=SearchDocument(unique_id="unique_a", unique_id_type="citekey", text="banana"),
        ),
        BulkInputEntry(
            doc_type="pdf",
            unique_id="uniqueb",
            document=SearchDocument(unique_id="uniqueb", unique_id_type="citekey", text="apple"),
        ),
    ]


@pytest.fixture
def sample_response() -> dict[str, Any]:
    """A raw search response with two highlighted hits and a scroll token."""
    return {
        "_scroll_id": "ctx-1",
        "took": 7,
        "timed_out": False,
        "_shards": {"total": 1, "successful": 1, "skipped": 0, "failed": 0},
        "hits": {
            "total": {"value": 2, "relation": "eq"},
            "max_score": 2.5,
            "hits": [
                {
                    "_index": "notes",
                    "_id": "n1",
                    "_score": 2.5,
                    "_source": {"uniqueId": "n1", "title": "Fruit", "text": "red apple and green apple"},
                    "highlight": {
                        "text": ["red <em>apple</em> and green <em>apple</em>"],
                        "title": ["<em>Fruit</em>"],
                    },
                },
                {
                    "_index": "notes",
                    "_id": "n2",
                    "_score": 1.0,
                    "_source": {"uniqueId": "n2", "text": "pineapple", "filePath": "/tmp/a.pdf"},
                },
            ],
        },
    }


@pytest.fixture
def sample_raw(sample_response: dict[str, Any]) -> bytes:
    return json.dumps(sample_response).encode("utf-8")
