"""Tests for the command-line interface."""

from __future__ import annotations

import json
from typing import Any

import pytest

from distant import cli
from distant.engine.exceptions import TransportError
from distant.models.index import IndexDescriptor
from distant.models.query import SearchRequest
from distant.models.result import SearchResult


class _StubClient:
    """Stands in for DistantClient; records the requests it receives."""

    requests: list[SearchRequest] = []
    raw: dict[str, Any] = {}
    fail = False

    def __init__(self, settings: Any = None, **kwargs: Any) -> None:
        pass

    def search(self, request: SearchRequest) -> SearchResult[Any]:
        if self.fail:
            raise TransportError("connection refused")
        self.requests.append(request)
        return SearchResult[dict[str, Any]].model_validate(
            {"hits": self.raw["hits"]["hits"], "total": self.raw["hits"]["total"], "took": self.raw["took"]}
        )

    def scroll_all(self, request: SearchRequest) -> list[SearchResult[Any]]:
        return [self.search(request), self.search(request)]

    def list_indices(self) -> list[IndexDescriptor]:
        return [
            IndexDescriptor.model_validate({"index": "notes", "health": "green", "docs.count": "3", "store.size": "1kb"}),
            IndexDescriptor.model_validate({"index": "books", "health": None, "status": "close"}),
        ]


@pytest.fixture(autouse=True)
def stub_client(monkeypatch: pytest.MonkeyPatch, sample_response: dict[str, Any]) -> type[_StubClient]:
    monkeypatch.setenv("DISTANT_ENGINE__HOSTS", '["http://engine.test"]')
    monkeypatch.setattr("distant.client.client.DistantClient", _StubClient)
    monkeypatch.setattr(_StubClient, "requests", [])
    monkeypatch.setattr(_StubClient, "raw", sample_response)
    monkeypatch.setattr(_StubClient, "fail", False)
    return _StubClient


class TestSearchCommand:
    def test_search_prints_envelope(self, capsys: pytest.CaptureFixture[str], stub_client: type[_StubClient]) -> None:
        cli.main(["search", "notes", "books", "apple", "-f", "text", "-f", "title", "--sort", "dbId:desc"])

        (request,) = stub_client.requests
        assert request.indices == ["notes", "books"]
        assert request.query_text == "apple"
        assert request.query_fields == ["text", "title"]
        assert request.sort is not None
        assert request.sort.field == "dbId"
        assert request.sort.order.value == "desc"

        data = json.loads(capsys.readouterr().out)
        assert data["metadata"]["result_total_items"] == 2
        assert [r["id"] for r in data["results"]] == ["n1", "n2"]

    def test_default_fields(self, stub_client: type[_StubClient]) -> None:
        cli.main(["search", "notes", "apple"])
        assert stub_client.requests[0].query_fields == ["*"]

    def test_all_pages_continue_ranks(self, capsys: pytest.CaptureFixture[str]) -> None:
        cli.main(["search", "notes", "apple", "--all"])

        out = capsys.readouterr().out
        decoder = json.JSONDecoder()
        pages, position = [], 0
        while position < len(out.strip()):
            page, end = decoder.raw_decode(out, position)
            pages.append(page)
            position = end + 1
        assert [[r["metadata"]["index"] for r in p["results"]] for p in pages] == [[0, 1], [2, 3]]

    def test_all_pages_request_a_scroll_context(self, stub_client: type[_StubClient]) -> None:
        cli.main(["search", "notes", "apple", "--all"])
        assert stub_client.requests[0].scroll == "5m"
        assert stub_client.requests[0].offset == 0

    def test_all_pages_with_offset_rejected(
        self, capsys: pytest.CaptureFixture[str], stub_client: type[_StubClient]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["search", "notes", "apple", "--all", "--offset", "3"])
        assert exc_info.value.code == 1
        assert "offset cannot be combined with scroll" in capsys.readouterr().err
        assert stub_client.requests == []

    def test_invalid_sort_order(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["search", "notes", "apple", "--sort", "dbId:sideways"])
        assert exc_info.value.code == 1
        assert "invalid search" in capsys.readouterr().err

    def test_default_index(self, monkeypatch: pytest.MonkeyPatch, stub_client: type[_StubClient]) -> None:
        monkeypatch.setenv("DISTANT_ENGINE__DEFAULT_INDEX", "library")
        cli.main(["search", "apple"])
        assert stub_client.requests[0].indices == ["library"]
        assert stub_client.requests[0].query_text == "apple"

    def test_requires_index_and_query(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["search", "apple"])
        assert exc_info.value.code == 1

    def test_engine_failure_exits_2(self, capsys: pytest.CaptureFixture[str], stub_client: type[_StubClient]) -> None:
        stub_client.fail = True
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["search", "notes", "apple"])
        assert exc_info.value.code == 2
        assert "connection refused" in capsys.readouterr().err


class TestIndicesCommand:
    def test_lists_indices_sorted(self, capsys: pytest.CaptureFixture[str]) -> None:
        cli.main(["indices"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["HEALTH", "INDEX", "DOCS", "DELETED", "SIZE"]
        assert lines[1].split() == ["-", "books", "0", "0", "-"]
        assert lines[2].split() == ["green", "notes", "3", "0", "1kb"]


class TestGlobalOptions:
    def test_missing_config_file(self, tmp_path: Any) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--config", str(tmp_path / "nope.yaml"), "indices"])
        assert exc_info.value.code == 1

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.main([])
