import pytest

import docsearch


class DummyEngine:
    def __init__(self, created_counter):
        created_counter.append(True)
        self.initialized = 0
        self.closed = False

    def initialize(self):
        self.initialized += 1

    def close(self):
        self.closed = True

    def search(self, query, **kwargs):
        return [("search", query, kwargs["limit"])]

    def index_document(self, path):
        return ("indexed", path)

    def index_documents(self, paths):
        return [("indexed", path) for path in paths]

    def delete_document(self, document_id):
        return document_id == "known"

    def list_documents(self):
        return ["doc"]

    def suggest_corrections(self, query, max_suggestions=5):
        return [query][:max_suggestions]


@pytest.fixture
def created(monkeypatch):
    created_instances: list[bool] = []
    monkeypatch.setattr(docsearch, "_default_engine", None)
    monkeypatch.setattr(docsearch, "_close_callback_registered", False)
    monkeypatch.setattr(docsearch, "SearchEngine", lambda: DummyEngine(created_instances))
    return created_instances


def test_default_engine_is_created_lazily(created, monkeypatch):
    register_calls: list[object] = []
    monkeypatch.setattr("atexit.register", register_calls.append)

    assert created == []
    assert register_calls == []

    assert docsearch.search("example", limit=3) == [("search", "example", 3)]
    assert len(created) == 1
    assert len(register_calls) == 1

    engine = docsearch.get_default_engine()
    assert len(created) == 1
    assert len(register_calls) == 1
    assert engine.initialized == 2
    assert register_calls[0] == engine.close


def test_module_functions_delegate_to_default_engine(created, monkeypatch):
    monkeypatch.setattr("atexit.register", lambda func: None)

    assert docsearch.index_document("a.txt") == ("indexed", "a.txt")
    assert docsearch.index_documents(["a.txt", "b.txt"]) == [
        ("indexed", "a.txt"),
        ("indexed", "b.txt"),
    ]
    assert docsearch.delete_document("known") is True
    assert docsearch.delete_document("other") is False
    assert docsearch.list_documents() == ["doc"]
    assert docsearch.suggest_corrections("reprot", max_suggestions=1) == ["reprot"]
    assert len(created) == 1
