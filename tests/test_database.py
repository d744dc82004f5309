from collections import defaultdict
from unittest.mock import MagicMock

import pytest

from catalog import CatalogStore
from database import STATE_ID, MongoCatalogBackend, connect, get_documents
from schemas import ProjectCreate


@pytest.fixture
def collections():
    return defaultdict(MagicMock)


@pytest.fixture
def db(collections):
    db = MagicMock()
    db.__getitem__.side_effect = collections.__getitem__
    return db


def test_connect_requires_url_and_name():
    assert connect(None, "portfolio") is None
    assert connect("mongodb://localhost", None) is None


def test_get_documents_strips_mongo_ids(db, collections):
    collections["project"].find.return_value = [{"_id": "abc", "id": 1, "title": "X"}]
    assert get_documents(db, "project") == [{"id": 1, "title": "X"}]


def test_load_without_state_returns_none(db, collections):
    collections["catalog_state"].find_one.return_value = None
    assert MongoCatalogBackend(db).load() is None


def test_load_reassembles_catalog(db, collections):
    collections["catalog_state"].find_one.return_value = {
        "_id": STATE_ID,
        "currently_learning": ["Rust"],
        "technology_tags": ["all", "Go"],
        "next_id": 4,
        "github_repos": 2,
    }
    collections["project"].find.return_value.sort.return_value = [{"_id": "x", "id": 3, "title": "X"}]
    collections["skill"].find.return_value.sort.return_value = [
        {"_id": "y", "name": "Go", "level": 60, "category": "backend", "position": 0}
    ]

    state = MongoCatalogBackend(db).load()

    assert state["projects"] == [{"id": 3, "title": "X"}]
    assert state["skills"] == [{"name": "Go", "level": 60, "category": "backend"}]
    assert state["next_id"] == 4
    assert state["currently_learning"] == ["Rust"]


def test_store_writes_through_to_collections(db, collections):
    store = CatalogStore(MongoCatalogBackend(db))
    store.create_project(ProjectCreate(title="X", technologies=["Go"]))

    inserted = collections["project"].insert_many.call_args.args[0]
    assert inserted[0]["title"] == "X"
    assert inserted[0]["technologies"] == ["Go"]

    skills = collections["skill"].insert_many.call_args.args[0]
    assert [s["position"] for s in skills] == list(range(6))

    filter_doc, state_doc = collections["catalog_state"].replace_one.call_args.args
    assert filter_doc == {"_id": STATE_ID}
    assert state_doc["next_id"] == 2
    assert collections["catalog_state"].replace_one.call_args.kwargs["upsert"] is True


def test_close_closes_client(db):
    MongoCatalogBackend(db).close()
    db.client.close.assert_called_once()
