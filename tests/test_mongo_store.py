"""
Tests for MongoStore against in-memory stand-ins for a collection and GridFS.
"""
import copy
import io
import itertools

import pytest
from gridfs.errors import NoFile

from logic.mongo_db import BLOB_PREFIX, MongoStore
from logic.settings import Settings
from model.models import Series
from conftest import make_case, png_data_url


class FakeCollection:
    def __init__(self):
        self.docs = {}

    def find_one(self, query):
        doc = self.docs.get(query["_id"])
        return copy.deepcopy(doc) if doc is not None else None

    def replace_one(self, query, doc, upsert=False):
        assert upsert
        self.docs[query["_id"]] = copy.deepcopy(doc)


class FakeDB(dict):
    def __missing__(self, name):
        self[name] = FakeCollection()
        return self[name]


class FakeGridOut(io.BytesIO):
    def __init__(self, file_id, data):
        super().__init__(data)
        self._id = file_id


class FakeGridFS:
    def __init__(self):
        self.files = {}             # _id -> (filename, bytes)
        self._ids = itertools.count(1)

    def exists(self, filename=None):
        return any(name == filename for name, _ in self.files.values())

    def put(self, data, filename=None):
        file_id = next(self._ids)
        self.files[file_id] = (filename, data)
        return file_id

    def get_last_version(self, filename=None):
        for file_id, (name, data) in reversed(list(self.files.items())):
            if name == filename:
                return FakeGridOut(file_id, data)
        raise NoFile(filename)

    def find(self, query):
        return [FakeGridOut(i, d) for i, (n, d) in list(self.files.items()) if n == query["filename"]]

    def delete(self, file_id):
        del self.files[file_id]


@pytest.fixture
def backend():
    return FakeDB(), FakeGridFS()


def open_store(backend):
    db, fs = backend
    return MongoStore(Settings(store="mongo", mongo_uri="mongodb://unused"), db=db, fs=fs)


class TestMongoStore:
    def test_preferences_round_trip(self, backend):
        store = open_store(backend)
        store.save_favorites(["a"])
        store.save_theme("dark")
        again = open_store(backend)
        assert again.load_favorites() == ["a"]
        assert again.load_theme() == "dark"

    def test_images_live_in_gridfs(self, backend):
        db, fs = backend
        img = png_data_url()
        case = make_case("a", series=[Series("Série 1", [img, img])])
        open_store(backend).save_cases([case])

        stored = db["kv"].docs["cases"]["value"][0]
        refs = stored["series"][0]["images"]
        assert all(r.startswith(BLOB_PREFIX) for r in refs)
        assert len(fs.files) == 1
        assert open_store(backend).load_cases() == [case]

    def test_orphan_blobs_removed_on_delete(self, backend):
        _, fs = backend
        store = open_store(backend)
        keep = make_case("keep", series=[Series("S", [png_data_url((0, 255, 0))])])
        drop = make_case("drop", series=[Series("S", [png_data_url((0, 0, 255))])])
        store.save_cases([keep, drop])
        assert len(fs.files) == 2
        store.save_cases([keep])
        assert len(fs.files) == 1
        assert open_store(backend).load_cases() == [keep]

    def test_missing_blob_skips_the_case(self, backend):
        db, fs = backend
        open_store(backend).save_cases([
            make_case("a", series=[Series("S", [png_data_url()])]),
            make_case("b"),
        ])
        fs.files.clear()
        assert [c.id for c in open_store(backend).load_cases()] == ["b"]

    def test_requires_uri_without_injected_db(self):
        with pytest.raises(RuntimeError):
            MongoStore(Settings(store="mongo", mongo_uri=None))
