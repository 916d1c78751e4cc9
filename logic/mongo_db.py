import hashlib
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

import gridfs
from gridfs.errors import NoFile
from pymongo import MongoClient

from logic.record_store import KEY_CASES, RecordStore
from logic.settings import Settings

logger = logging.getLogger(__name__)

BLOB_PREFIX = "gridfs:"


def _sha1(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8")).hexdigest()


def _image_refs(docs: Iterable[Any]) -> Set[str]:
    refs = set()
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        for series in doc.get("series") or []:
            for img in (series or {}).get("images") or []:
                if isinstance(img, str) and img.startswith(BLOB_PREFIX):
                    refs.add(img[len(BLOB_PREFIX):])
    return refs


class MongoStore(RecordStore):
    """
    Key/value documents in one MongoDB collection: {_id: key, value: ...}.

    A key is written with a single-document upsert, so each write is atomic.
    Image payloads of the case collection live in GridFS, addressed by the
    SHA-1 of their data URL; the case document only keeps "gridfs:<sha1>" refs.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        db=None,
        fs=None,
    ):
        settings = settings or Settings(store="mongo")
        self.kv_collection = settings.mongo_kv_collection

        if db is None:
            if not settings.mongo_uri:
                raise RuntimeError("Missing MONGO_URI in environment or .env file")
            self.client = MongoClient(settings.mongo_uri)
            db = self.client[settings.mongo_db_name]
        self.db = db
        self.kv = self.db[self.kv_collection]
        self.fs = fs if fs is not None else gridfs.GridFS(self.db)
        self._blob_cache: Dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Raw key/value
    # -------------------------------------------------------------------------

    def read(self, key: str) -> Any:
        doc = self.kv.find_one({"_id": key})
        if not doc:
            return None
        return doc.get("value")

    def write(self, key: str, value: Any) -> None:
        self.kv.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)

    # -------------------------------------------------------------------------
    # Case images <-> GridFS
    # -------------------------------------------------------------------------

    def save_cases(self, cases) -> None:
        before = _image_refs(self.read(KEY_CASES) or [])
        docs = self._pack_cases([c.to_dict() for c in cases])
        self.write(KEY_CASES, docs)
        # blobs go first, the document second, orphans last
        self._delete_blobs(before - _image_refs(docs))

    def _pack_cases(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        for doc in docs:
            for series in doc["series"]:
                series["images"] = [self._put_blob(img) for img in series["images"]]
        return docs

    def _unpack_case(self, entry: Any) -> Any:
        if not isinstance(entry, dict):
            return entry
        doc = dict(entry)
        series_list = []
        for series in doc.get("series") or []:
            series = dict(series or {})
            series["images"] = [self._resolve_blob(img) for img in series.get("images") or []]
            series_list.append(series)
        doc["series"] = series_list
        return doc

    def _put_blob(self, data_url: str) -> str:
        digest = _sha1(data_url)
        if not self.fs.exists(filename=digest):
            self.fs.put(data_url.encode("utf-8"), filename=digest)
            logger.debug("[MongoDB] Stored image blob %s", digest)
        self._blob_cache[digest] = data_url
        return BLOB_PREFIX + digest

    def _resolve_blob(self, ref: Any) -> Any:
        if not isinstance(ref, str) or not ref.startswith(BLOB_PREFIX):
            return ref
        digest = ref[len(BLOB_PREFIX):]
        if digest in self._blob_cache:
            return self._blob_cache[digest]
        try:
            grid_out = self.fs.get_last_version(filename=digest)
        except NoFile as e:
            raise ValueError(f"Missing image blob {digest} in GridFS") from e
        data_url = grid_out.read().decode("utf-8")
        self._blob_cache[digest] = data_url
        return data_url

    def _delete_blobs(self, digests: Iterable[str]) -> None:
        for digest in digests:
            for grid_out in self.fs.find({"filename": digest}):
                self.fs.delete(grid_out._id)
            self._blob_cache.pop(digest, None)
            logger.debug("[MongoDB] Deleted orphan image blob %s", digest)
