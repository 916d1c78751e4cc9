"""
Durable key/value persistence for the case collection and user preferences.

Every key holds one JSON value and is always written whole: the case
collection, the favorites set, the visible-specialty set and the theme.
"""
import json
import logging
import os
import tempfile
from typing import Any, Dict, List

from model.models import DEFAULT_VISIBLE_SPECIALTIES, Case, Specialty

logger = logging.getLogger(__name__)

KEY_CASES = "cases"
KEY_FAVORITES = "favorites"
KEY_VISIBLE_SPECIALTIES = "visible_specialties"
KEY_THEME = "theme"

THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class RecordStore:
    """
    Typed load/save on top of a raw read/write pair.

    Subclasses implement read() (None when the key is absent, ValueError when
    the stored value cannot be parsed) and write(). Storage I/O errors are not
    caught here.
    """

    def read(self, key: str) -> Any:
        raise NotImplementedError

    def write(self, key: str, value: Any) -> None:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Cases
    # -------------------------------------------------------------------------

    def load_cases(self) -> List[Case]:
        raw = self._read_list(KEY_CASES)
        cases: List[Case] = []
        seen = set()
        for entry in raw:
            try:
                case = Case.from_dict(self._unpack_case(entry))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning("[Store] Skipping unreadable case entry: %s", e)
                continue
            if case.id in seen:
                logger.warning("[Store] Skipping duplicate case id %s", case.id)
                continue
            seen.add(case.id)
            cases.append(case)
        return cases

    def save_cases(self, cases: List[Case]) -> None:
        docs = [c.to_dict() for c in cases]
        self.write(KEY_CASES, self._pack_cases(docs))
        logger.debug("[Store] Saved %d cases", len(docs))

    def _pack_cases(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return docs

    def _unpack_case(self, entry: Any) -> Any:
        return entry

    # -------------------------------------------------------------------------
    # Favorites / preferences
    # -------------------------------------------------------------------------

    def load_favorites(self) -> List[str]:
        out: List[str] = []
        for v in self._read_list(KEY_FAVORITES):
            if isinstance(v, str) and v and v not in out:
                out.append(v)
        return out

    def save_favorites(self, favorites) -> None:
        self.write(KEY_FAVORITES, list(favorites))

    def load_visible_specialties(self) -> List[Specialty]:
        try:
            raw = self.read(KEY_VISIBLE_SPECIALTIES)
        except ValueError as e:
            logger.warning("[Store] Unreadable '%s', using defaults: %s", KEY_VISIBLE_SPECIALTIES, e)
            raw = None
        if not isinstance(raw, list):
            return list(DEFAULT_VISIBLE_SPECIALTIES)
        out: List[Specialty] = []
        for v in raw:
            try:
                s = Specialty(v)
            except ValueError:
                logger.warning("[Store] Ignoring unknown specialty %r", v)
                continue
            if s not in out:
                out.append(s)
        return out

    def save_visible_specialties(self, specialties) -> None:
        self.write(KEY_VISIBLE_SPECIALTIES, [Specialty(s).value for s in specialties])

    def load_theme(self) -> str:
        try:
            raw = self.read(KEY_THEME)
        except ValueError:
            raw = None
        return raw if raw in THEMES else DEFAULT_THEME

    def save_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme '{theme}'")
        self.write(KEY_THEME, theme)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _read_list(self, key: str) -> List[Any]:
        try:
            raw = self.read(key)
        except ValueError as e:
            logger.warning("[Store] Unreadable '%s', starting empty: %s", key, e)
            return []
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("[Store] '%s' is not a list, starting empty", key)
            return []
        return raw


class JsonFileStore(RecordStore):
    """One <key>.json file per key, replaced atomically on every write."""

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.data_dir, f"{key}.json")

    def read(self, key: str) -> Any:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def write(self, key: str, value: Any) -> None:
        fd, tmp_path = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
