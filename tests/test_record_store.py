"""
Tests for the JSON file store and the typed load/save layer.
"""
import json
import os

from logic.record_store import JsonFileStore
from model.models import Series, Specialty
from conftest import InMemoryStore, make_case, png_data_url


class TestJsonFileStore:
    def test_round_trip(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        cases = [make_case("a", series=[Series("Série 1", [png_data_url()])]), make_case("b")]
        store.save_cases(cases)
        store.save_favorites(["b"])
        store.save_visible_specialties([Specialty.ORL, Specialty.THORACIC])
        store.save_theme("dark")

        again = JsonFileStore(str(tmp_path))
        assert again.load_cases() == cases
        assert again.load_favorites() == ["b"]
        assert again.load_visible_specialties() == [Specialty.ORL, Specialty.THORACIC]
        assert again.load_theme() == "dark"

    def test_absent_keys_give_defaults(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "fresh"))
        assert store.load_cases() == []
        assert store.load_favorites() == []
        assert len(store.load_visible_specialties()) == 6
        assert store.load_theme() == "light"

    def test_corrupt_file_loads_empty(self, tmp_path):
        (tmp_path / "cases.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "theme.json").write_text("???", encoding="utf-8")
        store = JsonFileStore(str(tmp_path))
        assert store.load_cases() == []
        assert store.load_theme() == "light"

    def test_write_leaves_no_temp_files(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        store.save_cases([make_case("a")])
        store.save_cases([make_case("b")])
        assert sorted(os.listdir(tmp_path)) == ["cases.json"]
        with open(tmp_path / "cases.json", encoding="utf-8") as f:
            assert [c["id"] for c in json.load(f)] == ["b"]

    def test_json_uses_camel_case_fields(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        store.save_cases([make_case("a")])
        with open(tmp_path / "cases.json", encoding="utf-8") as f:
            doc = json.load(f)[0]
        assert set(doc) == {"id", "patientId", "lastName", "firstName", "specialty", "difficulty",
                            "modality", "clinicalNote", "diagnosis", "dateAdded", "series"}
        assert doc["specialty"] == "Neuroradiologie"


class TestTypedLoading:
    def test_bad_entries_are_skipped(self):
        good = make_case("ok").to_dict()
        unknown_specialty = dict(make_case("x").to_dict(), specialty="Dermatologie")
        no_id = {k: v for k, v in make_case("y").to_dict().items() if k != "id"}
        store = InMemoryStore({"cases": [good, unknown_specialty, no_id, "junk", good]})
        assert [c.id for c in store.load_cases()] == ["ok"]

    def test_non_list_value_is_empty(self):
        store = InMemoryStore({"cases": {"a": 1}, "favorites": "a"})
        assert store.load_cases() == []
        assert store.load_favorites() == []

    def test_favorites_deduplicated(self):
        store = InMemoryStore({"favorites": ["a", "a", 3, "", "b"]})
        assert store.load_favorites() == ["a", "b"]

    def test_unknown_specialties_dropped(self):
        store = InMemoryStore({"visible_specialties": ["ORL", "Dermatologie", "ORL"]})
        assert store.load_visible_specialties() == [Specialty.ORL]

    def test_empty_visible_list_is_kept(self):
        store = InMemoryStore({"visible_specialties": []})
        assert store.load_visible_specialties() == []

    def test_unknown_theme_falls_back(self):
        store = InMemoryStore({"theme": "sepia"})
        assert store.load_theme() == "light"
