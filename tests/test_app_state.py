"""
Tests for AppState: creation, deletion cascade, favorites, preferences, search.
"""
import pytest

from logic.app_state import ID_LENGTH, AppState, new_case_id, utc_now_iso
from model.models import (
    DEFAULT_VISIBLE_SPECIALTIES,
    Difficulty,
    Modality,
    SemanticMatch,
    SemanticResult,
    Specialty,
)
from conftest import InMemoryStore, make_case


def case_fields(**overrides):
    fields = dict(
        patient_id="IPP-9",
        last_name="Durand",
        first_name="Léa",
        specialty=Specialty.THORACIC,
        difficulty=Difficulty.INTERMEDIATE,
        modality=Modality.CT,
        clinical_note="Dyspnée aiguë",
        diagnosis="Embolie pulmonaire",
        series=[],
    )
    fields.update(overrides)
    return fields


@pytest.fixture
def loaded():
    store = InMemoryStore({
        "cases": [make_case("a").to_dict(), make_case("b").to_dict()],
        "favorites": ["a"],
    })
    return AppState.load(store, clock=lambda: "2025-05-05T12:00:00.000Z"), store


class TestLoad:
    def test_empty_store_gives_defaults(self, store):
        state = AppState.load(store)
        assert state.cases == []
        assert state.favorites == []
        assert state.visible_specialties == DEFAULT_VISIBLE_SPECIALTIES
        assert state.theme == "light"
        assert state.active_tab == "Tous"

    def test_favorites_of_missing_cases_are_pruned(self):
        store = InMemoryStore({"cases": [make_case("a").to_dict()], "favorites": ["a", "ghost"]})
        state = AppState.load(store)
        assert state.favorites == ["a"]
        assert store.read("favorites") == ["a"]


class TestCreate:
    def test_create_prepends_and_persists(self, loaded):
        state, store = loaded
        case = state.create_case(**case_fields())
        assert state.cases[0] is case
        assert case.date_added == "2025-05-05T12:00:00.000Z"
        assert store.read("cases")[0]["id"] == case.id
        assert len(store.read("cases")) == 3

    def test_ids_are_fresh(self, loaded):
        state, _ = loaded
        ids = {state.create_case(**case_fields()).id for _ in range(20)}
        assert len(ids) == 20
        assert not ids & {"a", "b"}

    def test_new_case_id_shape(self):
        cid = new_case_id(set())
        assert len(cid) == ID_LENGTH
        assert cid.isalnum() and cid == cid.lower()

    def test_utc_now_iso_is_zulu(self):
        assert utc_now_iso().endswith("Z")


class TestDelete:
    def test_declined_confirmation_changes_nothing(self, loaded):
        state, store = loaded
        writes = list(store.writes)
        assert state.delete_case("a", confirm=lambda case: False) is False
        assert [c.id for c in state.cases] == ["a", "b"]
        assert state.favorites == ["a"]
        assert store.writes == writes

    def test_delete_cascades_to_favorites(self, loaded):
        state, store = loaded
        state.toggle_expanded("a")
        asked = []
        assert state.delete_case("a", confirm=lambda case: asked.append(case.id) or True)
        assert asked == ["a"]
        assert [c.id for c in state.cases] == ["b"]
        assert state.favorites == []
        assert store.read("favorites") == []
        assert [c["id"] for c in store.read("cases")] == ["b"]
        assert state.expanded_case_id is None

    def test_unknown_id_is_a_no_op(self, loaded):
        state, _ = loaded
        assert state.delete_case("nope", confirm=lambda case: True) is False
        assert len(state.cases) == 2


class TestToggles:
    def test_favorite_toggle_is_an_involution(self, loaded):
        state, store = loaded
        assert state.toggle_favorite("b") is True
        assert store.read("favorites") == ["a", "b"]
        assert state.toggle_favorite("b") is False
        assert state.favorites == ["a"]

    def test_favorite_of_unknown_case_ignored(self, loaded):
        state, _ = loaded
        assert state.toggle_favorite("ghost") is False
        assert state.favorites == ["a"]

    def test_theme_toggle_persists(self, loaded):
        state, store = loaded
        assert state.toggle_theme() == "dark"
        assert store.read("theme") == "dark"
        assert state.toggle_theme() == "light"

    def test_hiding_active_specialty_falls_back_to_all(self, loaded):
        state, store = loaded
        state.set_active_tab("Thoracique")
        assert state.toggle_specialty_visibility(Specialty.THORACIC) is False
        assert state.active_tab == "Tous"
        assert "Thoracique" not in store.read("visible_specialties")
        assert state.toggle_specialty_visibility(Specialty.THORACIC) is True
        assert state.tabs[-1] == "Thoracique"

    def test_anonymized_is_not_persisted(self, loaded):
        state, store = loaded
        writes = list(store.writes)
        state.toggle_anonymized()
        assert state.view().anonymized is True
        assert store.writes == writes

    def test_expanded_toggle(self, loaded):
        state, _ = loaded
        assert state.toggle_expanded("a") == "a"
        assert state.toggle_expanded("a") is None


class TestSearch:
    def test_clearing_query_drops_semantic_result(self, loaded):
        state, _ = loaded
        state.set_query("embolie")
        state.set_semantic_result(SemanticResult([SemanticMatch("b", "")], ["EP"]))
        state.set_query("embolie pulm")
        assert state.semantic_result is not None
        state.set_query("")
        assert state.semantic_result is None

    def test_view_reflects_semantic_matches(self, loaded):
        state, _ = loaded
        state.set_query("introuvable")
        state.set_semantic_result(SemanticResult([SemanticMatch("b", "proche")], []))
        assert [c.id for c in state.view().cases] == ["b"]

    def test_unknown_tab_rejected(self, loaded):
        state, _ = loaded
        with pytest.raises(ValueError):
            state.set_active_tab("Dermatologie")


class TestLateRanking:
    def test_ranking_for_current_query_is_applied(self, loaded):
        state, _ = loaded
        state.set_query("embolie")
        result = SemanticResult([SemanticMatch("b", "proche")], [])
        assert state.apply_semantic_result("embolie", result) is True
        assert state.semantic_result is result

    def test_ranking_after_query_cleared_is_dropped(self, loaded):
        state, _ = loaded
        state.set_query("embolie")
        state.set_query("")
        assert state.apply_semantic_result("embolie", SemanticResult([], ["EP"])) is False
        assert state.semantic_result is None

    def test_ranking_after_query_edited_is_dropped(self, loaded):
        state, _ = loaded
        state.set_query("embolie")
        state.set_query("embolie pulmonaire")
        assert state.apply_semantic_result("embolie", SemanticResult([], ["EP"])) is False
        assert state.semantic_result is None


class TestVisibleExpanded:
    def test_expanded_case_in_list(self, loaded):
        state, _ = loaded
        state.toggle_expanded("a")
        assert state.visible_expanded_id() == "a"

    def test_filtered_out_case_is_not_actionable(self, loaded):
        state, _ = loaded
        state.toggle_expanded("b")
        state.set_active_tab("Favoris")
        assert state.visible_expanded_id() is None
        state.set_active_tab("Tous")
        state.set_query("introuvable")
        assert state.visible_expanded_id() is None

    def test_nothing_expanded(self, loaded):
        state, _ = loaded
        assert state.visible_expanded_id() is None
