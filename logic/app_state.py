"""
Single source of truth for the catalog.

The controller owns one AppState and changes it only through the named
operations below. Persisted keys are rewritten whole after each mutation that
touches them; transient search state never reaches the store.
"""
import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Callable, List, Optional

from logic.record_store import DEFAULT_THEME, RecordStore
from logic.view_model import CaseListView, compute_view, tabs_for
from model.models import TAB_ALL, TAB_FAVORITES, Case, SemanticResult, Specialty

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 9


def new_case_id(existing) -> str:
    while True:
        cid = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
        if cid not in existing:
            return cid


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AppState:
    def __init__(self, store: RecordStore, clock: Callable[[], str] = utc_now_iso):
        self.store = store
        self._clock = clock
        self._issued_ids = set()

        self.cases: List[Case] = []
        self.favorites: List[str] = []
        self.visible_specialties: List[Specialty] = []
        self.theme: str = DEFAULT_THEME

        # transient
        self.active_tab: str = TAB_ALL
        self.query: str = ""
        self.semantic_result: Optional[SemanticResult] = None
        self.expanded_case_id: Optional[str] = None
        self.anonymized: bool = False

    # ---------- lifecycle ----------
    @classmethod
    def load(cls, store: RecordStore, **kwargs) -> "AppState":
        state = cls(store, **kwargs)
        state.cases = store.load_cases()
        state.visible_specialties = store.load_visible_specialties()
        state.theme = store.load_theme()
        ids = {c.id for c in state.cases}
        state._issued_ids |= ids
        favorites = store.load_favorites()
        state.favorites = [fid for fid in favorites if fid in ids]
        if len(state.favorites) != len(favorites):
            logger.info("[Store] Dropped %d favorites of missing cases",
                        len(favorites) - len(state.favorites))
            store.save_favorites(state.favorites)
        logger.info("[Store] Loaded %d cases, %d favorites", len(state.cases), len(state.favorites))
        return state

    # ---------- lookups ----------
    def case_ids(self) -> set:
        return {c.id for c in self.cases}

    def get_case(self, case_id: str) -> Optional[Case]:
        for c in self.cases:
            if c.id == case_id:
                return c
        return None

    def is_favorite(self, case_id: str) -> bool:
        return case_id in self.favorites

    @property
    def tabs(self) -> List[str]:
        return tabs_for(self.visible_specialties)

    # ---------- mutations ----------
    def create_case(self, **fields) -> Case:
        """Assign a fresh id and timestamp, prepend, persist."""
        case_id = new_case_id(self.case_ids() | self._issued_ids)
        self._issued_ids.add(case_id)
        case = Case(id=case_id, date_added=self._clock(), **fields)
        self.cases = [case] + self.cases
        self.store.save_cases(self.cases)
        logger.info("[Cases] Created case %s", case_id)
        return case

    def delete_case(self, case_id: str, confirm: Callable[[Case], bool]) -> bool:
        """
        Remove a case after an explicit yes. Declining, or an unknown id,
        changes nothing. Irreversible otherwise.
        """
        case = self.get_case(case_id)
        if case is None:
            return False
        if not confirm(case):
            return False
        self.cases = [c for c in self.cases if c.id != case_id]
        self.store.save_cases(self.cases)
        if case_id in self.favorites:
            self.favorites = [fid for fid in self.favorites if fid != case_id]
            self.store.save_favorites(self.favorites)
        if self.expanded_case_id == case_id:
            self.expanded_case_id = None
        logger.info("[Cases] Deleted case %s", case_id)
        return True

    def toggle_favorite(self, case_id: str) -> bool:
        """Returns the new favorite flag."""
        if case_id in self.favorites:
            self.favorites = [fid for fid in self.favorites if fid != case_id]
        else:
            if self.get_case(case_id) is None:
                return False
            self.favorites = self.favorites + [case_id]
        self.store.save_favorites(self.favorites)
        return case_id in self.favorites

    def toggle_specialty_visibility(self, specialty: Specialty) -> bool:
        specialty = Specialty(specialty)
        if specialty in self.visible_specialties:
            self.visible_specialties = [s for s in self.visible_specialties if s != specialty]
            if self.active_tab == specialty.value:
                self.active_tab = TAB_ALL
        else:
            self.visible_specialties = self.visible_specialties + [specialty]
        self.store.save_visible_specialties(self.visible_specialties)
        return specialty in self.visible_specialties

    def toggle_theme(self) -> str:
        self.theme = "light" if self.theme == "dark" else "dark"
        self.store.save_theme(self.theme)
        return self.theme

    # ---------- transient ----------
    def set_query(self, query: str) -> None:
        self.query = query or ""
        if not self.query:
            self.semantic_result = None

    def set_semantic_result(self, result: Optional[SemanticResult]) -> None:
        self.semantic_result = result

    def apply_semantic_result(self, query: str, result: Optional[SemanticResult]) -> bool:
        """Apply a ranking computed for `query`; a reply for a cleared or edited query is dropped."""
        if not self.query or query != self.query:
            logger.info("[AI] Discarding ranking for stale query %r", query)
            return False
        self.semantic_result = result
        return True

    def set_active_tab(self, tab: str) -> None:
        if tab not in (TAB_ALL, TAB_FAVORITES):
            tab = Specialty(tab).value
        self.active_tab = tab

    def toggle_expanded(self, case_id: str) -> Optional[str]:
        self.expanded_case_id = None if self.expanded_case_id == case_id else case_id
        return self.expanded_case_id

    def toggle_anonymized(self) -> bool:
        self.anonymized = not self.anonymized
        return self.anonymized

    # ---------- derived ----------
    def view(self) -> CaseListView:
        return compute_view(
            self.cases,
            tab=self.active_tab,
            query=self.query,
            semantic=self.semantic_result,
            favorites=self.favorites,
            visible_specialties=self.visible_specialties,
            anonymized=self.anonymized,
        )

    def visible_expanded_id(self) -> Optional[str]:
        """The expanded case id, only while that case is in the current list."""
        if self.expanded_case_id is None:
            return None
        if any(c.id == self.expanded_case_id for c in self.view().cases):
            return self.expanded_case_id
        return None
