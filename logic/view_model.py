"""
Derived case-list state.

NO TKINTER IMPORTS IN THIS MODULE.

compute_view() is pure: it reads the record set and transient search state and
returns a fresh CaseListView every time. Nothing here is stored or mutated.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.parser import isoparse

from model.models import (
    TAB_ALL,
    TAB_FAVORITES,
    Case,
    SemanticResult,
    Specialty,
)


@dataclass(frozen=True)
class TabCount:
    visible: int    # passing the search filter
    total: int      # in the tab, ignoring the search


@dataclass(frozen=True)
class CaseStats:
    specialty: List[Tuple[str, int]]
    difficulty: List[Tuple[str, int]]
    modality: List[Tuple[str, int]]
    total: int


@dataclass(frozen=True)
class CaseListView:
    cases: List[Case]
    tab_counts: Dict[str, TabCount]
    stats: CaseStats
    show_ratio: bool            # badges read "visible/total" instead of "total"
    anonymized: bool


def tabs_for(visible_specialties: Iterable[Specialty]) -> List[str]:
    return [TAB_ALL, TAB_FAVORITES] + [Specialty(s).value for s in visible_specialties]


def matches_query(case: Case, query: str, semantic: Optional[SemanticResult] = None) -> bool:
    q = (query or "").lower()
    literal = (
        q in case.patient_id.lower()
        or q in case.last_name.lower()
        or q in case.diagnosis.lower()
        or q in case.clinical_note.lower()
    )
    return literal or (semantic is not None and case.id in semantic.match_ids)


def filter_by_query(cases: Sequence[Case], query: str,
                    semantic: Optional[SemanticResult] = None) -> List[Case]:
    return [c for c in cases if matches_query(c, query, semantic)]


def in_tab(case: Case, tab: str, favorites: Iterable[str]) -> bool:
    if tab == TAB_ALL:
        return True
    if tab == TAB_FAVORITES:
        return case.id in favorites
    return case.specialty.value == tab


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(stamp: str) -> datetime:
    """ISO-8601 to an aware datetime; naive stamps are UTC, garbage sorts last."""
    try:
        dt = isoparse(stamp)
    except (TypeError, ValueError, OverflowError):
        return _EPOCH
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def sort_recent_first(cases: Sequence[Case]) -> List[Case]:
    # sorted() stays stable with reverse=True: equal timestamps keep insertion order
    return sorted(cases, key=lambda c: parse_timestamp(c.date_added), reverse=True)


def tab_counts(cases: Sequence[Case], matched: Sequence[Case], tabs: Sequence[str],
               favorites: Iterable[str]) -> Dict[str, TabCount]:
    fav = set(favorites)
    out: Dict[str, TabCount] = {}
    for tab in tabs:
        total = sum(1 for c in cases if in_tab(c, tab, fav))
        visible = sum(1 for c in matched if in_tab(c, tab, fav))
        out[tab] = TabCount(visible=visible, total=total)
    return out


def _distribution(values: Iterable[str]) -> List[Tuple[str, int]]:
    counts: Dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    # dicts keep first-encountered order; sorted() is stable for ties
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def compute_stats(cases: Sequence[Case]) -> CaseStats:
    return CaseStats(
        specialty=_distribution(c.specialty.value for c in cases),
        difficulty=_distribution(c.difficulty.value for c in cases),
        modality=_distribution(c.modality.value for c in cases),
        total=len(cases),
    )


def compute_view(
    cases: Sequence[Case],
    *,
    tab: str = TAB_ALL,
    query: str = "",
    semantic: Optional[SemanticResult] = None,
    favorites: Iterable[str] = (),
    visible_specialties: Iterable[Specialty] = (),
    anonymized: bool = False,
) -> CaseListView:
    """
    Filter, sort and count the case collection for rendering.

    Args:
        cases: full collection, in stored order (newest first)
        tab: "Tous", "Favoris" or a specialty value
        query: free-text search, matched case-insensitively on patient id,
               last name, diagnosis and clinical note
        semantic: last semantic-search result; its ids pass the search filter
        favorites: starred case ids
        visible_specialties: specialties shown as tabs (drives tab_counts)
        anonymized: passed through for name rendering

    Returns:
        CaseListView with the visible cases, per-tab badges and statistics
    """
    fav = set(favorites)
    matched = filter_by_query(cases, query, semantic)
    visible = sort_recent_first([c for c in matched if in_tab(c, tab, fav)])
    tabs = tabs_for(visible_specialties)
    if tab not in tabs:
        tabs.append(tab)
    return CaseListView(
        cases=visible,
        tab_counts=tab_counts(cases, matched, tabs, fav),
        stats=compute_stats(cases),
        show_ratio=bool(query) or semantic is not None,
        anonymized=anonymized,
    )
