from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Type, TypeVar

from model.models import Classification, Difficulty, Modality, Series, Specialty

E = TypeVar("E", bound=Enum)

REQUIRED_FIELDS = {
    "patient_id": "Identifiant patient",
    "last_name": "Nom",
    "first_name": "Prénom",
    "clinical_note": "Note clinique",
    "diagnosis": "Diagnostic",
}


MIN_WORD_LEN = 3


def match_enum(enum_cls: Type[E], suggestion: str) -> Optional[E]:
    """
    Reconcile free text with an enumeration, first match wins.

    1. first member (declaration order) whose lowercased value contains the
       whole lowercased suggestion;
    2. otherwise the first member containing one of the suggestion's words
       ("neuro quelque chose" -> Neuroradiologie).

    A blank suggestion matches nothing.
    """
    needle = (suggestion or "").strip().lower()
    if not needle:
        return None
    for member in enum_cls:
        if needle in member.value.lower():
            return member
    words = [w for w in needle.split() if len(w) >= MIN_WORD_LEN]
    for member in enum_cls:
        value = member.value.lower()
        if any(w in value for w in words):
            return member
    return None


@dataclass
class CaseDraft:
    """Editable state of the new-case form."""
    patient_id: str = ""
    last_name: str = ""
    first_name: str = ""
    specialty: Specialty = Specialty.NEURORADIOLOGY
    difficulty: Difficulty = Difficulty.BEGINNER
    modality: Modality = Modality.MRI
    clinical_note: str = ""
    diagnosis: str = ""
    series: List[Series] = field(default_factory=list)

    def validate(self) -> List[str]:
        """Labels of required fields that are still empty."""
        return [label for attr, label in REQUIRED_FIELDS.items()
                if not (getattr(self, attr) or "").strip()]

    def add_series(self, images: List[str]) -> Optional[Series]:
        if not images:
            return None
        s = Series(name=f"Série {len(self.series) + 1}", images=list(images))
        self.series.append(s)
        return s

    def remove_series(self, index: int) -> None:
        if 0 <= index < len(self.series):
            del self.series[index]

    def rename_series(self, index: int, name: str) -> None:
        if 0 <= index < len(self.series):
            self.series[index].name = name

    def apply_suggestion(self, suggestion: Optional[Classification]) -> bool:
        """Merge an AI classification into the form; None leaves it untouched."""
        if suggestion is None:
            return False
        self.specialty = match_enum(Specialty, suggestion.specialty) or self.specialty
        self.difficulty = match_enum(Difficulty, suggestion.difficulty) or self.difficulty
        if suggestion.summary:
            self.diagnosis = suggestion.summary
        return True

    def to_fields(self) -> Dict[str, object]:
        return {
            "patient_id": self.patient_id.strip(),
            "last_name": self.last_name.strip(),
            "first_name": self.first_name.strip(),
            "specialty": self.specialty,
            "difficulty": self.difficulty,
            "modality": self.modality,
            "clinical_note": self.clinical_note.strip(),
            "diagnosis": self.diagnosis.strip(),
            "series": [Series(s.name, list(s.images)) for s in self.series],
        }
