from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Specialty(str, Enum):
    NEURORADIOLOGY = "Neuroradiologie"
    OSTEORADIOLOGY = "Ostéo-articulaire"
    THORACIC = "Thoracique"
    ABDOMINAL = "Abdominale"
    PELVIC = "Pelvienne"
    CARDIOVASCULAR = "Cardiovasculaire"
    PEDIATRIC = "Pédiatrique"
    EMERGENCY = "Urgences"
    ORL = "ORL"
    OPHTHALMOLOGY = "Ophtalmologie"
    VASCULAR = "Vasculaire"
    SENOLOGY = "Sénologie"
    UROLOGY = "Urologie"
    OTHER = "Autre"


class Difficulty(str, Enum):
    BEGINNER = "Débutant"
    INTERMEDIATE = "Intermédiaire"
    ADVANCED = "Avancé"
    EXPERT = "Expert"


class Modality(str, Enum):
    MRI = "IRM"
    CT = "Scanner"
    XRAY = "Radiographie"
    US = "Échographie"


TAB_ALL = "Tous"
TAB_FAVORITES = "Favoris"

DEFAULT_VISIBLE_SPECIALTIES: List[Specialty] = list(Specialty)[:6]


@dataclass
class Series:
    name: str
    images: List[str] = field(default_factory=list)  # data URLs, immutable once attached

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "images": list(self.images)}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Series":
        images = raw.get("images") or []
        if not isinstance(images, list):
            raise ValueError("series images must be a list")
        return cls(
            name=str(raw.get("name", "")),
            images=[str(img) for img in images if img],
        )


@dataclass(frozen=True)
class Case:
    id: str
    patient_id: str
    last_name: str
    first_name: str
    specialty: Specialty
    difficulty: Difficulty
    modality: Modality
    clinical_note: str
    diagnosis: str
    date_added: str          # ISO-8601 timestamp
    series: List[Series] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "lastName": self.last_name,
            "firstName": self.first_name,
            "specialty": self.specialty.value,
            "difficulty": self.difficulty.value,
            "modality": self.modality.value,
            "clinicalNote": self.clinical_note,
            "diagnosis": self.diagnosis,
            "dateAdded": self.date_added,
            "series": [s.to_dict() for s in self.series],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Case":
        """
        Build a Case from its persisted JSON shape.

        Raises KeyError / ValueError when the entry is not a usable case
        (missing id, unknown enumeration value, malformed series).
        """
        case_id = raw["id"]
        if not case_id:
            raise ValueError("case id is empty")
        series = raw.get("series") or []
        if not isinstance(series, list):
            raise ValueError("series must be a list")
        return cls(
            id=str(case_id),
            patient_id=str(raw.get("patientId", "")),
            last_name=str(raw.get("lastName", "")),
            first_name=str(raw.get("firstName", "")),
            specialty=Specialty(raw["specialty"]),
            difficulty=Difficulty(raw["difficulty"]),
            modality=Modality(raw["modality"]),
            clinical_note=str(raw.get("clinicalNote", "")),
            diagnosis=str(raw.get("diagnosis", "")),
            date_added=str(raw["dateAdded"]),
            series=[Series.from_dict(s) for s in series],
        )


@dataclass(frozen=True)
class SemanticMatch:
    id: str
    reason: str


@dataclass(frozen=True)
class SemanticResult:
    matches: List[SemanticMatch]
    suggested_keywords: List[str]

    @property
    def match_ids(self) -> set:
        return {m.id for m in self.matches}

    def reason_for(self, case_id: str) -> Optional[str]:
        for m in self.matches:
            if m.id == case_id:
                return m.reason
        return None


@dataclass(frozen=True)
class Classification:
    specialty: str
    difficulty: str
    summary: str


def format_name(last_name: str, first_name: str, anonymized: bool) -> str:
    if not anonymized:
        return f"{last_name.upper()} {first_name}"
    return f"{last_name[:1]}*** {first_name[:1]}***"
