"""
Shared fixtures: a case factory and an in-memory record store.
"""
import base64
import io
import json

import pytest
from PIL import Image

from logic.record_store import RecordStore
from model.models import Case, Difficulty, Modality, Series, Specialty


def make_case(case_id="c1", *, specialty=Specialty.NEURORADIOLOGY, difficulty=Difficulty.BEGINNER,
              modality=Modality.MRI, date_added="2024-01-01T10:00:00.000Z", patient_id="IPP-1",
              last_name="Dupont", first_name="Jean", diagnosis="Gliome", clinical_note="Céphalées",
              series=None) -> Case:
    return Case(
        id=case_id,
        patient_id=patient_id,
        last_name=last_name,
        first_name=first_name,
        specialty=specialty,
        difficulty=difficulty,
        modality=modality,
        clinical_note=clinical_note,
        diagnosis=diagnosis,
        date_added=date_added,
        series=list(series or []),
    )


def png_data_url(color=(255, 0, 0), size=(4, 4)) -> str:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


class InMemoryStore(RecordStore):
    """Keeps JSON text per key so values round-trip exactly like on disk."""

    def __init__(self, initial=None):
        self.data = {k: json.dumps(v) for k, v in (initial or {}).items()}
        self.writes = []

    def read(self, key):
        if key not in self.data:
            return None
        return json.loads(self.data[key])

    def write(self, key, value):
        self.writes.append(key)
        self.data[key] = json.dumps(value)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def series_factory():
    def _make(name="Série 1", n=3):
        return Series(name=name, images=[png_data_url((i * 40 % 256, 0, 0)) for i in range(n)])
    return _make
