"""Tests for database initialization and the data provider."""

import json

import pytest

from dps.database import DEFAULT_PMA_CHECKLIST_ITEMS, _seed_demo_patients, init_db
from dps.models.header import HeaderInfo
from dps.models.patient import Patient, TriageStatus
from dps.services.data_provider import DataProvider, PatientNotFoundError, PersistenceError


def make_patient(pid: str, created_at: str, **fields) -> Patient:
    return Patient(id=pid, created_at=created_at, **fields)


async def test_init_creates_tables(db):
    """Test that init_db creates the expected tables."""
    rows = await db.fetch_all(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = [row[0] for row in rows]
    assert "patients" in tables
    assert "header_info" in tables
    assert "checklist_items" in tables


async def test_init_seeds_settings(db):
    row = await db.fetch_one("SELECT items FROM checklist_items WHERE id = 1")
    assert json.loads(row["items"]) == DEFAULT_PMA_CHECKLIST_ITEMS

    row = await db.fetch_one("SELECT data FROM header_info WHERE id = 1")
    assert json.loads(row["data"])["company_name"] == "SERVICE DE SECOURS"


async def test_init_is_idempotent(db):
    """Re-running init keeps edited settings."""
    provider = DataProvider(db)
    await provider.update_pma_checklist_items({"Tente": ["Piquets"]})
    await init_db()
    assert await provider.pma_checklist_items() == {"Tente": ["Piquets"]}


async def test_no_patients_by_default(db):
    row = await db.fetch_one("SELECT COUNT(*) FROM patients")
    assert row[0] == 0


async def test_seed_demo_patients(db):
    await _seed_demo_patients(db)
    await _seed_demo_patients(db)
    patients = await DataProvider(db).patients()
    assert {p.id for p in patients} == {"demo-malaise", "demo-chute"}


class TestDataProvider:
    async def test_add_and_get(self, db):
        provider = DataProvider(db)
        patient = make_patient("p1", "2026-05-01T10:00:00+00:00", bib_number="12", triage_status=TriageStatus.UR)
        await provider.add_patient(patient)

        stored = await provider.get_patient("p1")
        assert stored == patient
        assert await provider.exists("p1")
        assert await provider.get_patient("missing") is None

    async def test_patients_newest_first(self, db):
        provider = DataProvider(db)
        await provider.add_patient(make_patient("old", "2026-05-01T08:00:00+00:00"))
        await provider.add_patient(make_patient("new", "2026-05-01T12:00:00+00:00"))
        assert [p.id for p in await provider.patients()] == ["new", "old"]

    async def test_update_overwrites(self, db):
        provider = DataProvider(db)
        patient = make_patient("p1", "2026-05-01T10:00:00+00:00", observations="RAS")
        await provider.add_patient(patient)
        await provider.update_patient(patient.model_copy(update={"observations": "Évacué"}))
        assert (await provider.get_patient("p1")).observations == "Évacué"

        row = await db.fetch_one("SELECT triage_status FROM patients WHERE id = ?", ("p1",))
        assert row["triage_status"] is None

    async def test_update_missing_patient(self, db):
        provider = DataProvider(db)
        with pytest.raises(PatientNotFoundError):
            await provider.update_patient(make_patient("ghost", "2026-05-01T10:00:00+00:00"))

    async def test_duplicate_add_is_persistence_error(self, db):
        provider = DataProvider(db)
        patient = make_patient("p1", "2026-05-01T10:00:00+00:00")
        await provider.add_patient(patient)
        with pytest.raises(PersistenceError):
            await provider.add_patient(patient)

    async def test_delete(self, db):
        provider = DataProvider(db)
        await provider.add_patient(make_patient("p1", "2026-05-01T10:00:00+00:00"))
        await provider.delete_patient("p1")
        assert await provider.get_patient("p1") is None
        with pytest.raises(PatientNotFoundError):
            await provider.delete_patient("p1")

    async def test_unreadable_row_skipped(self, db):
        await db.execute(
            "INSERT INTO patients (id, created_at, data) VALUES (?, ?, ?)",
            ("broken", "2026-05-01T10:00:00+00:00", "not json"),
        )
        await db.commit()
        provider = DataProvider(db)
        assert await provider.patients() == []
        assert await provider.get_patient("broken") is None

    async def test_header_info(self, db):
        provider = DataProvider(db)
        info = HeaderInfo(company_name="Croix Blanche", phone="04 00 00 00 00")
        await provider.update_header_info(info)
        assert await provider.header_info() == info

    async def test_checklist_items(self, db):
        provider = DataProvider(db)
        assert await provider.pma_checklist_items() == DEFAULT_PMA_CHECKLIST_ITEMS
        items = {"Matériel": ["DSA", "Oxygène"]}
        assert await provider.update_pma_checklist_items(items) == items
        assert await provider.pma_checklist_items() == items
