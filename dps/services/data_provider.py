"""Data access for the first-aid post: patients, report branding, checklist items.

Persistence is last-write-wins: no locking, no version checks, no retry.
Driver failures surface as ``PersistenceError`` so callers can notify the
user and leave their own state untouched.
"""

import json
import logging
from datetime import UTC, datetime

from dps.database import DatabaseAdapter, get_db
from dps.models.checklist import ChecklistItems
from dps.models.header import HeaderInfo
from dps.models.patient import Patient

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A create/update/delete could not be written."""


class PatientNotFoundError(Exception):
    pass


def _row_to_patient(row) -> Patient | None:
    try:
        return Patient.model_validate_json(row["data"])
    except Exception:
        logger.warning("Failed to parse stored patient %s", row["id"])
        return None


class DataProvider:
    def __init__(self, db: DatabaseAdapter) -> None:
        self._db = db

    @classmethod
    async def connect(cls) -> "DataProvider":
        return cls(await get_db())

    async def patients(self) -> list[Patient]:
        rows = await self._db.fetch_all("SELECT id, data FROM patients ORDER BY created_at DESC")
        return [p for p in (_row_to_patient(row) for row in rows) if p is not None]

    async def get_patient(self, patient_id: str) -> Patient | None:
        row = await self._db.fetch_one("SELECT id, data FROM patients WHERE id = ?", (patient_id,))
        if not row:
            return None
        return _row_to_patient(row)

    async def exists(self, patient_id: str) -> bool:
        row = await self._db.fetch_one("SELECT id FROM patients WHERE id = ?", (patient_id,))
        return row is not None

    async def add_patient(self, patient: Patient) -> Patient:
        now = datetime.now(UTC).isoformat()
        try:
            await self._db.execute(
                """INSERT INTO patients (
                    id, created_at, triage_status, bib_number, admission_date, data, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    patient.id,
                    patient.created_at,
                    patient.triage_status.value if patient.triage_status else None,
                    patient.bib_number,
                    patient.admission_date,
                    patient.model_dump_json(),
                    now,
                ),
            )
            await self._db.commit()
        except Exception as exc:
            logger.error("Failed to add patient %s: %s", patient.id, exc)
            raise PersistenceError(str(exc)) from exc
        logger.info("Patient %s added", patient.id)
        return patient

    async def update_patient(self, patient: Patient) -> Patient:
        if not await self.exists(patient.id):
            raise PatientNotFoundError(patient.id)
        now = datetime.now(UTC).isoformat()
        try:
            await self._db.execute(
                """UPDATE patients SET triage_status = ?, bib_number = ?, admission_date = ?,
                    data = ?, updated_at = ? WHERE id = ?""",
                (
                    patient.triage_status.value if patient.triage_status else None,
                    patient.bib_number,
                    patient.admission_date,
                    patient.model_dump_json(),
                    now,
                    patient.id,
                ),
            )
            await self._db.commit()
        except Exception as exc:
            logger.error("Failed to update patient %s: %s", patient.id, exc)
            raise PersistenceError(str(exc)) from exc
        return patient

    async def delete_patient(self, patient_id: str) -> None:
        if not await self.exists(patient_id):
            raise PatientNotFoundError(patient_id)
        try:
            await self._db.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
            await self._db.commit()
        except Exception as exc:
            logger.error("Failed to delete patient %s: %s", patient_id, exc)
            raise PersistenceError(str(exc)) from exc
        logger.info("Patient %s deleted", patient_id)

    async def header_info(self) -> HeaderInfo:
        row = await self._db.fetch_one("SELECT data FROM header_info WHERE id = 1")
        if not row:
            return HeaderInfo()
        try:
            return HeaderInfo.model_validate_json(row["data"])
        except Exception:
            logger.warning("Failed to parse header info, using defaults")
            return HeaderInfo()

    async def update_header_info(self, info: HeaderInfo) -> HeaderInfo:
        try:
            await self._db.execute(
                "UPDATE header_info SET data = ? WHERE id = 1",
                (info.model_dump_json(),),
            )
            await self._db.commit()
        except Exception as exc:
            logger.error("Failed to update header info: %s", exc)
            raise PersistenceError(str(exc)) from exc
        return info

    async def pma_checklist_items(self) -> ChecklistItems:
        row = await self._db.fetch_one("SELECT items FROM checklist_items WHERE id = 1")
        if not row:
            return {}
        try:
            return json.loads(row["items"])
        except json.JSONDecodeError:
            logger.warning("Failed to parse checklist items")
            return {}

    async def update_pma_checklist_items(self, items: ChecklistItems) -> ChecklistItems:
        try:
            await self._db.execute(
                "UPDATE checklist_items SET items = ? WHERE id = 1",
                (json.dumps(items, ensure_ascii=False),),
            )
            await self._db.commit()
        except Exception as exc:
            logger.error("Failed to update checklist items: %s", exc)
            raise PersistenceError(str(exc)) from exc
        return items
