import logging
from functools import partial
from urllib.parse import quote

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from dps.models.header import HeaderInfo
from dps.routers.patients import persistence_failed
from dps.services.data_provider import DataProvider, PersistenceError
from dps.services.reports import (
    ReportBusyError,
    handover_filename,
    patient_sheet_filename,
    render_handover_log,
    render_patient_sheet,
    report_exporter,
)
from dps.services.triage_board import active_patients

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


def content_disposition(filename: str) -> str:
    """Attachment header; names outside the plain ASCII set go through RFC 5987."""
    quoted = quote(filename, safe="")
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename*=utf-8''{quoted}"


async def _export(filename: str, render) -> Response:
    try:
        pdf_bytes = await report_exporter.export(filename, render)
    except ReportBusyError:
        raise HTTPException(status_code=409, detail="A report is already being generated") from None
    if pdf_bytes is None:
        raise HTTPException(status_code=500, detail="Report generation failed")
    return Response(
        pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename)},
    )


@router.get("/patients/{patient_id}")
async def download_patient_sheet(patient_id: str):
    """PDF sheet of one patient, named after the bib number."""
    provider = await DataProvider.connect()
    patient = await provider.get_patient(patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    header = await provider.header_info()
    return await _export(patient_sheet_filename(patient), partial(render_patient_sheet, patient, header))


@router.get("/handover")
async def download_handover_log():
    """PDF handover log of every patient on the board."""
    provider = await DataProvider.connect()
    patients = active_patients(await provider.patients())
    header = await provider.header_info()
    logger.info("Generating handover log for %d patients", len(patients))
    return await _export(handover_filename(), partial(render_handover_log, patients, header))


@router.get("/header", response_model=HeaderInfo)
async def get_header_info():
    provider = await DataProvider.connect()
    return await provider.header_info()


@router.put("/header", response_model=HeaderInfo)
async def update_header_info(body: HeaderInfo):
    """Organisation name and logo printed on reports."""
    provider = await DataProvider.connect()
    try:
        return await provider.update_header_info(body)
    except PersistenceError:
        raise persistence_failed("Erreur mise à jour.") from None
