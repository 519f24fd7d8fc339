"""Printable PDF reports of the post: the patient sheet and the handover log."""

import asyncio
import base64
import io
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Image,
    KeepInFrame,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from dps.config import COMPANY_NAME
from dps.models.header import HeaderInfo
from dps.models.patient import Patient
from dps.services.intake_codec import parse_circumstances, strip_care_tag
from dps.services.triage_board import compute_stats, handover_order, outcome_label, parse_timestamp

logger = logging.getLogger(__name__)

MARGIN = 15 * mm
# Default padding of the platypus page frame, on each side
FRAME_PADDING = 6
UNKNOWN_BIB = "Inconnu"

_styles = getSampleStyleSheet()
TITLE = ParagraphStyle("DPSTitle", parent=_styles["Heading1"], fontSize=16, spaceAfter=2)
SUBTITLE = ParagraphStyle("DPSSubtitle", parent=_styles["Normal"], fontSize=8, textColor=colors.grey)
SECTION = ParagraphStyle("DPSSection", parent=_styles["Heading3"], fontSize=10, spaceBefore=8, spaceAfter=4)
BODY = ParagraphStyle("DPSBody", parent=_styles["Normal"], fontSize=9, leading=12)
CELL = ParagraphStyle("DPSCell", parent=_styles["Normal"], fontSize=7, leading=9)
FOOTNOTE = ParagraphStyle("DPSFootnote", parent=_styles["Normal"], fontSize=7, textColor=colors.grey, alignment=1)


class ReportBusyError(Exception):
    """An export is already running."""


def _p(text: str | None, style: ParagraphStyle = BODY) -> Paragraph:
    return Paragraph(escape(text or "").replace("\n", "<br/>"), style)


def _label(label: str, value: str | None) -> Paragraph:
    return Paragraph(f"<font color='grey'>{escape(label)}</font> <b>{escape(value or '-')}</b>", BODY)


def _logo(header: HeaderInfo) -> Image | None:
    if not header.logo:
        return None
    try:
        payload = header.logo.split(",", 1)[1] if header.logo.startswith("data:") else header.logo
        image = Image(io.BytesIO(base64.b64decode(payload)))
        ratio = image.imageHeight / float(image.imageWidth)
        image.drawWidth = 18 * mm
        image.drawHeight = 18 * mm * ratio
        return image
    except Exception as exc:
        logger.warning("Could not embed report logo: %s", exc)
        return None


def _heading(header: HeaderInfo, subtitle: str, right: list[Paragraph], width: float) -> Table:
    left = [_p((header.company_name or COMPANY_NAME).upper(), TITLE), _p(subtitle.upper(), SUBTITLE)]
    logo = _logo(header)
    cells = [logo, left, right] if logo else [left, right]
    widths = [22 * mm, width * 0.6 - 22 * mm, width * 0.4] if logo else [width * 0.6, width * 0.4]
    table = Table([cells], colWidths=widths)
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (-1, 0), (-1, 0), "RIGHT"),
        ("LINEBELOW", (0, 0), (-1, 0), 1.5, colors.black),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
    ]))
    return table


def _signature_box(label: str) -> Table:
    table = Table([[""], [_p(label.upper(), FOOTNOTE)]], colWidths=[50 * mm], rowHeights=[18 * mm, None])
    table.setStyle(TableStyle([("BOX", (0, 0), (0, 0), 1, colors.black)]))
    return table


def _local_time(value: str | None, fmt: str) -> str:
    parsed = parse_timestamp(value)
    return parsed.astimezone().strftime(fmt) if parsed else "-"


def patient_sheet_filename(patient: Patient) -> str:
    return f"Fiche_DPS_{patient.bib_number or UNKNOWN_BIB}.pdf"


def handover_filename(day: datetime | None = None) -> str:
    return f"Main_Courante_PMA_{(day or datetime.now(UTC)).date().isoformat()}.pdf"


def render_patient_sheet(patient: Patient, header: HeaderInfo) -> bytes:
    """Single A4 page describing one patient's care at the post."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=patient_sheet_filename(patient),
    )
    width = doc.width - 2 * FRAME_PADDING

    team, mechanisms, description = parse_circumstances(patient.circumstances)
    observations = patient.observations or ""
    number = patient.bib_number or patient.id[:8].upper()
    arrival = patient.admission_date or patient.created_at

    elements = [
        _heading(
            header,
            "Dispositif Prévisionnel de Secours",
            [
                Paragraph("<b>FICHE VICTIME</b>", BODY),
                _p(f"N°: {number}"),
                _p(f"{_local_time(patient.created_at, '%d/%m/%Y')} à {_local_time(arrival, '%H:%M:%S')}"),
            ],
            width,
        ),
        Spacer(1, 6),
    ]

    identity = [
        _p("Identité / Dossard", SECTION),
        _label("Nom Prénom:", f"{patient.last_name} {patient.first_name}".strip()),
        _label("Sexe / Âge:", f"{patient.sex} / {patient.age or '?'} ans"),
        _label("Club / Équipe:", team),
    ]
    context = [
        _p("Circonstances", SECTION),
        _label("Motif Principal:", patient.chief_complaint),
        _label("Mécanisme:", ", ".join(mechanisms)),
        _label("Description:", description),
    ]
    columns = Table([[identity, context]], colWidths=[width / 2, width / 2])
    columns.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    elements.append(columns)

    tension = f"{patient.systolic_bp}/{patient.diastolic_bp}" if patient.systolic_bp else "--"
    vitals = Table(
        [
            ["Conscience", "Pouls (FC)", "Tension (TA)", "SpO2", "Douleur"],
            [
                f"GCS {patient.glasgow_score}" if patient.glasgow_score else "Non évalué",
                f"{patient.heart_rate or '--'} bpm",
                tension,
                f"{patient.spo2 or '--'} %",
                f"{patient.pain_scale or '0'} /10",
            ],
            [patient.consciousness or "", "", "", "", ""],
        ],
        colWidths=[width / 5] * 5,
    )
    vitals.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("GRID", (0, 0), (-1, 1), 0.5, colors.grey),
    ]))
    elements += [
        _p("Bilan Secouriste", SECTION),
        vitals,
        Spacer(1, 4),
        _label("Bilan Lésionnel:", patient.physical_exam or "Aucune lésion apparente."),
        _p("Soins & Observations", SECTION),
        _p(observations or "Soins courants / Repos."),
    ]

    returned = "Retour Course" in observations
    evacuated = "Évacuation" in observations
    stayed = "Retour" not in observations and not evacuated
    orientation = [
        _p("Orientation :", SECTION),
        _p(f"[{'X' if returned else ' '}] Reprise de l'activité"),
        _p(f"[{'X' if evacuated else ' '}] Évacuation Médicale"),
        _p(f"[{'X' if stayed else ' '}] Surveillance / Laissé sur place"),
    ]
    footer = Table(
        [[orientation, [_p("Visa du Chef de Poste / Médecin", SUBTITLE), _signature_box("Cachet & Signature")]]],
        colWidths=[width * 0.6, width * 0.4],
    )
    footer.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP"), ("LINEABOVE", (0, 0), (-1, 0), 1, colors.black)]))
    elements += [
        Spacer(1, 10),
        footer,
        Spacer(1, 8),
        _p("Document généré informatiquement - Ne pas jeter sur la voie publique.", FOOTNOTE),
    ]

    # Whole sheet shrinks to fit one page width-wise and height-wise
    doc.build([KeepInFrame(width, doc.height - 2 * FRAME_PADDING, elements, mode="shrink")])
    return buffer.getvalue()


def render_handover_log(patients: list[Patient], header: HeaderInfo, now: datetime | None = None) -> bytes:
    """Landscape handover log ("main courante") of every patient at the post."""
    now = now or datetime.now(UTC)
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=handover_filename(now),
    )
    width = doc.width - 2 * FRAME_PADDING
    local_now = now.astimezone()

    elements = [
        _heading(
            header,
            "Main Courante Opérationnelle - Poste de Secours",
            [
                Paragraph(f"<b>Date: {local_now.strftime('%d/%m/%Y')}</b>", BODY),
                _p(f"Généré le: {local_now.strftime('%H:%M:%S')}", SUBTITLE),
            ],
            width,
        ),
        Spacer(1, 8),
    ]

    rows = [["HEURE", "DOSSARD", "IDENTITÉ (NOM PRÉNOM)", "ÂGE", "MOTIF / LÉSIONS", "SOINS / OBSERVATIONS", "STATUT", "DEVENIR"]]
    for patient in handover_order(patients):
        motive = f"<b>{escape(patient.chief_complaint)}</b>"
        if patient.physical_exam:
            motive += f"<br/>{escape(patient.physical_exam)}"
        care = strip_care_tag(patient.observations).replace("\n", " ").strip()
        rows.append([
            _local_time(patient.admission_date, "%H:%M"),
            patient.bib_number or "-",
            _p(f"{patient.last_name} {patient.first_name}".upper(), CELL),
            patient.age,
            Paragraph(motive, CELL),
            _p(care[:100], CELL),
            patient.triage_status.value if patient.triage_status else "",
            outcome_label(patient),
        ])

    fractions = [0.07, 0.08, 0.17, 0.05, 0.2, 0.25, 0.08, 0.10]
    table = Table(rows, colWidths=[width * f for f in fractions], repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 7),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (0, 0), (1, -1), "CENTER"),
        ("ALIGN", (3, 0), (3, -1), "CENTER"),
        ("ALIGN", (6, 0), (6, -1), "CENTER"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
    ]))
    elements.append(table)

    stats = compute_stats(patients)
    synthesis = _p(
        f"Synthèse :  Total: {stats.total}   UA: {stats.ua}   UR: {stats.ur}   Évacuations: {stats.evacuations}"
    )
    footer = Table([[synthesis, _signature_box("Visa Chef de Poste")]], colWidths=[width * 0.7, width * 0.3])
    footer.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
        ("ALIGN", (1, 0), (1, 0), "RIGHT"),
        ("LINEABOVE", (0, 0), (-1, 0), 1, colors.black),
    ]))
    elements += [Spacer(1, 12), footer]

    doc.build(elements)
    return buffer.getvalue()


class ReportExporter:
    """Runs one export at a time.

    Rendering happens off the event loop and the PDF stays in memory until it
    is sent, so nothing is written to disk and a failure leaves no file
    behind.
    """

    def __init__(self) -> None:
        self.busy = False

    async def export(self, filename: str, render: Callable[[], bytes]) -> bytes | None:
        if self.busy:
            raise ReportBusyError(filename)
        self.busy = True
        try:
            pdf_bytes = await asyncio.to_thread(render)
        except Exception:
            logger.exception("Failed to generate report %s", filename)
            return None
        finally:
            self.busy = False
        logger.info("Report %s generated (%d bytes)", filename, len(pdf_bytes))
        return pdf_bytes


report_exporter = ReportExporter()
