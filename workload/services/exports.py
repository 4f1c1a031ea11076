"""
Report exports (XLSX with openpyxl, PDF with reportlab).

Each report is first flattened into a ReportTable (title, headers, rows);
the renderers only know how to lay out a ReportTable. A table may carry
detail sections: in XLSX each one gets its own worksheet, in PDF each one
starts on a new page.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Sequence

from workload.workload_calculator import (
    OvercomplianceRow,
    OverloadRow,
    PayAllocationResult,
    RATIO_PLACES,
    ZERO,
    as_number,
)

# Excel: 31 caracteres como maximo y sin []:*?/\
MAX_SHEET_TITLE = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")


@dataclass
class ReportTable:
    title: str
    headers: List[str]
    rows: List[list] = field(default_factory=list)
    subtitle: List[str] = field(default_factory=list)
    footer: List[str] = field(default_factory=list)
    # Relative column widths for the PDF layout
    widths: List[float] = field(default_factory=list)
    # Decimal places per column index; 2 when not listed
    decimals: Dict[int, int] = field(default_factory=dict)
    sheet_name: str = "Reporte"
    sections: List["ReportTable"] = field(default_factory=list)

    def places(self, column: int) -> int:
        return self.decimals.get(column, 2)


def _period(start: date, end: date) -> str:
    return f"Período: {start.isoformat()} a {end.isoformat()}"


# =============================================================================
# TABLE BUILDERS
# =============================================================================


def overcompliance_table(rows: Sequence[OvercomplianceRow], start: date, end: date) -> ReportTable:
    table = ReportTable(
        title="Reporte de Sobrecumplimiento de Horas",
        subtitle=[_period(start, end)],
        headers=[
            "Apellidos",
            "Nombre",
            "Rol",
            "Categoría",
            "Norma semanal",
            "Norma período",
            "Horas registradas",
            "Sobrecumplimiento",
        ],
        widths=[3, 2.5, 2, 2, 1.5, 1.5, 1.5, 1.8],
        sheet_name="Sobrecumplimiento",
    )
    for row in rows:
        table.rows.append(
            [
                row.member.surname or "",
                row.member.name or "",
                row.member.role or "",
                row.member.category or "",
                as_number(row.weekly_norm),
                as_number(row.period_norm),
                as_number(row.registered_hours),
                as_number(row.surplus),
            ]
        )
    table.footer.append(f"Total de profesores: {len(rows)}")
    return table


def activity_detail_table(row: OverloadRow) -> ReportTable:
    """Desglose por tipo de actividad de un profesor."""
    member = row.member
    table = ReportTable(
        title=f"Detalle de Actividades: {member.full_name}",
        subtitle=[
            f"Categoría: {member.category or 'N/A'} - "
            f"Total horas: {as_number(row.total_hours):.2f} - "
            f"Sobrecarga: {as_number(row.overload_hours):.2f}"
        ],
        headers=["Tipo de actividad", "Horas dedicadas", "Grupos", "Actividades", "Estudiantes"],
        widths=[5, 1.5, 1, 1, 1],
        sheet_name=member.surname or member.username,
    )
    for activity in row.activities:
        table.rows.append(
            [
                activity.activity_type_name,
                as_number(activity.hours),
                activity.group_count,
                activity.activity_count,
                activity.student_count,
            ]
        )
    table.footer.append(f"TOTAL HORAS: {as_number(row.total_hours):.2f}")
    return table


def teaching_overload_table(rows: Sequence[OverloadRow], start: date, end: date) -> ReportTable:
    table = ReportTable(
        title="Reporte de Sobrecarga Docente (Resolución 32/2024)",
        subtitle=[_period(start, end)],
        headers=[
            "Profesor",
            "Categoría",
            "Total horas",
            "Horas pregrado",
            "Horas preparación",
            "Horas sobrecarga",
        ],
        widths=[4, 2.5, 1.5, 1.5, 1.5, 1.5],
        sheet_name="Resumen Sobrecarga",
    )
    for row in rows:
        table.rows.append(
            [
                row.member.full_name,
                row.member.category or "",
                as_number(row.total_hours),
                as_number(row.pregrad_hours),
                as_number(row.preparation_hours),
                as_number(row.overload_hours),
            ]
        )
        if row.activities:
            table.sections.append(activity_detail_table(row))
    total_overload = sum((r.overload_hours for r in rows), ZERO)
    table.footer.append(f"Total de profesores: {len(rows)}")
    table.footer.append(f"Total horas de sobrecarga: {as_number(total_overload):.2f}")
    return table


def overload_payment_table(result: PayAllocationResult, start: date, end: date) -> ReportTable:
    """Resumen con coeficientes por categoria y una seccion con el pago de cada profesor."""
    summary = result.summary
    table = ReportTable(
        title="Pago por Sobrecarga Docente (Resolución 32/2024)",
        subtitle=[
            _period(start, end),
            f"Fondo de salario no ejecutado: {as_number(summary.fund_available):.2f}",
            f"Fondo necesario: {as_number(summary.fund_needed):.2f}",
            f"Porcentaje del fondo: {as_number(summary.funding_ratio * 100):.2f}%",
            f"Total horas de sobrecarga: {as_number(summary.total_overload_hours):.2f}",
        ],
        headers=["Categoría", "Tarifa horaria", "Horas sobrecarga", "Coeficiente"],
        widths=[3, 1.5, 1.5, 1.5],
        decimals={3: 4},
        sheet_name="Resumen Pago Sobrecarga",
    )
    for coefficient in result.coefficients_by_category.values():
        table.rows.append(
            [
                coefficient.category,
                as_number(coefficient.tariff),
                as_number(coefficient.overload_hours),
                as_number(coefficient.coefficient, RATIO_PLACES),
            ]
        )
    table.footer.append(f"Total de profesores: {summary.total_members}")
    table.footer.append(f"Total a pagar: {as_number(summary.total_to_pay):.2f}")

    details = ReportTable(
        title="Detalles Pago por Profesor",
        subtitle=[_period(start, end)],
        headers=["Profesor", "Categoría", "Horas sobrecarga", "Coeficiente", "Monto a pagar"],
        widths=[4, 2.5, 1.5, 1.5, 1.8],
        decimals={3: 4},
        sheet_name="Detalles Pago por Profesor",
    )
    for payment in result.payments:
        details.rows.append(
            [
                payment.full_name,
                payment.category,
                as_number(payment.overload_hours),
                as_number(payment.coefficient, RATIO_PLACES),
                as_number(payment.amount),
            ]
        )
    details.footer.append(f"Total a pagar: {as_number(summary.total_to_pay):.2f}")
    table.sections.append(details)
    return table


# =============================================================================
# RENDERERS
# =============================================================================


def _sheet_title(name: str, used: set) -> str:
    base = _INVALID_SHEET_CHARS.sub(" ", name or "").strip()[:MAX_SHEET_TITLE] or "Hoja"
    title, n = base, 2
    while title.lower() in used:
        suffix = f" ({n})"
        title = base[: MAX_SHEET_TITLE - len(suffix)] + suffix
        n += 1
    used.add(title.lower())
    return title


def _fill_sheet(ws, table: ReportTable) -> None:
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    ws.append([table.title])
    ws["A1"].font = Font(bold=True, size=14)
    for line in table.subtitle:
        ws.append([line])
    ws.append([])

    ws.append(table.headers)
    header_row = ws.max_row
    header_fill = PatternFill("solid", fgColor="DDE4EE")
    for cell in ws[header_row]:
        cell.font = Font(bold=True)
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for row in table.rows:
        ws.append(row)
    for row in ws.iter_rows(min_row=header_row + 1, max_row=ws.max_row):
        for index, cell in enumerate(row):
            if isinstance(cell.value, float):
                cell.number_format = "0." + "0" * table.places(index)

    if table.footer:
        ws.append([])
        for line in table.footer:
            ws.append([line])

    for index, header in enumerate(table.headers, start=1):
        values = [header] + [r[index - 1] for r in table.rows]
        width = max(len(str(v)) for v in values if v is not None)
        ws.column_dimensions[get_column_letter(index)].width = min(max(width + 2, 10), 45)
    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)


def render_xlsx(table: ReportTable) -> bytes:
    from openpyxl import Workbook

    used: set = set()
    wb = Workbook()
    ws = wb.active
    ws.title = _sheet_title(table.sheet_name, used)
    _fill_sheet(ws, table)
    for section in table.sections:
        _fill_sheet(wb.create_sheet(_sheet_title(section.sheet_name, used)), section)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _fmt(value, places: int = 2) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.{places}f}"
    return str(value)


def _clip(text: str, width: float, font: str, size: int) -> str:
    from reportlab.pdfbase.pdfmetrics import stringWidth

    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + "…", font, size) > width:
        text = text[:-1]
    return text + "…"


def render_pdf(table: ReportTable) -> bytes:
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.pdfgen import canvas

    page_width, page_height = landscape(A4)
    margin = 36
    line_height = 16
    usable = page_width - 2 * margin

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=landscape(A4))
    pdf.setTitle(table.title)

    def draw_table(current: ReportTable, stamp: bool) -> None:
        widths = current.widths or [1.0] * len(current.headers)
        scale = usable / sum(widths)
        columns = [w * scale for w in widths]

        def draw_header(y: float) -> float:
            pdf.setFont("Helvetica-Bold", 9)
            x = margin
            for header, col in zip(current.headers, columns):
                pdf.drawString(x + 2, y, _clip(header, col - 4, "Helvetica-Bold", 9))
                x += col
            pdf.line(margin, y - 4, page_width - margin, y - 4)
            pdf.setFont("Helvetica", 9)
            return y - line_height

        y = page_height - margin
        pdf.setFont("Helvetica-Bold", 14)
        pdf.drawString(margin, y, _clip(current.title, usable, "Helvetica-Bold", 14))
        y -= line_height + 4
        pdf.setFont("Helvetica", 10)
        for line in current.subtitle:
            pdf.drawString(margin, y, line)
            y -= line_height
        if stamp:
            pdf.drawString(
                margin, y, f"Generado: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
            )
            y -= line_height
        y -= 6
        y = draw_header(y)

        for row in current.rows:
            if y < margin + line_height:
                pdf.showPage()
                y = draw_header(page_height - margin)
            x = margin
            for index, (value, col) in enumerate(zip(row, columns)):
                text = _fmt(value, current.places(index))
                pdf.drawString(x + 2, y, _clip(text, col - 4, "Helvetica", 9))
                x += col
            y -= line_height

        if not current.rows:
            pdf.drawString(margin, y, "No hay datos para el período seleccionado.")
            y -= line_height

        y -= 6
        pdf.setFont("Helvetica-Bold", 10)
        for line in current.footer:
            if y < margin:
                pdf.showPage()
                pdf.setFont("Helvetica-Bold", 10)
                y = page_height - margin
            pdf.drawString(margin, y, line)
            y -= line_height
        pdf.showPage()

    draw_table(table, stamp=True)
    for section in table.sections:
        draw_table(section, stamp=False)

    pdf.save()
    return buffer.getvalue()
