from __future__ import annotations

from io import BytesIO
from pathlib import Path

from openpyxl import Workbook, load_workbook

from llanero.services import CatalogRow
from llanero.tipos_importacion import CSV_HEADERS


def _row_values(r: CatalogRow) -> list:
    return [
        str(r.name or "").strip(),
        str(r.description or "").strip(),
        str(r.sku or "").strip(),
        str(r.barcode or "").strip(),
        float(r.price),
        str(r.category or ""),
        str(r.subcategory or ""),
        "Activo" if r.is_active else "Inactivo",
        "|".join(r.image_urls or []),
    ]


def _pick_sheet(wb: Workbook, worksheet_name: str):
    desired = (worksheet_name or "ALMACEN").strip() or "ALMACEN"
    desired_key = desired.casefold()
    for existing in wb.sheetnames:
        if str(existing).strip().casefold() == desired_key:
            return wb[existing]
    return wb.create_sheet(title=desired)


def _write_rows(ws, rows: list[CatalogRow]) -> None:
    # Overwrite values in-place to preserve formatting where possible; only the
    # catalog columns are touched.
    ncols = len(CSV_HEADERS)
    for c, h in enumerate(CSV_HEADERS, start=1):
        ws.cell(row=1, column=c, value=h)

    last_used = 1
    for i, vals in enumerate(ws.iter_rows(min_row=2, min_col=1, max_col=ncols, values_only=True), start=2):
        if any(v not in (None, "") for v in vals):
            last_used = i

    write_row = 2
    for r in rows:
        for c, v in enumerate(_row_values(r), start=1):
            ws.cell(row=write_row, column=c, value=v)
        write_row += 1

    for rr in range(write_row, last_used + 1):
        for cc in range(1, ncols + 1):
            ws.cell(row=rr, column=cc, value=None)


def export_catalog_to_excel(*, xlsx_path: Path, worksheet_name: str, rows: list[CatalogRow]) -> tuple[int, str]:
    """Write the catalog into `worksheet_name`, keeping the workbook's other sheets.

    A missing file is created. Returns (rows written, sheet title).
    """
    p = Path(xlsx_path).expanduser().resolve()
    if p.suffix.lower() != ".xlsx":
        raise RuntimeError("El archivo debe ser .xlsx")

    if p.exists():
        wb = load_workbook(filename=p)
        ws = _pick_sheet(wb, worksheet_name)
    else:
        p.parent.mkdir(parents=True, exist_ok=True)
        wb = Workbook()
        ws = wb.active
        ws.title = (worksheet_name or "ALMACEN").strip() or "ALMACEN"

    _write_rows(ws, rows)
    wb.save(p)
    return int(len(rows)), str(ws.title)


def catalog_to_xlsx_bytes(*, worksheet_name: str, rows: list[CatalogRow]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = (worksheet_name or "ALMACEN").strip() or "ALMACEN"
    _write_rows(ws, rows)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()
