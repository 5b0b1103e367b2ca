from __future__ import annotations

from datetime import date
from pathlib import Path

from llanero.services import CatalogRow
from llanero.tipos_importacion import CSV_HEADERS

BOM = "\ufeff"


def _clean(value: str) -> str:
    # The importer reads line by line, so embedded line breaks become spaces.
    return " ".join(str(value or "").splitlines())


def _quoted(value: str) -> str:
    v = _clean(value)
    if not v:
        return ""
    return '"' + v.replace('"', '""') + '"'


def export_row(r: CatalogRow) -> str:
    images = "|".join(u for u in (_clean(x).strip() for x in r.image_urls) if u)
    cells = [
        _quoted(r.name),
        _quoted(r.description),
        _quoted(r.sku),
        _quoted(r.barcode),
        f"{r.price:.2f}",
        _quoted(r.category),
        _quoted(r.subcategory),
        "Activo" if r.is_active else "Inactivo",
        _quoted(images),
    ]
    return ",".join(cells)


def catalog_to_csv(rows: list[CatalogRow]) -> str:
    """Catalog as CSV text (BOM-prefixed so spreadsheet apps pick UTF-8)."""
    lines = [",".join(CSV_HEADERS)]
    lines.extend(export_row(r) for r in rows)
    return BOM + "\n".join(lines)


def export_filename(prefix: str = "almacen", day: date | None = None, suffix: str = ".csv") -> str:
    d = day or date.today()
    return f"{prefix}_{d.isoformat()}{suffix}"


def export_catalog_to_csv(*, csv_path: Path, rows: list[CatalogRow]) -> int:
    p = Path(csv_path).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(catalog_to_csv(rows), encoding="utf-8")
    tmp.replace(p)
    return len(rows)
