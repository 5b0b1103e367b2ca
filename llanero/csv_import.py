from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Protocol

from llanero.services import CatalogStoreError, parse_price
from llanero.tipos_importacion import (
    CategoryRef,
    ImportResult,
    ImportRow,
    ProductDraft,
    RowError,
    StoredProduct,
    SubcategoryRef,
)

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r?\n")


class CsvImportError(RuntimeError):
    """The file could not be imported at all (nothing was processed)."""


class CatalogStore(Protocol):
    def get_by_sku(self, sku: str) -> StoredProduct | None: ...

    def list_categories(self) -> list[CategoryRef]: ...

    def list_subcategories(self) -> list[SubcategoryRef]: ...

    def create_product(self, fields: dict) -> StoredProduct: ...

    def update_product(self, product_id: int, fields: dict) -> StoredProduct: ...


def parse_csv_line(line: str) -> list[str]:
    """Split one CSV line on commas outside double quotes.

    A doubled quote inside a quoted segment is a literal quote. Fields are
    trimmed and empty trailing fields are kept. An unterminated quote swallows
    the rest of the line.
    """
    result: list[str] = []
    current: list[str] = []
    in_quotes = False

    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            result.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    result.append("".join(current).strip())
    return result


def _split_pipe(text: str) -> list[str]:
    return [part.strip() for part in text.split("|") if part.strip()]


def parse_image_list(text: str | None) -> list[str]:
    """Image cell -> list of URLs. Accepts a JSON array or `a|b|c`; never raises."""
    s = (text or "").strip()
    if not s:
        return []

    if s.startswith("["):
        try:
            parsed = json.loads(s)
        except ValueError:
            return _split_pipe(s)
        if not isinstance(parsed, list):
            return []
        return [str(item).strip() for item in parsed if item is not None and str(item).strip()]

    return _split_pipe(s)


def validate_row(
    row: ImportRow,
    row_number: int,
    categories: list[CategoryRef],
    subcategories: list[SubcategoryRef],
) -> ProductDraft | RowError:
    if not row.name:
        return RowError(row=row_number, error="Nombre es requerido")

    price = parse_price(row.price_text)
    if price is None:
        return RowError(row=row_number, error="Precio inválido")

    category: CategoryRef | None = None
    if row.category_name:
        wanted = row.category_name.lower()
        category = next((c for c in categories if c.name.lower() == wanted), None)
        if category is None:
            return RowError(row=row_number, error=f'Categoría "{row.category_name}" no encontrada')

    # An unknown subcategory is ignored, unlike an unknown category.
    subcategory_id: int | None = None
    if row.subcategory_name and category is not None:
        wanted = row.subcategory_name.lower()
        sub = next(
            (s for s in subcategories if s.name.lower() == wanted and s.category_id == category.id),
            None,
        )
        if sub is not None:
            subcategory_id = sub.id

    return ProductDraft(
        row=row_number,
        name=row.name,
        description=row.description,
        sku=row.sku,
        barcode=row.barcode,
        price=price,
        category_id=category.id if category else None,
        subcategory_id=subcategory_id,
        status_text=row.status_text,
        image_urls=parse_image_list(row.images_text),
    )


def _is_active_status(status_text: str) -> bool:
    return (status_text or "").strip().lower() != "inactivo"


def build_insert(draft: ProductDraft) -> dict:
    # Products without a category never go live straight from an import.
    is_active = _is_active_status(draft.status_text) if draft.category_id is not None else False
    return {
        "name": draft.name,
        "description": draft.description or None,
        "sku": draft.sku or None,
        "barcode": draft.barcode or None,
        "price": draft.price,
        "category_id": draft.category_id,
        "subcategory_id": draft.subcategory_id,
        "is_active": is_active,
        "image_urls": list(draft.image_urls),
    }


def build_update(draft: ProductDraft, existing: StoredProduct) -> dict:
    # Blank cells keep the stored value, except barcode (cleared) and price/status (always taken).
    return {
        "name": draft.name,
        "description": draft.description or existing.description,
        "barcode": draft.barcode or None,
        "price": draft.price,
        "category_id": draft.category_id or existing.category_id,
        "subcategory_id": draft.subcategory_id or existing.subcategory_id,
        "is_active": _is_active_status(draft.status_text),
        "image_urls": list(draft.image_urls) if draft.image_urls else list(existing.image_urls),
    }


class CsvImporter:
    """Bulk create-or-update of catalog products from the storehouse CSV.

    Rows are handled one after another; every write goes through the store
    before the next row is read. Row problems end up in ImportResult.errors,
    only an unreadable/empty file raises CsvImportError.
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    @staticmethod
    def decode(data: bytes) -> str:
        try:
            # utf-8-sig drops the BOM our own export writes.
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CsvImportError("No se pudo leer el archivo CSV") from e

    def import_file(self, path: Path) -> ImportResult:
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            raise CsvImportError(f"No se pudo leer el archivo CSV: {p}") from e
        return self.import_bytes(data)

    def import_bytes(self, data: bytes) -> ImportResult:
        return self.import_text(self.decode(data))

    def import_text(self, text: str) -> ImportResult:
        lines = [ln for ln in _LINE_SPLIT_RE.split(text or "") if ln.strip()]
        if len(lines) < 2:
            raise CsvImportError("El archivo CSV está vacío o no tiene datos")

        categories = self.store.list_categories()
        subcategories = self.store.list_subcategories()

        data_rows = lines[1:]
        logger.info("CSV import started: %d data rows", len(data_rows))

        result = ImportResult()
        for i, line in enumerate(data_rows):
            row_number = i + 2
            row = ImportRow.from_fields(parse_csv_line(line))
            self._import_row(row, row_number, categories, subcategories, result)

        logger.info(
            "CSV import finished: created=%d updated=%d errors=%d",
            result.success,
            result.updated,
            len(result.errors),
        )
        return result

    def _import_row(
        self,
        row: ImportRow,
        row_number: int,
        categories: list[CategoryRef],
        subcategories: list[SubcategoryRef],
        result: ImportResult,
    ) -> None:
        checked = validate_row(row, row_number, categories, subcategories)
        if isinstance(checked, RowError):
            result.errors.append(checked)
            return

        existing: StoredProduct | None = None
        try:
            if checked.sku:
                existing = self.store.get_by_sku(checked.sku)

            if existing is not None:
                self.store.update_product(existing.id, build_update(checked, existing))
                result.updated += 1
            else:
                self.store.create_product(build_insert(checked))
                result.success += 1
        except CatalogStoreError as e:
            logger.warning("CSV import row %d failed: %s", row_number, e)
            result.add_error(
                row_number,
                "Error al actualizar el producto" if existing is not None else "Error al crear el producto",
            )
