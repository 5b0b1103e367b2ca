from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


# Column order of the catalog CSV (import and export share it).
CSV_HEADERS = [
    "Nombre",
    "Descripción",
    "SKU",
    "Código de barras",
    "Precio",
    "Categoría",
    "Subcategoría",
    "Estado",
    "Imágenes",
]


@dataclass(frozen=True)
class ImportRow:
    """Una fila del CSV ya separada en campos con nombre.

    Nota: se construye justo después de parsear la línea; ningún código
    posterior trabaja con la lista cruda de strings.
    """

    name: str = ""
    description: str = ""
    sku: str = ""
    barcode: str = ""
    price_text: str = ""
    category_name: str = ""
    subcategory_name: str = ""
    status_text: str = ""
    images_text: str = ""

    @classmethod
    def from_fields(cls, values: list[str]) -> "ImportRow":
        # Short rows (omitted trailing columns) are padded; extra columns are ignored.
        padded = list(values[: len(CSV_HEADERS)])
        padded += [""] * (len(CSV_HEADERS) - len(padded))
        return cls(*padded)


@dataclass(frozen=True)
class CategoryRef:
    id: int
    name: str


@dataclass(frozen=True)
class SubcategoryRef:
    id: int
    name: str
    category_id: int


@dataclass(frozen=True)
class StoredProduct:
    """Snapshot of a catalog product, detached from any DB session."""

    id: int
    name: str
    description: str | None
    sku: str | None
    barcode: str | None
    price: Decimal
    is_active: bool
    category_id: int | None
    subcategory_id: int | None
    image_urls: list[str]


@dataclass(frozen=True)
class ProductDraft:
    """Fila validada, con categoría/subcategoría resueltas a ids."""

    row: int
    name: str
    description: str
    sku: str
    barcode: str
    price: Decimal
    category_id: int | None
    subcategory_id: int | None
    status_text: str
    image_urls: list[str]


@dataclass(frozen=True)
class RowError:
    row: int
    error: str

    def __str__(self) -> str:
        return f"Fila {self.row}: {self.error}"


@dataclass
class ImportResult:
    success: int = 0
    updated: int = 0
    errors: list[RowError] = field(default_factory=list)

    def add_error(self, row: int, error: str) -> None:
        self.errors.append(RowError(row=row, error=error))

    def messages(self) -> list[str]:
        return [str(e) for e in self.errors]

    def to_dict(self) -> dict:
        return {
            "success": int(self.success),
            "updated": int(self.updated),
            "errors": [{"row": e.row, "error": e.error} for e in self.errors],
        }
