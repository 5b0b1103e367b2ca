from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from llanero.db import session_scope
from llanero.models import Product
from llanero.repos import CategoryRepo, ProductRepo, SubcategoryRepo
from llanero.tipos_importacion import CategoryRef, StoredProduct, SubcategoryRef

logger = logging.getLogger(__name__)


class CatalogStoreError(RuntimeError):
    """A catalog read or write was rejected by the database."""


def money(x: float | Decimal) -> Decimal:
    d = x if isinstance(x, Decimal) else Decimal(str(x))
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_price(text) -> Decimal | None:
    """Non-negative decimal price, or None when the value is not usable."""
    s = str(text if text is not None else "").strip()
    if not s:
        return None
    try:
        d = Decimal(s)
        if not d.is_finite() or d < 0:
            return None
        return money(d)
    except (InvalidOperation, ValueError):
        return None


def _snapshot(p: Product) -> StoredProduct:
    return StoredProduct(
        id=int(p.id),
        name=p.name,
        description=p.description,
        sku=p.sku,
        barcode=p.barcode,
        price=money(p.price),
        is_active=bool(p.is_active),
        category_id=p.category_id,
        subcategory_id=p.subcategory_id,
        image_urls=list(p.image_urls or []),
    )


@dataclass(frozen=True)
class CatalogRow:
    """Product joined with its category/subcategory names (listing and export)."""

    id: int
    name: str
    description: str
    sku: str
    barcode: str
    price: Decimal
    is_active: bool
    category: str
    subcategory: str
    image_urls: list[str]


@dataclass(frozen=True)
class BulkResult:
    ok: bool
    error: str | None = None
    updated: int = 0
    failed: int = 0


class CatalogService:
    """Catalog store used by the CSV importer and the admin surfaces.

    Every public method opens its own session and commits before returning, so a
    write is visible to the next call (the importer relies on this to see SKUs
    created earlier in the same run). Database failures surface as
    CatalogStoreError.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    # --- lookups ---

    def get_by_sku(self, sku: str) -> StoredProduct | None:
        try:
            with session_scope(self._session_factory) as session:
                row = ProductRepo(session).get_by_sku(sku)
                return _snapshot(row) if row is not None else None
        except SQLAlchemyError as e:
            raise CatalogStoreError(f"No se pudo buscar el SKU {sku!r}") from e

    def list_categories(self) -> list[CategoryRef]:
        try:
            with session_scope(self._session_factory) as session:
                return [CategoryRef(id=c.id, name=c.name) for c in CategoryRepo(session).list_all()]
        except SQLAlchemyError as e:
            raise CatalogStoreError("No se pudieron cargar las categorías") from e

    def list_subcategories(self) -> list[SubcategoryRef]:
        try:
            with session_scope(self._session_factory) as session:
                return [
                    SubcategoryRef(id=s.id, name=s.name, category_id=s.category_id)
                    for s in SubcategoryRepo(session).list_all()
                ]
        except SQLAlchemyError as e:
            raise CatalogStoreError("No se pudieron cargar las subcategorías") from e

    def list_products(self, q: str = "", *, status: str = "all", limit: int = 0) -> list[CatalogRow]:
        try:
            with session_scope(self._session_factory) as session:
                rows = ProductRepo(session).list(q, status=status, limit=limit)
                return [
                    CatalogRow(
                        id=int(p.id),
                        name=p.name,
                        description=p.description or "",
                        sku=p.sku or "",
                        barcode=p.barcode or "",
                        price=money(p.price),
                        is_active=bool(p.is_active),
                        category=p.category.name if p.category else "",
                        subcategory=p.subcategory.name if p.subcategory else "",
                        image_urls=list(p.image_urls or []),
                    )
                    for p in rows
                ]
        except SQLAlchemyError as e:
            raise CatalogStoreError("No se pudieron cargar los productos") from e

    def stats(self) -> dict[str, int]:
        try:
            with session_scope(self._session_factory) as session:
                return ProductRepo(session).count_by_status()
        except SQLAlchemyError as e:
            raise CatalogStoreError("No se pudieron contar los productos") from e

    # --- writes ---

    def create_product(self, fields: dict) -> StoredProduct:
        try:
            with session_scope(self._session_factory) as session:
                return _snapshot(ProductRepo(session).create(fields))
        except SQLAlchemyError as e:
            raise CatalogStoreError("No se pudo crear el producto") from e

    def update_product(self, product_id: int, fields: dict) -> StoredProduct:
        try:
            with session_scope(self._session_factory) as session:
                row = ProductRepo(session).update(product_id, fields)
                if row is None:
                    raise CatalogStoreError(f"Producto {product_id} no encontrado")
                return _snapshot(row)
        except SQLAlchemyError as e:
            raise CatalogStoreError("No se pudo actualizar el producto") from e

    def create_category(self, name: str) -> CategoryRef:
        try:
            with session_scope(self._session_factory) as session:
                repo = CategoryRepo(session)
                # Names match case-insensitively on import, so they must be unique that way.
                if repo.get_by_name(name) is not None:
                    raise CatalogStoreError(f'La categoría "{(name or "").strip()}" ya existe')
                c = repo.create(name)
                return CategoryRef(id=c.id, name=c.name)
        except SQLAlchemyError as e:
            raise CatalogStoreError(f"No se pudo crear la categoría {name!r}") from e

    def create_subcategory(self, category_name: str, name: str) -> SubcategoryRef:
        try:
            with session_scope(self._session_factory) as session:
                cat = CategoryRepo(session).get_by_name(category_name)
                if cat is None:
                    raise CatalogStoreError(f'Categoría "{category_name}" no encontrada')
                s = SubcategoryRepo(session).create(cat.id, name)
                return SubcategoryRef(id=s.id, name=s.name, category_id=s.category_id)
        except SQLAlchemyError as e:
            raise CatalogStoreError(f"No se pudo crear la subcategoría {name!r}") from e

    # --- bulk edits (storehouse screen) ---

    def update_prices(self, prices: dict) -> BulkResult:
        ids = [int(k) for k in (prices or {}).keys()]
        if not ids:
            return BulkResult(ok=False, error="No hay productos seleccionados")

        try:
            with session_scope(self._session_factory) as session:
                names = {pid: p.name for pid, p in ProductRepo(session).get_by_ids(ids).items()}
        except SQLAlchemyError as e:
            raise CatalogStoreError("No se pudieron cargar los productos") from e

        # Validate everything first; one bad price aborts the whole batch.
        parsed: dict[int, Decimal] = {}
        for key, value in prices.items():
            pid = int(key)
            price = parse_price(value)
            if price is None:
                return BulkResult(ok=False, error=f'Precio inválido para "{names.get(pid, pid)}"')
            parsed[pid] = price

        updated = failed = 0
        for pid, price in parsed.items():
            try:
                self.update_product(pid, {"price": price})
                updated += 1
            except CatalogStoreError as e:
                logger.warning("Bulk price update failed for product %s: %s", pid, e)
                failed += 1
        return BulkResult(ok=updated > 0 or failed == 0, updated=updated, failed=failed)

    def update_statuses(self, statuses: dict) -> BulkResult:
        if not statuses:
            return BulkResult(ok=False, error="No hay productos seleccionados")

        updated = failed = 0
        for key, active in statuses.items():
            try:
                self.update_product(int(key), {"is_active": bool(active)})
                updated += 1
            except CatalogStoreError as e:
                logger.warning("Bulk status update failed for product %s: %s", key, e)
                failed += 1
        return BulkResult(ok=updated > 0 or failed == 0, updated=updated, failed=failed)

    def delete_product(self, product_id: int) -> None:
        try:
            with session_scope(self._session_factory) as session:
                if not ProductRepo(session).delete(product_id):
                    raise CatalogStoreError(f"Producto {product_id} no encontrado")
        except SQLAlchemyError as e:
            raise CatalogStoreError("Error al eliminar el producto") from e

    def delete_products(self, ids) -> BulkResult:
        if not ids:
            return BulkResult(ok=False, error="No hay productos seleccionados")

        deleted = failed = 0
        for key in [int(k) for k in ids]:
            try:
                self.delete_product(key)
                deleted += 1
            except CatalogStoreError as e:
                logger.warning("Bulk delete failed for product %s: %s", key, e)
                failed += 1
        return BulkResult(ok=deleted > 0 or failed == 0, updated=deleted, failed=failed)

    def set_all_active(self, is_active: bool) -> int:
        try:
            with session_scope(self._session_factory) as session:
                return ProductRepo(session).set_active_all(is_active)
        except SQLAlchemyError as e:
            raise CatalogStoreError("Error al actualizar los productos") from e
