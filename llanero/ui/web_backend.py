from __future__ import annotations

from llanero.csv_export import catalog_to_csv, export_filename
from llanero.csv_import import CsvImporter, CsvImportError
from llanero.excel_export import catalog_to_xlsx_bytes
from llanero.services import BulkResult, CatalogService, CatalogStoreError
from llanero.settings import Settings


def _bulk(res: BulkResult) -> dict:
    return {"ok": res.ok, "error": res.error, "updated": res.updated, "failed": res.failed}


class WebBackend:
    """JSON backend for the storehouse (almacén) screen.

    Method names match the HTTP routes. Return values must be JSON-serializable;
    errors come back as {"ok": False, "error": ...} instead of raising.
    """

    def __init__(self, session_factory, settings: Settings):
        self._settings = settings
        self._catalog = CatalogService(session_factory)

    def getAppInfo(self):
        db_url = str(getattr(self._settings, "DATABASE_URL", "") or "")
        db_file = ""
        if db_url.startswith("sqlite:///"):
            db_file = db_url[len("sqlite:///") :]
        return {"app_name": self._settings.APP_NAME, "db_url": db_url, "db_file": db_file}

    def searchProducts(self, q: str = "", status: str = "all", limit: int = 120):
        try:
            lim = max(1, min(int(limit or 120), 500))
        except (TypeError, ValueError):
            return {"ok": False, "error": "Datos inválidos"}
        try:
            rows = self._catalog.list_products(q or "", status=status or "all", limit=lim)
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}
        return [
            {
                "id": r.id,
                "name": r.name,
                "description": r.description,
                "sku": r.sku,
                "barcode": r.barcode,
                "price": float(r.price),
                "is_active": r.is_active,
                "category": r.category,
                "subcategory": r.subcategory,
                "image_urls": r.image_urls,
            }
            for r in rows
        ]

    def getStats(self):
        try:
            return self._catalog.stats()
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}

    def getCategories(self):
        try:
            return [{"id": c.id, "name": c.name} for c in self._catalog.list_categories()]
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}

    def getSubcategories(self):
        try:
            return [
                {"id": s.id, "name": s.name, "category_id": s.category_id}
                for s in self._catalog.list_subcategories()
            ]
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}

    def createCategory(self, name: str):
        try:
            c = self._catalog.create_category(name)
        except (CatalogStoreError, ValueError) as e:
            return {"ok": False, "error": str(e)}
        return {"ok": True, "id": c.id, "name": c.name}

    def createSubcategory(self, category: str, name: str):
        try:
            s = self._catalog.create_subcategory(category, name)
        except (CatalogStoreError, ValueError) as e:
            return {"ok": False, "error": str(e)}
        return {"ok": True, "id": s.id, "name": s.name, "category_id": s.category_id}

    def importCsv(self, data: bytes):
        try:
            result = CsvImporter(self._catalog).import_bytes(data)
        except (CsvImportError, CatalogStoreError) as e:
            return {"ok": False, "error": str(e)}
        return {"ok": True, **result.to_dict(), "messages": result.messages()}

    # exportCsv / exportExcel return (filename, content), or an error dict.
    def exportCsv(self):
        try:
            rows = self._catalog.list_products()
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}
        return export_filename(self._settings.CSV_EXPORT_PREFIX), catalog_to_csv(rows)

    def exportExcel(self):
        try:
            rows = self._catalog.list_products()
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}
        content = catalog_to_xlsx_bytes(worksheet_name=self._settings.EXCEL_EXPORT_WORKSHEET_NAME, rows=rows)
        return export_filename(self._settings.CSV_EXPORT_PREFIX, suffix=".xlsx"), content

    def setProductsPrice(self, prices):
        if not isinstance(prices, dict):
            return {"ok": False, "error": "Datos inválidos"}
        try:
            res = self._catalog.update_prices(prices)
        except ValueError:
            return {"ok": False, "error": "Datos inválidos"}
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}
        return _bulk(res)

    def setProductsStatus(self, statuses):
        if not isinstance(statuses, dict):
            return {"ok": False, "error": "Datos inválidos"}
        try:
            res = self._catalog.update_statuses(statuses)
        except ValueError:
            return {"ok": False, "error": "Datos inválidos"}
        return _bulk(res)

    def deleteProducts(self, ids):
        if not isinstance(ids, list):
            return {"ok": False, "error": "Datos inválidos"}
        try:
            res = self._catalog.delete_products(ids)
        except ValueError:
            return {"ok": False, "error": "Datos inválidos"}
        return _bulk(res)

    def setAllStatus(self, active):
        try:
            n = self._catalog.set_all_active(bool(active))
        except CatalogStoreError as e:
            return {"ok": False, "error": str(e)}
        return {"ok": True, "updated": n}
