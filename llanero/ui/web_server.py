from __future__ import annotations

from urllib.parse import quote

from flask import Flask, Response, jsonify, request

from llanero.settings import Settings
from llanero.ui.web_backend import WebBackend


def _attachment(content, filename: str, content_type: str) -> Response:
    resp = Response(content, content_type=content_type)
    resp.headers["Content-Disposition"] = f"attachment; filename*=UTF-8''{quote(filename)}"
    return resp


def create_app(session_factory, settings: Settings) -> Flask:
    backend = WebBackend(session_factory=session_factory, settings=settings)

    app = Flask(__name__, static_folder=None)
    app.config["MAX_CONTENT_LENGTH"] = int(settings.MAX_UPLOAD_MB) * 1024 * 1024

    def _ok(payload):
        return jsonify(payload)

    @app.get("/health")
    def health() -> Response:
        return jsonify({"ok": True, "app": settings.APP_NAME})

    # --- JSON API ---
    @app.get("/api/getAppInfo")
    def api_get_app_info():
        return _ok(backend.getAppInfo())

    @app.post("/api/searchProducts")
    def api_search_products():
        data = request.get_json(silent=True) or {}
        return _ok(backend.searchProducts(data.get("q", ""), data.get("status", "all"), data.get("limit", 120)))

    @app.get("/api/getStats")
    def api_get_stats():
        return _ok(backend.getStats())

    @app.get("/api/getCategories")
    def api_get_categories():
        return _ok(backend.getCategories())

    @app.get("/api/getSubcategories")
    def api_get_subcategories():
        return _ok(backend.getSubcategories())

    @app.post("/api/createCategory")
    def api_create_category():
        data = request.get_json(silent=True) or {}
        return _ok(backend.createCategory(data.get("name", "")))

    @app.post("/api/createSubcategory")
    def api_create_subcategory():
        data = request.get_json(silent=True) or {}
        return _ok(backend.createSubcategory(data.get("category", ""), data.get("name", "")))

    @app.post("/api/setProductsPrice")
    def api_set_products_price():
        data = request.get_json(silent=True) or {}
        return _ok(backend.setProductsPrice(data.get("prices")))

    @app.post("/api/setProductsStatus")
    def api_set_products_status():
        data = request.get_json(silent=True) or {}
        return _ok(backend.setProductsStatus(data.get("statuses")))

    @app.post("/api/deleteProducts")
    def api_delete_products():
        data = request.get_json(silent=True) or {}
        return _ok(backend.deleteProducts(data.get("ids")))

    @app.post("/api/setAllStatus")
    def api_set_all_status():
        data = request.get_json(silent=True) or {}
        return _ok(backend.setAllStatus(data.get("active")))

    # --- CSV / Excel ---
    @app.post("/api/importCsvUpload")
    def api_import_csv_upload():
        f = request.files.get("file")
        if f is None or not f.filename:
            return _ok({"ok": False, "error": "Archivo inválido"})
        if not f.filename.lower().endswith(".csv"):
            return _ok({"ok": False, "error": "Por favor, selecciona un archivo CSV válido"})
        return _ok(backend.importCsv(f.read()))

    @app.get("/api/exportCsv")
    def api_export_csv():
        res = backend.exportCsv()
        if isinstance(res, dict):
            return _ok(res)
        filename, content = res
        return _attachment(content.encode("utf-8"), filename, "text/csv; charset=utf-8")

    @app.get("/api/exportExcel")
    def api_export_excel():
        res = backend.exportExcel()
        if isinstance(res, dict):
            return _ok(res)
        filename, content = res
        return _attachment(
            content,
            filename,
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

    return app
