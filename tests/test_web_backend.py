from __future__ import annotations

import pytest

from conftest import HEADER
from llanero.models import Base
from llanero.settings import Settings
from llanero.ui.web_backend import WebBackend


@pytest.fixture
def backend(session_factory, tmp_path):
    return WebBackend(session_factory, Settings(INSTANCE_DIR=tmp_path))


def test_store_failures_come_back_as_errors(backend, session_factory):
    Base.metadata.drop_all(session_factory.kw["bind"])

    res = backend.importCsv(f"{HEADER}\nMalta,,M1,,1,,,,\n".encode("utf-8"))
    assert res["ok"] is False
    assert "categorías" in res["error"]

    for call in (backend.searchProducts, backend.getCategories, backend.getSubcategories, backend.getStats,
                 backend.exportCsv, backend.exportExcel):
        assert call()["ok"] is False


def test_search_rejects_non_numeric_limit(backend):
    assert backend.searchProducts("", "all", "muchos") == {"ok": False, "error": "Datos inválidos"}
    assert backend.searchProducts("", "all", "5") == []


def test_delete_products(backend, catalog):
    p = catalog.create_product({"name": "Malta", "sku": "M1", "price": 1, "image_urls": []})

    assert backend.deleteProducts("M1") == {"ok": False, "error": "Datos inválidos"}
    assert backend.deleteProducts(["x"]) == {"ok": False, "error": "Datos inválidos"}
    assert backend.deleteProducts([p.id]) == {"ok": True, "error": None, "updated": 1, "failed": 0}
    assert catalog.get_by_sku("M1") is None
