"""Shared pytest fixtures: a throwaway SQLite catalog per test."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from llanero.db import create_engine_from_url, init_db, make_session_factory  # noqa: E402
from llanero.services import CatalogService  # noqa: E402


HEADER = "Nombre,Descripción,SKU,Código de barras,Precio,Categoría,Subcategoría,Estado,Imágenes"


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine_from_url(f"sqlite:///{(tmp_path / 'catalog.sqlite').as_posix()}")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def catalog(session_factory) -> CatalogService:
    return CatalogService(session_factory)


@pytest.fixture
def seeded(catalog):
    """Bebidas/Gaseosas and Snacks/Dulces."""
    bebidas = catalog.create_category("Bebidas")
    snacks = catalog.create_category("Snacks")
    gaseosas = catalog.create_subcategory("Bebidas", "Gaseosas")
    dulces = catalog.create_subcategory("Snacks", "Dulces")
    return {"bebidas": bebidas, "snacks": snacks, "gaseosas": gaseosas, "dulces": dulces}
