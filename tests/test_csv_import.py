from __future__ import annotations

import dataclasses
from decimal import Decimal

import pytest

from conftest import HEADER
from llanero.csv_import import CsvImporter, CsvImportError
from llanero.services import CatalogStoreError
from llanero.tipos_importacion import CategoryRef, StoredProduct


def _csv(*rows: str) -> str:
    return "\n".join([HEADER, *rows])


def _by_sku(catalog, sku):
    return catalog.get_by_sku(sku)


# --- against the SQLite catalog ---


def test_new_sku_creates_product(catalog, seeded):
    result = CsvImporter(catalog).import_text(_csv("Coca-Cola,,COKE1,,1.50,Bebidas,,Activo,"))

    assert result.success == 1
    assert result.updated == 0
    assert result.errors == []

    p = _by_sku(catalog, "COKE1")
    assert p.name == "Coca-Cola"
    assert p.price == Decimal("1.50")
    assert p.is_active is True
    assert p.category_id == seeded["bebidas"].id
    assert p.description is None
    assert p.image_urls == []


def test_existing_sku_updates_and_keeps_blank_fields(catalog, seeded):
    original = catalog.create_product(
        {
            "name": "Coca-Cola 1L",
            "description": "Botella retornable",
            "sku": "COKE1",
            "barcode": "7591",
            "price": Decimal("1.00"),
            "is_active": False,
            "category_id": seeded["bebidas"].id,
            "subcategory_id": seeded["gaseosas"].id,
            "image_urls": ["https://cdn/coke.png"],
        }
    )

    result = CsvImporter(catalog).import_text(_csv("Coca-Cola,,COKE1,,1.50,,,,"))

    assert (result.success, result.updated, result.errors) == (0, 1, [])
    p = _by_sku(catalog, "COKE1")
    assert p.id == original.id
    assert p.name == "Coca-Cola"
    assert p.description == "Botella retornable"
    assert p.category_id == seeded["bebidas"].id
    assert p.subcategory_id == seeded["gaseosas"].id
    assert p.image_urls == ["https://cdn/coke.png"]
    assert p.price == Decimal("1.50")
    assert p.barcode is None
    assert p.is_active is True


def test_missing_name_is_reported_and_nothing_written(catalog, seeded):
    result = CsvImporter(catalog).import_text(_csv(",,SKU1,,2.00,,,,"))

    assert result.messages() == ["Fila 2: Nombre es requerido"]
    assert (result.success, result.updated) == (0, 0)
    assert catalog.list_products() == []


def test_unknown_category_is_reported(catalog, seeded):
    result = CsvImporter(catalog).import_text(_csv("Jugo,,,,3.00,Lacteos,,Activo,"))

    assert result.messages() == ['Fila 2: Categoría "Lacteos" no encontrada']
    assert catalog.list_products() == []


@pytest.mark.parametrize("price", ["-1", "abc"])
def test_bad_price_is_reported(catalog, seeded, price):
    result = CsvImporter(catalog).import_text(_csv(f"Jugo,,J1,,{price},Bebidas,,,"))

    assert result.messages() == ["Fila 2: Precio inválido"]
    assert _by_sku(catalog, "J1") is None


def test_insert_without_category_is_forced_inactive(catalog, seeded):
    result = CsvImporter(catalog).import_text(_csv("Suelto,,S1,,5,,,Activo,"))

    assert result.success == 1
    assert _by_sku(catalog, "S1").is_active is False


def test_blank_sku_always_inserts(catalog, seeded):
    catalog.create_product({"name": "Pan", "price": Decimal("1"), "is_active": True, "image_urls": []})

    result = CsvImporter(catalog).import_text(_csv("Pan,,,,1.20,Snacks,,,"))

    assert (result.success, result.updated) == (1, 0)
    assert len(catalog.list_products()) == 2


def test_sku_created_earlier_in_the_same_file_is_updated(catalog, seeded):
    result = CsvImporter(catalog).import_text(
        _csv(
            "Malta,,M1,,1.00,Bebidas,,,",
            "Malta Polar,,M1,,1.25,,,Inactivo,",
        )
    )

    assert (result.success, result.updated, result.errors) == (1, 1, [])
    p = _by_sku(catalog, "M1")
    assert p.name == "Malta Polar"
    assert p.price == Decimal("1.25")
    assert p.is_active is False
    assert p.category_id == seeded["bebidas"].id


def test_errors_do_not_stop_later_rows_and_keep_file_order(catalog, seeded):
    result = CsvImporter(catalog).import_text(
        _csv(
            ",,,,1,,,,",
            "A,,A1,,1,Bebidas,,,",
            "B,,B1,,x,,,,",
            "C,,C1,,1,Otra,,,",
            "D,,D1,,1,Snacks,Dulces,,",
        )
    )

    assert result.success == 2
    assert result.messages() == [
        "Fila 2: Nombre es requerido",
        "Fila 4: Precio inválido",
        'Fila 5: Categoría "Otra" no encontrada',
    ]
    assert _by_sku(catalog, "D1").subcategory_id == seeded["dulces"].id


def test_blank_lines_are_dropped_before_numbering(catalog, seeded):
    text = HEADER + "\n\nA,,A1,,1,Bebidas,,,\n   \n,,,,1,,,,\n"

    result = CsvImporter(catalog).import_text(text)

    assert result.success == 1
    assert result.messages() == ["Fila 3: Nombre es requerido"]


def test_bom_and_crlf_are_accepted(catalog, seeded):
    data = ("\ufeff" + HEADER + "\r\nA,,A1,,1,Bebidas,,,\r\n").encode("utf-8")

    result = CsvImporter(catalog).import_bytes(data)

    assert result.success == 1
    assert _by_sku(catalog, "A1").name == "A"


def test_json_image_cell_and_unknown_subcategory(catalog, seeded):
    row = 'Pepsi,"Lata, 355ml",P1,,0.90,bebidas,Nada,,"[""https://a/1.png"",""https://a/2.png""]"'

    result = CsvImporter(catalog).import_text(_csv(row))

    assert result.errors == []
    p = _by_sku(catalog, "P1")
    assert p.description == "Lata, 355ml"
    assert p.subcategory_id is None
    assert p.image_urls == ["https://a/1.png", "https://a/2.png"]


def test_import_file(catalog, seeded, tmp_path):
    path = tmp_path / "productos.csv"
    path.write_text(_csv("A,,A1,,1,Bebidas,,,"), encoding="utf-8")

    assert CsvImporter(catalog).import_file(path).success == 1


@pytest.mark.parametrize("text", ["", HEADER, HEADER + "\n\n  \n"])
def test_file_without_data_rows_is_fatal(catalog, text):
    with pytest.raises(CsvImportError, match="vacío"):
        CsvImporter(catalog).import_text(text)


def test_undecodable_file_is_fatal(catalog):
    with pytest.raises(CsvImportError, match="No se pudo leer"):
        CsvImporter(catalog).import_bytes(b"Nombre\n\xff\xfe\xfa")


def test_missing_file_is_fatal(catalog, tmp_path):
    with pytest.raises(CsvImportError):
        CsvImporter(catalog).import_file(tmp_path / "nope.csv")


# --- store failures (in-memory fake store) ---


class FakeStore:
    def __init__(self):
        self.categories = [CategoryRef(id=1, name="Bebidas")]
        self.products: dict[int, StoredProduct] = {}
        self.fail_create: set[str] = set()
        self.fail_update: set[int] = set()
        self.calls: list[tuple] = []

    def get_by_sku(self, sku):
        return next((p for p in self.products.values() if p.sku == sku), None)

    def list_categories(self):
        return list(self.categories)

    def list_subcategories(self):
        return []

    def create_product(self, fields):
        self.calls.append(("create", fields["name"]))
        if fields["name"] in self.fail_create:
            raise CatalogStoreError("insert rejected")
        p = StoredProduct(id=len(self.products) + 1, **fields)
        self.products[p.id] = p
        return p

    def update_product(self, product_id, fields):
        self.calls.append(("update", product_id))
        if product_id in self.fail_update:
            raise CatalogStoreError("update rejected")
        p = dataclasses.replace(self.products[product_id], **fields)
        self.products[product_id] = p
        return p


def test_failed_insert_is_recorded_and_import_continues():
    store = FakeStore()
    store.fail_create.add("Roto")

    result = CsvImporter(store).import_text(_csv("Roto,,R1,,1,Bebidas,,,", "Bueno,,B1,,1,Bebidas,,,"))

    assert result.success == 1
    assert result.messages() == ["Fila 2: Error al crear el producto"]
    assert store.calls == [("create", "Roto"), ("create", "Bueno")]


def test_failed_update_is_recorded():
    store = FakeStore()
    store.create_product(
        {
            "name": "Viejo",
            "description": None,
            "sku": "V1",
            "barcode": None,
            "price": Decimal("1"),
            "is_active": True,
            "category_id": 1,
            "subcategory_id": None,
            "image_urls": [],
        }
    )
    store.fail_update.add(1)

    result = CsvImporter(store).import_text(_csv("Nuevo,,V1,,2,,,,", "Otro,,O1,,3,Bebidas,,,"))

    assert (result.success, result.updated) == (1, 0)
    assert result.messages() == ["Fila 2: Error al actualizar el producto"]
    assert store.products[1].name == "Viejo"


def test_result_serializes_for_the_ui():
    store = FakeStore()

    result = CsvImporter(store).import_text(_csv("A,,A1,,1,Bebidas,,,", ",,,,1,,,,"))

    assert result.to_dict() == {
        "success": 1,
        "updated": 0,
        "errors": [{"row": 3, "error": "Nombre es requerido"}],
    }
