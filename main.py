from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from llanero.csv_export import export_catalog_to_csv, export_filename
from llanero.csv_import import CsvImporter, CsvImportError
from llanero.db import create_engine_from_url, init_db, make_session_factory, reset_db
from llanero.excel_export import export_catalog_to_excel
from llanero.services import CatalogService, CatalogStoreError
from llanero.settings import Settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Llanero - catálogo del almacén (import/export CSV)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Create or update products from a CSV file")
    p_import.add_argument("file", type=Path)

    p_export = sub.add_parser("export", help="Export the catalog to CSV (or .xlsx with --excel)")
    p_export.add_argument("--output", "-o", type=Path, default=None)
    p_export.add_argument("--excel", action="store_true", help="Write an .xlsx workbook instead of CSV")

    p_cat = sub.add_parser("add-category", help="Create a category")
    p_cat.add_argument("name")

    p_sub = sub.add_parser("add-subcategory", help="Create a subcategory inside a category")
    p_sub.add_argument("category")
    p_sub.add_argument("name")

    p_reset = sub.add_parser("reset-db", help="Drop and recreate every table")
    p_reset.add_argument("--confirm", default="", help="Type BORRAR to confirm")

    return parser


def _run_import(catalog: CatalogService, path: Path) -> int:
    try:
        result = CsvImporter(catalog).import_file(path)
    except (CsvImportError, CatalogStoreError) as e:
        print(f"Error al procesar el archivo CSV: {e}")
        return 2

    print(f"{result.success} producto(s) creado(s)")
    print(f"{result.updated} producto(s) actualizado(s)")
    for msg in result.messages():
        print(msg)
    return 0


def _run_export(catalog: CatalogService, settings: Settings, output: Path | None, excel: bool) -> int:
    try:
        rows = catalog.list_products()
    except CatalogStoreError as e:
        print(str(e))
        return 1
    suffix = ".xlsx" if excel else ".csv"
    out = output or (Path.cwd() / export_filename(settings.CSV_EXPORT_PREFIX, suffix=suffix))
    if excel:
        n, sheet = export_catalog_to_excel(
            xlsx_path=out, worksheet_name=settings.EXCEL_EXPORT_WORKSHEET_NAME, rows=rows
        )
        print(f"exported {n} products to {out} [{sheet}]")
    else:
        n = export_catalog_to_csv(csv_path=out, rows=rows)
        print(f"exported {n} products to {out}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    settings = Settings()
    settings.ensure_instance()
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_engine_from_url(settings.DATABASE_URL)
    if args.command == "reset-db":
        if (args.confirm or "").strip().upper() != "BORRAR":
            print("Confirmación inválida (usa --confirm BORRAR)")
            return 2
        reset_db(engine)
        print("OK: database reset")
        return 0

    init_db(engine)
    catalog = CatalogService(make_session_factory(engine))

    if args.command == "import":
        return _run_import(catalog, args.file)
    if args.command == "export":
        return _run_export(catalog, settings, args.output, args.excel)

    try:
        if args.command == "add-category":
            c = catalog.create_category(args.name)
            print(f"categoría {c.name} (id={c.id})")
        else:
            s = catalog.create_subcategory(args.category, args.name)
            print(f"subcategoría {s.name} (id={s.id}, categoría={s.category_id})")
    except (CatalogStoreError, ValueError) as e:
        print(str(e))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
