from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload

from llanero.models import Category, Product, Subcategory


class CategoryRepo:
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> list[Category]:
        stmt = select(Category).order_by(Category.name.asc())
        return self.session.execute(stmt).scalars().all()

    def get_by_name(self, name: str) -> Category | None:
        n = (name or "").strip()
        if not n:
            return None
        stmt = select(Category).where(func.lower(Category.name) == n.lower())
        return self.session.execute(stmt).scalars().first()

    def create(self, name: str, *, image_url: str | None = None, is_active: bool = True) -> Category:
        n = (name or "").strip()
        if not n:
            raise ValueError("Nombre de categoría inválido")
        row = Category(name=n, image_url=image_url, is_active=bool(is_active))
        self.session.add(row)
        self.session.flush()
        return row


class SubcategoryRepo:
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> list[Subcategory]:
        stmt = select(Subcategory).order_by(Subcategory.name.asc())
        return self.session.execute(stmt).scalars().all()

    def create(self, category_id: int, name: str, *, image_url: str | None = None) -> Subcategory:
        n = (name or "").strip()
        if not n:
            raise ValueError("Nombre de subcategoría inválido")
        row = Subcategory(category_id=int(category_id), name=n, image_url=image_url)
        self.session.add(row)
        self.session.flush()
        return row


class ProductRepo:
    # Columns that import/bulk edits are allowed to write.
    WRITABLE = {
        "name",
        "description",
        "sku",
        "barcode",
        "price",
        "is_active",
        "category_id",
        "subcategory_id",
        "image_urls",
    }

    def __init__(self, session: Session):
        self.session = session

    def get(self, product_id: int) -> Product | None:
        return self.session.get(Product, int(product_id))

    def get_by_sku(self, sku: str) -> Product | None:
        s = (sku or "").strip()
        if not s:
            return None
        stmt = select(Product).where(Product.sku == s)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_ids(self, ids: list[int]) -> dict[int, Product]:
        if not ids:
            return {}
        rows = self.session.execute(select(Product).where(Product.id.in_(ids))).scalars().all()
        return {r.id: r for r in rows}

    def create(self, fields: dict) -> Product:
        data = {k: v for k, v in fields.items() if k in self.WRITABLE}
        if "price" in data:
            data["price"] = Decimal(str(data["price"])).quantize(Decimal("0.01"))
        now = datetime.utcnow()
        row = Product(**data, created_at=now, updated_at=now)
        self.session.add(row)
        self.session.flush()
        return row

    def update(self, product_id: int, fields: dict) -> Product | None:
        row = self.get(product_id)
        if row is None:
            return None
        for k, v in fields.items():
            if k not in self.WRITABLE:
                continue
            if k == "price":
                v = Decimal(str(v)).quantize(Decimal("0.01"))
            setattr(row, k, v)
        row.updated_at = datetime.utcnow()
        self.session.flush()
        return row

    def delete(self, product_id: int) -> bool:
        row = self.get(product_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.flush()
        return True

    def list(self, q: str = "", *, status: str = "all", limit: int = 300) -> list[Product]:
        stmt = select(Product).options(joinedload(Product.category), joinedload(Product.subcategory))
        qn = (q or "").strip()
        if qn:
            like = f"%{qn}%"
            stmt = stmt.where(
                Product.name.ilike(like) | Product.sku.ilike(like) | Product.barcode.ilike(like)
            )
        st = (status or "all").strip().lower()
        if st == "active":
            stmt = stmt.where(Product.is_active.is_(True))
        elif st == "inactive":
            stmt = stmt.where(Product.is_active.is_(False))
        stmt = stmt.order_by(Product.created_at.desc(), Product.id.desc())
        if limit:
            stmt = stmt.limit(int(limit))
        return self.session.execute(stmt).scalars().all()

    def set_active_all(self, is_active: bool) -> int:
        res = self.session.execute(
            update(Product).values(is_active=bool(is_active), updated_at=datetime.utcnow())
        )
        return int(res.rowcount or 0)

    def count_by_status(self) -> dict[str, int]:
        stmt = select(Product.is_active, func.count(Product.id)).group_by(Product.is_active)
        counts = {bool(active): int(n) for active, n in self.session.execute(stmt).all()}
        active = counts.get(True, 0)
        inactive = counts.get(False, 0)
        return {"total": active + inactive, "active": active, "inactive": inactive}
