from __future__ import annotations

from ..extensions import db
from shopledger.money import format_money
from shopledger.time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


class Supplier(db.Model):
    """Vendor that goods are purchased from (see Purchase)."""
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data with an on-hand stock counter.

    STOCK: `stock` is a mutable integer changed only through
    inventory_service.apply_stock_delta(), which issues a single relative UPDATE
    (stock = stock + delta). Application code never writes a computed value.

    PRICES: Stored in cents. Sale items snapshot sell_price_cents at sale time,
    so later price edits never change historical sales.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_stock", "is_active", "stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Scannable code; optional but unique when present
    barcode = db.Column(db.String(64), nullable=True, unique=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sell_price_cents = db.Column(db.Integer, nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)

    brand = db.Column(db.String(128), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r} stock={self.stock}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "barcode": self.barcode,
            "category_id": self.category_id,
            "supplier_id": self.supplier_id,
            "cost_price": format_money(self.cost_price_cents),
            "cost_price_cents": self.cost_price_cents,
            "sell_price": format_money(self.sell_price_cents),
            "sell_price_cents": self.sell_price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_low_stock": self.is_low_stock,
            "brand": self.brand,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
