from sqlalchemy.orm import Session
from models.products import Product


class CatalogService:
    """Read-only access to seller catalogs. Orders never write here."""

    @staticmethod
    def seller_has_catalog(db: Session, seller_id: str) -> bool:
        return db.query(Product.id).filter(Product.seller_id == seller_id).first() is not None

    @staticmethod
    def get_products_for_seller(db: Session, seller_id: str, product_ids: list[str]) -> dict[str, Product]:
        numeric_ids = [int(pid) for pid in product_ids if pid.isdigit()]
        if not numeric_ids:
            return {}

        products = db.query(Product).filter(
            Product.seller_id == seller_id,
            Product.id.in_(numeric_ids)
        ).all()

        return {str(product.id): product for product in products}
