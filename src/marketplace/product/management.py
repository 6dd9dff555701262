"""Merchant catalogue operations — listing, pricing, activation, restocking.

These are the only writers of ``price``, ``is_active`` and ``stock_quantity``.
Sales counters are left to the ProductLedger.
"""

from decimal import Decimal

import structlog
from protean import UnitOfWork
from protean.domain import Domain
from pydantic import BaseModel, Field

from marketplace.product.product import Product

logger = structlog.get_logger(__name__)


class RegisterProduct(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    merchant_id: str
    merchant_name: str = ""
    price: Decimal = Field(gt=0)
    stock_quantity: int = Field(ge=0, default=0)
    is_active: bool = True


class ProductCatalogue:
    def __init__(self, domain: Domain):
        self.domain = domain

    def register(self, command: RegisterProduct) -> Product:
        with self.domain.domain_context(), UnitOfWork():
            product = Product.create(
                name=command.name,
                merchant_id=command.merchant_id,
                merchant_name=command.merchant_name,
                price=command.price,
                stock_quantity=command.stock_quantity,
                is_active=command.is_active,
            )
            self.domain.repository_for(Product).add(product)

        logger.info(
            "Product registered",
            product_id=str(product.id),
            merchant_id=product.merchant_id,
            stock_quantity=product.stock_quantity,
        )
        return product

    def get(self, product_id: str) -> Product:
        with self.domain.domain_context():
            return self.domain.repository_for(Product).get(product_id)

    def change_price(self, product_id: str, new_price) -> Product:
        return self._change(product_id, lambda product: product.change_price(new_price))

    def activate(self, product_id: str) -> Product:
        return self._change(product_id, lambda product: product.activate())

    def deactivate(self, product_id: str) -> Product:
        product = self._change(product_id, lambda product: product.deactivate())
        logger.info("Product deactivated", product_id=product_id)
        return product

    def receive_stock(self, product_id: str, quantity: int) -> Product:
        return self._change(product_id, lambda product: product.receive_stock(quantity))

    def _change(self, product_id, mutate) -> Product:
        with self.domain.domain_context(), UnitOfWork():
            repo = self.domain.repository_for(Product)
            product = repo.get(product_id)
            mutate(product)
            repo.add(product)
        return product
