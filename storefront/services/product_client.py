# storefront/services/product_client.py
import requests

from storefront.domain.exceptions import NotFoundError, ValidationError
from storefront.domain.schemas import CartLineItem
from storefront.utils.retry import http_retry
from storefront.utils.settings import PRODUCT_SERVICE_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _whole_rupees(value, product_id: str) -> int:
    """Catalogue prices are whole rupees; a fractional price is rejected, never truncated."""
    whole = isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if isinstance(value, bool) or not whole:
        raise ValidationError(
            f"Product {product_id} has an invalid price: {value!r}",
            errors=[f"price: expected whole rupees, got {value!r}"],
        )
    return int(value)


class ProductClient:
    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def fetch_product(self, product_id: str) -> dict:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            raise NotFoundError(f"Product with ID {product_id} not found", details={"product_id": product_id})
        resp.raise_for_status()
        return resp.json()

    def line_item(self, product_id: str, color: str | None = None, size: str | None = None) -> CartLineItem:
        """Current name, price and image of a product as a cart line of quantity 1."""
        product = self.fetch_product(product_id)
        return CartLineItem(
            product_id=str(product.get("id", product_id)),
            name=product["name"],
            unit_price=_whole_rupees(product["price"], product_id),
            original_unit_price=(
                None
                if product.get("original_price") is None
                else _whole_rupees(product["original_price"], product_id)
            ),
            image=product.get("image", ""),
            color=color,
            size=size,
        )
