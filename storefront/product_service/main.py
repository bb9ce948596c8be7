# storefront/product_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Product Service (dev mock)")


# prices in whole rupees
PRODUCTS = {
    "1": {"id": "1", "name": "Cotton Kurta", "price": 1299, "original_price": 1799, "image": "/images/kurta.jpg"},
    "2": {"id": "2", "name": "Denim Jacket", "price": 2499, "image": "/images/jacket.jpg"},
    "3": {"id": "3", "name": "Silk Saree", "price": 4999, "original_price": 6499, "image": "/images/saree.jpg"},
}


@app.get("/products/{product_id}")
def get_product(product_id: str):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
