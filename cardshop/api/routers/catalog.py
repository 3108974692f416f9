# cardshop/api/routers/catalog.py
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from cardshop.api.deps import get_catalog
from cardshop.domain.schemas import Category, Product, ProductWithCategory, Service
from cardshop.services.session import Catalog

router = APIRouter(tags=["catalog"])


@router.get("/products", response_model=List[ProductWithCategory])
def list_products(
    q: str = "",
    category_id: Optional[str] = None,
    condition: Optional[str] = None,
    catalog: Catalog = Depends(get_catalog),
):
    products = catalog.products.search(q)
    if category_id:
        products = [p for p in products if p.category_id == category_id]
    if condition:
        products = [p for p in products if p.condition == condition]
    wanted = {p.id for p in products}
    return [p for p in catalog.products.with_category(catalog.categories) if p.id in wanted]


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
    product = catalog.products.find_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/categories", response_model=List[Category])
def list_categories(
    active_only: bool = True,
    catalog: Catalog = Depends(get_catalog),
):
    if active_only:
        return catalog.categories.active_categories()
    return catalog.categories.items


@router.get("/services", response_model=List[Service])
def list_services(
    q: str = "",
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    catalog: Catalog = Depends(get_catalog),
):
    services = catalog.services.search(q)
    if min_price is not None or max_price is not None:
        in_range = {
            s.id for s in catalog.services.by_price_range(
                min_price or 0, max_price if max_price is not None else Decimal("Infinity")
            )
        }
        services = [s for s in services if s.id in in_range]
    return services
