# cardshop/api/routers/admin.py
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from cardshop.api.deps import get_admin, read_upload, unwrap
from cardshop.domain.schemas import (
    Category,
    CategoryInsert,
    CategoryUpdate,
    Product,
    ProductInsert,
    ProductUpdate,
    Service,
    ServiceInsert,
    ServiceUpdate,
    UserDetails,
    WantToBuy,
)
from cardshop.services.session import AdminConsole

router = APIRouter(prefix="/admin", tags=["admin"])


# products
@router.post("/products", response_model=Product, status_code=201)
def create_product(payload: ProductInsert, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.products.create(payload))


@router.post("/products/with-media", response_model=Product, status_code=201)
def create_product_with_media(
    name: str = Form(...),
    price: Decimal = Form(...),
    condition: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    front: Optional[UploadFile] = File(None),
    back: Optional[UploadFile] = File(None),
    console: AdminConsole = Depends(get_admin),
):
    """Card images are uploaded first; a failed upload creates nothing."""
    data = {"name": name, "price": price, "condition": condition, "category_id": category_id}
    return unwrap(console.products.create_with_media(data, read_upload(front), read_upload(back)))


@router.patch("/products/{product_id}", response_model=Product)
def update_product(product_id: str, payload: ProductUpdate, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.products.update(product_id, payload))


@router.delete("/products/{product_id}", status_code=204)
def delete_product(product_id: str, console: AdminConsole = Depends(get_admin)):
    unwrap(console.products.delete(product_id))


# categories
@router.get("/categories", response_model=List[Category])
def list_categories(console: AdminConsole = Depends(get_admin)):
    return console.categories.items


@router.post("/categories", response_model=Category, status_code=201)
def create_category(payload: CategoryInsert, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.categories.create(payload))


@router.patch("/categories/{category_id}", response_model=Category)
def update_category(category_id: str, payload: CategoryUpdate, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.categories.update(category_id, payload))


@router.post("/categories/{category_id}/toggle", response_model=Category)
def toggle_category(category_id: str, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.categories.toggle_active(category_id))


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: str, console: AdminConsole = Depends(get_admin)):
    unwrap(console.categories.delete(category_id))


# services
@router.post("/services", response_model=Service, status_code=201)
def create_service(payload: ServiceInsert, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.services.create(payload))


@router.post("/services/with-media", response_model=Service, status_code=201)
def create_service_with_media(
    name: str = Form(...),
    price: Decimal = Form(...),
    image: Optional[UploadFile] = File(None),
    console: AdminConsole = Depends(get_admin),
):
    data = {"name": name, "price": price}
    return unwrap(console.services.create_with_media(data, read_upload(image)))


@router.patch("/services/{service_id}", response_model=Service)
def update_service(service_id: str, payload: ServiceUpdate, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.services.update(service_id, payload))


@router.delete("/services/{service_id}", status_code=204)
def delete_service(service_id: str, console: AdminConsole = Depends(get_admin)):
    unwrap(console.services.delete(service_id))


# card requests from every user
@router.get("/want-to-buy", response_model=List[WantToBuy])
def list_requests(
    status: Optional[Literal["pending", "completed"]] = None,
    q: str = "",
    console: AdminConsole = Depends(get_admin),
):
    if status == "pending":
        items = console.want_to_buy.pending()
    elif status == "completed":
        items = console.want_to_buy.completed()
    else:
        items = console.want_to_buy.items
    wanted = {i.id for i in console.want_to_buy.search(q)}
    return [i for i in items if i.id in wanted]


@router.get("/want-to-buy/requesters", response_model=Dict[str, UserDetails])
def list_requesters(console: AdminConsole = Depends(get_admin)):
    return console.want_to_buy.requesters()


@router.post("/want-to-buy/{item_id}/done", response_model=WantToBuy)
def mark_done(item_id: str, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.want_to_buy.mark_done(item_id))


@router.post("/want-to-buy/{item_id}/pending", response_model=WantToBuy)
def mark_pending(item_id: str, console: AdminConsole = Depends(get_admin)):
    return unwrap(console.want_to_buy.mark_pending(item_id))


@router.delete("/want-to-buy/{item_id}", status_code=204)
def delete_request(item_id: str, console: AdminConsole = Depends(get_admin)):
    unwrap(console.want_to_buy.delete(item_id))
