from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from typing import Optional
from app.api.deps import get_actions, get_app_settings, get_composer
from app.application.actions import OrderActions
from app.application.query import ALL_STATUSES, OrderQuery, QueryComposer
from app.application.schemas import ActionResponse, Order, OrderFormData, OrderPage
from app.core_settings import Settings
from app.domain.errors import NotFoundError, StoreError

router = APIRouter(prefix="/api/orders", tags=["orders"])

ERROR_STATUS_CODES = {"not_found": 404, "constraint": 409, "store": 502}

def _action_response(result: ActionResponse, success_status: int = 200) -> JSONResponse:
    if result.success:
        status_code = success_status
    else:
        status_code = ERROR_STATUS_CODES.get(result.error_code, 502)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))

@router.get("/", response_model=OrderPage)
async def list_orders(
    search: str = "",
    status: str = ALL_STATUSES,
    sort: Optional[str] = None,
    direction: str = "desc",
    page: int = 0,
    page_size: Optional[int] = None,
    refresh: bool = False,
    composer: QueryComposer = Depends(get_composer),
    settings: Settings = Depends(get_app_settings),
):
    """One page of orders, filtered and sorted, with the total count."""
    query = OrderQuery(
        search_term=search,
        status_filter=status,
        sort_field=sort or None,
        sort_direction=direction,
        page=page,
        page_size=page_size if page_size is not None else settings.DEFAULT_PAGE_SIZE,
    )
    result = await composer.fetch_page(query, refresh=refresh)
    if result.error:
        raise HTTPException(status_code=502, detail=result.error)
    return result

@router.get("/{order_id}", response_model=Order)
async def get_order(order_id: str, composer: QueryComposer = Depends(get_composer)):
    try:
        return await composer.fetch_order(order_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Order not found")
    except StoreError as e:
        raise HTTPException(status_code=502, detail=e.message)

@router.post("/", response_model=ActionResponse[str], status_code=201)
async def create_order(payload: OrderFormData, actions: OrderActions = Depends(get_actions)):
    return _action_response(await actions.create(payload), success_status=201)

@router.put("/{order_id}", response_model=ActionResponse[str])
async def update_order(order_id: str, payload: OrderFormData, actions: OrderActions = Depends(get_actions)):
    """Overwrite every editable field of the order."""
    return _action_response(await actions.update(order_id, payload))

@router.delete("/{order_id}", response_model=ActionResponse[str])
async def delete_order(order_id: str, actions: OrderActions = Depends(get_actions)):
    return _action_response(await actions.delete(order_id))
