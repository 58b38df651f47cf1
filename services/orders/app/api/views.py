"""Browser-facing pages: landing, order list, create form, detail/edit, delete confirmation.

Views never talk to the store directly; they go through the injected
composer and actions, and render whatever the list view state ends up with.
"""

from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from shared.core import get_logger
from app.api import presenters
from app.api.deps import get_actions, get_app_settings, get_composer, get_table_client
from app.application.actions import OrderActions
from app.application.list_state import ListViewState
from app.application.query import ALL_STATUSES, OrderQuery, QueryComposer, probe_store
from app.application.schemas import parse_order_form
from app.core_settings import Settings
from app.domain.errors import NotFoundError, StoreError, ValidationError
from app.domain.models import OrderStatus
from app.infrastructure.table_client import TableClient

logger = get_logger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))
templates.env.filters["money"] = presenters.format_money

router = APIRouter(tags=["views"], include_in_schema=False)

STATUSES = [status.value for status in OrderStatus]
NEW_ORDER_DEFAULTS = {"quantity": 1, "price_per_unit": "", "status": OrderStatus.CREATED.value}


def list_url(query: OrderQuery, **changes) -> str:
    """Link to the list view with `changes` applied to the current query."""
    query = query.with_changes(**changes)
    params = {"page": query.page, "page_size": query.page_size}
    if query.search_term:
        params["search"] = query.search_term
    if query.status_filter and query.status_filter != ALL_STATUSES:
        params["status"] = query.status_filter
    if query.sort_field:
        params["sort"] = query.sort_field
        params["direction"] = query.sort_direction
    return f"/orders?{urlencode(params)}"


def redirect_to_list(message: str, level: str = "success") -> RedirectResponse:
    return RedirectResponse(f"/orders?{urlencode({'notice': message, 'level': level})}", status_code=303)


def _render_form(request: Request, template: str, *, values: dict, errors: Optional[dict] = None,
                 notice: Optional[str] = None, status_code: int = 200, **context) -> HTMLResponse:
    return templates.TemplateResponse(request, template, {
        "values": values,
        "errors": errors or {},
        "statuses": STATUSES,
        "notice": notice,
        "level": "error",
        **context,
    }, status_code=status_code)


def _render_missing(request: Request, order_id: str, exc: StoreError) -> HTMLResponse:
    status_code = 404 if isinstance(exc, NotFoundError) else 502
    return templates.TemplateResponse(request, "not_found.html", {
        "order_id": order_id,
        "message": exc.message,
    }, status_code=status_code)


@router.get("/", response_class=HTMLResponse)
async def landing(request: Request, client: TableClient = Depends(get_table_client)):
    connected, error = await probe_store(client)
    return templates.TemplateResponse(request, "landing.html", {"connected": connected, "error": error})


@router.get("/orders", response_class=HTMLResponse)
async def orders_page(
    request: Request,
    search: str = "",
    status: str = ALL_STATUSES,
    sort: Optional[str] = None,
    direction: str = "desc",
    page: int = 0,
    page_size: Optional[int] = None,
    notice: Optional[str] = None,
    level: str = "success",
    composer: QueryComposer = Depends(get_composer),
    settings: Settings = Depends(get_app_settings),
):
    state = ListViewState(composer, OrderQuery(page_size=settings.DEFAULT_PAGE_SIZE))
    status_code = 200
    try:
        await state.apply(
            search_term=search,
            status_filter=status or ALL_STATUSES,
            sort_field=sort or None,
            sort_direction=direction,
            page=page,
            page_size=page_size or settings.DEFAULT_PAGE_SIZE,
        )
    except ValidationError as e:
        notice, level, status_code = str(e), "error", 422
        await state.load()

    try:
        return templates.TemplateResponse(request, "orders_list.html", {
            "state": state,
            "query": state.query,
            "columns": presenters.COLUMNS,
            "rows": [presenters.order_row(order) for order in state.rows],
            "results_label": presenters.results_label(state.total_count),
            "pages": presenters.page_window(state.query.page, state.page_count),
            "page_size_options": settings.PAGE_SIZE_OPTIONS,
            "status_labels": presenters.STATUS_LABELS,
            "list_url": list_url,
            "notice": notice,
            "level": level,
        }, status_code=status_code)
    finally:
        state.close()


@router.get("/orders/new", response_class=HTMLResponse)
async def new_order_page(request: Request):
    return _render_form(request, "order_form.html", values=dict(NEW_ORDER_DEFAULTS))


@router.post("/orders/new", response_class=HTMLResponse)
async def create_order_submit(request: Request, actions: OrderActions = Depends(get_actions)):
    values = dict(await request.form())
    try:
        form = parse_order_form(values)
    except ValidationError as e:
        return _render_form(request, "order_form.html", values=values, errors=e.errors, status_code=422)

    result = await actions.create(form)
    if not result.success:
        return _render_form(request, "order_form.html", values=values, notice=result.message, status_code=400)
    return redirect_to_list(result.message)


@router.get("/orders/{order_id}", response_class=HTMLResponse)
async def order_detail_page(
    request: Request,
    order_id: str,
    edit: bool = False,
    composer: QueryComposer = Depends(get_composer),
):
    try:
        order = await composer.fetch_order(order_id)
    except StoreError as e:
        return _render_missing(request, order_id, e)

    if edit:
        return _render_form(request, "order_edit.html", values=order.to_form(), order=order)
    return templates.TemplateResponse(request, "order_detail.html", {
        "order": order,
        "style": presenters.status_style(order.status),
    })


@router.post("/orders/{order_id}", response_class=HTMLResponse)
async def update_order_submit(
    request: Request,
    order_id: str,
    composer: QueryComposer = Depends(get_composer),
    actions: OrderActions = Depends(get_actions),
):
    values = dict(await request.form())
    try:
        order = await composer.fetch_order(order_id)
    except StoreError as e:
        return _render_missing(request, order_id, e)

    try:
        form = parse_order_form(values)
    except ValidationError as e:
        return _render_form(request, "order_edit.html", values=values, errors=e.errors, order=order, status_code=422)

    result = await actions.update(order_id, form)
    if not result.success:
        if result.error_code == NotFoundError.code:
            return _render_missing(request, order_id, NotFoundError(order_id))
        return _render_form(request, "order_edit.html", values=values, order=order,
                            notice=result.message or "Update failed", status_code=400)
    return redirect_to_list(result.message)


@router.get("/orders/{order_id}/delete", response_class=HTMLResponse)
async def delete_order_page(request: Request, order_id: str, composer: QueryComposer = Depends(get_composer)):
    try:
        order = await composer.fetch_order(order_id)
    except StoreError as e:
        return _render_missing(request, order_id, e)
    return templates.TemplateResponse(request, "order_delete.html", {"order": order})


@router.post("/orders/{order_id}/delete")
async def delete_order_submit(order_id: str, actions: OrderActions = Depends(get_actions)):
    result = await actions.delete(order_id)
    return redirect_to_list(result.message, "success" if result.success else "error")
