from fastapi import Depends, Request

from app.application.actions import OrderActions
from app.application.query import QueryComposer
from app.core_settings import Settings
from app.infrastructure.cache import OrderCache
from app.infrastructure.table_client import TableClient

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_table_client(request: Request) -> TableClient:
    return request.app.state.table_client

def get_order_cache(request: Request) -> OrderCache:
    return request.app.state.order_cache

def get_composer(
    client: TableClient = Depends(get_table_client),
    cache: OrderCache = Depends(get_order_cache),
) -> QueryComposer:
    return QueryComposer(client, cache)

def get_actions(
    client: TableClient = Depends(get_table_client),
    cache: OrderCache = Depends(get_order_cache),
) -> OrderActions:
    return OrderActions(client, cache)
