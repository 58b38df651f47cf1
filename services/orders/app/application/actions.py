from typing import Optional

from shared.core import get_logger
from app.domain.errors import NotFoundError, StoreError
from app.infrastructure.cache import LIST_SCOPE, OrderCache, detail_scope
from app.infrastructure.table_client import TableClient
from .schemas import ActionResponse, OrderFormData

logger = get_logger(__name__)

class OrderActions:
    """Create / update / delete against the table client.

    Every call returns an ActionResponse and never raises for store
    failures. Successful calls purge the cache scopes they made stale and
    report them in `invalidates` so list views know to refresh.
    """

    def __init__(self, client: TableClient, cache: Optional[OrderCache] = None):
        self.client = client
        self.cache = cache

    def _invalidate(self, scopes: list[str]) -> list[str]:
        if self.cache is not None:
            self.cache.invalidate(scopes)
        return scopes

    @staticmethod
    def _failure(action: str, order_id: Optional[str], exc: StoreError) -> ActionResponse:
        logger.warning(
            f"Order {action} failed: {exc.message}",
            extra={'extra_fields': {'action': action, 'order_id': order_id, 'error_code': exc.code}}
        )
        return ActionResponse(success=False, message=exc.message, error_code=exc.code)

    async def create(self, form: OrderFormData) -> ActionResponse[str]:
        try:
            order_id = await self.client.insert(form.to_record())
        except StoreError as e:
            return self._failure("create", None, e)

        logger.info(f"Order {order_id} created", extra={'extra_fields': {'action': 'create', 'order_id': order_id}})
        return ActionResponse(
            success=True,
            message="Order successfully created!",
            data=order_id,
            invalidates=self._invalidate([LIST_SCOPE]),
        )

    async def update(self, order_id: str, form: OrderFormData) -> ActionResponse[str]:
        try:
            affected = await self.client.update_by_id(order_id, form.to_record())
            if affected == 0:
                raise NotFoundError(order_id)
        except StoreError as e:
            return self._failure("update", order_id, e)

        logger.info(f"Order {order_id} updated", extra={'extra_fields': {'action': 'update', 'order_id': order_id}})
        return ActionResponse(
            success=True,
            message="Order updated successfully",
            data=order_id,
            invalidates=self._invalidate([LIST_SCOPE, detail_scope(order_id)]),
        )

    async def delete(self, order_id: str) -> ActionResponse[str]:
        # Irreversible; callers confirm with the user before getting here
        try:
            affected = await self.client.delete_by_id(order_id)
            if affected == 0:
                raise NotFoundError(order_id)
        except StoreError as e:
            return self._failure("delete", order_id, e)

        logger.info(f"Order {order_id} deleted", extra={'extra_fields': {'action': 'delete', 'order_id': order_id}})
        return ActionResponse(
            success=True,
            message="Order deleted successfully",
            data=order_id,
            invalidates=self._invalidate([LIST_SCOPE, detail_scope(order_id)]),
        )
