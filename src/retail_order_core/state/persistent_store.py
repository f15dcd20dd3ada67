"""Redis-backed product and order stores."""

import json
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from retail_order_core.data.models import Order, OrderStatus, Product
from retail_order_core.errors import (
    InsufficientStockError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from retail_order_core.state.stores import OrderStore, ProductStore

logger = logging.getLogger(__name__)

# Result codes shared by the stock scripts: {code, previous, new}
_OK, _MISSING, _INSUFFICIENT = 0, 1, 2

_STOCK_DELTA_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {1, 0, 0}
end
local previous = tonumber(redis.call('HGET', KEYS[1], 'stock_quantity'))
local new = previous + tonumber(ARGV[1])
if new < 0 then
  if ARGV[2] == '1' then
    new = 0
  else
    return {2, previous, previous}
  end
end
redis.call('HSET', KEYS[1], 'stock_quantity', new, 'updated_at', ARGV[3])
return {0, previous, new}
"""

_SET_STOCK_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {1, 0, 0}
end
local previous = tonumber(redis.call('HGET', KEYS[1], 'stock_quantity'))
redis.call('HSET', KEYS[1], 'stock_quantity', ARGV[1], 'updated_at', ARGV[2])
return {0, previous, tonumber(ARGV[1])}
"""

_SOFT_DELETE_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return 0
end
redis.call('HSET', KEYS[1], 'is_active', '0', 'deleted_at', ARGV[1], 'updated_at', ARGV[1])
return 1
"""

_INSERT_ORDER_LUA = """
if redis.call('EXISTS', KEYS[1]) == 1 then
  return 0
end
redis.call('HSET', KEYS[1], 'data', ARGV[1], 'status', ARGV[2])
redis.call('ZADD', KEYS[2], ARGV[3], ARGV[4])
return 1
"""

_REPLACE_IF_STATUS_LUA = """
if redis.call('HGET', KEYS[1], 'status') ~= ARGV[1] then
  return 0
end
redis.call('HSET', KEYS[1], 'data', ARGV[2], 'status', ARGV[3])
return 1
"""

# Fields kept outside the JSON document so scripts can update them in place
_PRODUCT_HASH_FIELDS = {"stock_quantity", "updated_at", "is_active", "deleted_at"}


@contextmanager
def _transient_errors(operation: str) -> Iterator[None]:
    """Report Redis connectivity failures as retryable store errors."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.error(f"Redis unavailable during {operation}: {e}")
        raise TransientStoreError(f"Store unavailable during {operation}", operation=operation) from e


class RedisProductStore(ProductStore):
    """
    Redis-based product storage.

    Each product is a hash holding the JSON catalog document plus the stock
    counter. Stock changes run as Lua scripts, so the non-negative check and
    the write happen in one atomic step on the server.
    """

    def __init__(self, client, prefix: str = "retail:"):
        """
        Initialize Redis product store.

        Args:
            client: redis.asyncio client created with decode_responses=True
            prefix: Key prefix
        """
        self.redis = client
        self._prefix = prefix
        self._index_key = f"{prefix}products"
        self._stock_delta = client.register_script(_STOCK_DELTA_LUA)
        self._set_stock = client.register_script(_SET_STOCK_LUA)
        self._soft_delete = client.register_script(_SOFT_DELETE_LUA)
        logger.info(f"Initialized Redis product store with prefix {prefix!r}")

    def _key(self, sku: str) -> str:
        return f"{self._prefix}product:{sku}"

    @staticmethod
    def _from_hash(raw: dict[str, str]) -> Product:
        data = json.loads(raw["data"])
        data["stock_quantity"] = int(raw["stock_quantity"])
        data["updated_at"] = raw["updated_at"]
        data["is_active"] = raw.get("is_active", "1") == "1"
        data["deleted_at"] = raw.get("deleted_at") or None
        return Product(**data)

    async def get_product(self, sku: str) -> Product | None:
        with _transient_errors("get_product"):
            raw = await self.redis.hgetall(self._key(sku))
        return self._from_hash(raw) if raw else None

    async def list_products(self, category: str | None = None, include_inactive: bool = False) -> list[Product]:
        with _transient_errors("list_products"):
            skus = sorted(await self.redis.smembers(self._index_key))
            pipe = self.redis.pipeline(transaction=False)
            for sku in skus:
                pipe.hgetall(self._key(sku))
            rows = await pipe.execute()

        products = [self._from_hash(raw) for raw in rows if raw]
        if category:
            products = [p for p in products if p.category.lower() == category.lower()]
        if not include_inactive:
            products = [p for p in products if p.is_active]
        return products

    async def save_product(self, product: Product) -> None:
        document = product.model_dump(mode="json", exclude=_PRODUCT_HASH_FIELDS)
        mapping = {
            "data": json.dumps(document),
            "stock_quantity": product.stock_quantity,
            "updated_at": product.updated_at.isoformat(),
            "is_active": "1" if product.is_active else "0",
            "deleted_at": product.deleted_at.isoformat() if product.deleted_at else "",
        }
        with _transient_errors("save_product"):
            pipe = self.redis.pipeline(transaction=True)
            pipe.hset(self._key(product.sku), mapping=mapping)
            pipe.sadd(self._index_key, product.sku)
            await pipe.execute()
        logger.debug(f"Saved product: {product.sku}")

    async def apply_stock_delta(self, sku: str, delta: int, at: datetime, clamp_at_zero: bool = False) -> tuple[int, int]:
        with _transient_errors("apply_stock_delta"):
            code, previous, new = await self._stock_delta(
                keys=[self._key(sku)],
                args=[delta, "1" if clamp_at_zero else "0", at.isoformat()],
            )
        if code == _MISSING:
            raise NotFoundError(f"Product not found: {sku}", product_code=sku)
        if code == _INSUFFICIENT:
            raise InsufficientStockError(sku, requested=-delta, available=int(previous))
        return int(previous), int(new)

    async def set_stock(self, sku: str, quantity: int, at: datetime) -> tuple[int, int]:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative", product_code=sku, quantity=quantity)
        with _transient_errors("set_stock"):
            code, previous, new = await self._set_stock(keys=[self._key(sku)], args=[quantity, at.isoformat()])
        if code == _MISSING:
            raise NotFoundError(f"Product not found: {sku}", product_code=sku)
        return int(previous), int(new)

    async def soft_delete(self, sku: str, at: datetime) -> bool:
        with _transient_errors("soft_delete"):
            return bool(await self._soft_delete(keys=[self._key(sku)], args=[at.isoformat()]))

    async def hard_delete(self, sku: str) -> bool:
        with _transient_errors("hard_delete"):
            pipe = self.redis.pipeline(transaction=True)
            pipe.delete(self._key(sku))
            pipe.srem(self._index_key, sku)
            deleted, _ = await pipe.execute()
        return bool(deleted)


class RedisOrderStore(OrderStore):
    """
    Redis-based order storage.

    Orders are hashes holding the JSON document and a copy of the status used
    by the conditional replace script; a sorted set indexes them by creation
    time for range scans.
    """

    def __init__(self, client, prefix: str = "retail:"):
        self.redis = client
        self._prefix = prefix
        self._index_key = f"{prefix}orders"
        self._insert = client.register_script(_INSERT_ORDER_LUA)
        self._replace_if_status = client.register_script(_REPLACE_IF_STATUS_LUA)
        logger.info(f"Initialized Redis order store with prefix {prefix!r}")

    def _key(self, order_number: str) -> str:
        return f"{self._prefix}order:{order_number}"

    async def get_order(self, order_number: str) -> Order | None:
        with _transient_errors("get_order"):
            data = await self.redis.hget(self._key(order_number), "data")
        return Order.model_validate_json(data) if data else None

    async def insert_order(self, order: Order) -> None:
        with _transient_errors("insert_order"):
            inserted = await self._insert(
                keys=[self._key(order.order_number), self._index_key],
                args=[
                    order.model_dump_json(),
                    order.status.value,
                    order.created_at.timestamp(),
                    order.order_number,
                ],
            )
        if not inserted:
            raise ValidationError(f"Duplicate order number: {order.order_number}")
        logger.debug(f"Inserted order: {order.order_number}")

    async def replace_order_if_status(self, order: Order, expected_status: OrderStatus) -> bool:
        with _transient_errors("replace_order_if_status"):
            replaced = await self._replace_if_status(
                keys=[self._key(order.order_number)],
                args=[expected_status.value, order.model_dump_json(), order.status.value],
            )
        return bool(replaced)

    async def _load(self, order_numbers: list[str]) -> list[Order]:
        pipe = self.redis.pipeline(transaction=False)
        for number in order_numbers:
            pipe.hget(self._key(number), "data")
        return [Order.model_validate_json(data) for data in await pipe.execute() if data]

    async def list_orders(self, status: OrderStatus | None = None, limit: int = 50) -> list[Order]:
        with _transient_errors("list_orders"):
            numbers = await self.redis.zrevrange(self._index_key, 0, -1)
            orders = await self._load(numbers)
        if status is not None:
            orders = [o for o in orders if o.status == status]
        return orders[:limit]

    async def orders_since(self, since: datetime | None, statuses: Iterable[OrderStatus] | None = None) -> list[Order]:
        low = since.timestamp() if since is not None else "-inf"
        with _transient_errors("orders_since"):
            numbers = await self.redis.zrangebyscore(self._index_key, low, "+inf")
            orders = await self._load(numbers)
        if statuses is not None:
            wanted = set(statuses)
            orders = [o for o in orders if o.status in wanted]
        return orders

    async def next_order_sequence(self, year: int) -> int:
        with _transient_errors("next_order_sequence"):
            return int(await self.redis.incr(f"{self._prefix}order_seq:{year}"))

    async def close(self):
        """Close Redis connection."""
        await self.redis.aclose()
