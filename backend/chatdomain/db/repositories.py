"""
Repository layer for domain orders.

The relational schema lives with the main platform; this module defines the
interface the order services need and an in-memory implementation used by
tests and local runs.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from chatdomain.core.exceptions import OrderNotFoundError
from chatdomain.models.order import DomainOrder

# Configure logging
logger = logging.getLogger(__name__)


class DomainOrderRepository(ABC):
    """Storage for domain purchase orders."""

    @abstractmethod
    async def get(self, order_id: int) -> Optional[DomainOrder]:
        """
        Get an order by ID.

        Args:
            order_id: Order ID

        Returns:
            The order or None if not found
        """
        pass

    @abstractmethod
    async def add(self, order: DomainOrder) -> DomainOrder:
        """
        Store a new order.

        Args:
            order: Order to store

        Returns:
            Stored order
        """
        pass

    @abstractmethod
    async def update(self, order_id: int, data: Dict[str, Any]) -> DomainOrder:
        """
        Update fields of an order.

        Args:
            order_id: Order ID
            data: Field values to set

        Returns:
            Updated order

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        pass


class InMemoryDomainOrderRepository(DomainOrderRepository):
    """Dictionary-backed repository."""

    def __init__(self, orders: Optional[List[DomainOrder]] = None):
        self._orders: Dict[int, DomainOrder] = {order.id: order for order in orders or []}
        self._lock = asyncio.Lock()

    async def get(self, order_id: int) -> Optional[DomainOrder]:
        return self._orders.get(order_id)

    async def add(self, order: DomainOrder) -> DomainOrder:
        async with self._lock:
            self._orders[order.id] = order
        return order

    async def update(self, order_id: int, data: Dict[str, Any]) -> DomainOrder:
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(f"Order not found: {order_id}")

            # Add updated_at timestamp
            if "updated_at" not in data:
                data = {**data, "updated_at": datetime.utcnow()}

            updated = order.model_copy(update=data)
            self._orders[order_id] = updated

        logger.debug(f"Updated order {order_id}: {sorted(data)}")
        return updated
