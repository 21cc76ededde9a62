"""
Concurrency control for the StorySlides backend.

This module provides the database semaphore and a small operation monitor
used by the /metrics endpoint.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Any
from storyslides.core.config import settings
from storyslides.core.logger_config import setup_logger

logger = setup_logger(__name__)

# Bounds concurrent work on the direct Postgres pool
DB_SEMAPHORE = asyncio.Semaphore(settings.MAX_CONCURRENT_DB_CONNECTIONS)


class ConcurrencyMonitor:
    """Monitor concurrent operations for metrics and debugging."""

    def __init__(self):
        self.active_operations: Dict[str, int] = {}
        self.total_operations: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def start_operation(self, operation_type: str):
        """Record the start of an operation."""
        async with self._lock:
            self.active_operations[operation_type] = self.active_operations.get(operation_type, 0) + 1
            self.total_operations[operation_type] = self.total_operations.get(operation_type, 0) + 1
            logger.debug(f"Started {operation_type}. Active: {self.active_operations[operation_type]}")

    async def end_operation(self, operation_type: str):
        """Record the end of an operation."""
        async with self._lock:
            if self.active_operations.get(operation_type, 0) > 0:
                self.active_operations[operation_type] -= 1
                logger.debug(f"Ended {operation_type}. Active: {self.active_operations[operation_type]}")

    @asynccontextmanager
    async def track(self, operation_type: str):
        """
        Usage:
            async with concurrency_monitor.track("split_chapter"):
                ...
        """
        await self.start_operation(operation_type)
        try:
            yield
        finally:
            await self.end_operation(operation_type)

    def get_stats(self) -> Dict[str, Any]:
        """Get current concurrency statistics."""
        return {
            "active": dict(self.active_operations),
            "total": dict(self.total_operations),
            "limits": {
                "db_connections": settings.MAX_CONCURRENT_DB_CONNECTIONS,
            }
        }


# Global monitor instance
concurrency_monitor = ConcurrencyMonitor()
