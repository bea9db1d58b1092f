"""
Database connection management.

Provides the Supabase client used by the order, customer, product,
settings and import-history stores.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class ConnectionError(Exception):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If the client cannot be created
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        logger.info("supabase_client_created")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with row counts of the import tables
    """
    try:
        client = get_supabase_client()

        orders = client.table("orders").select("id", count="exact").limit(1).execute()
        products = client.table("products").select("id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "orders_count": orders.count,
            "products_count": products.count,
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }

