"""Operations API routers."""

from operations.api.routes import customer_router, order_router, shipping_router

__all__ = ["customer_router", "order_router", "shipping_router"]
