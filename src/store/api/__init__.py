from store.api.routes import cart_router, checkout_router, item_router, order_router, stock_router

routers = [cart_router, checkout_router, stock_router, item_router, order_router]

__all__ = ["routers", "cart_router", "checkout_router", "item_router", "order_router", "stock_router"]
