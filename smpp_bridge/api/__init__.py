from .gateway import NOT_CONNECTED_BODY, create_gateway_router, read_form_values

__all__ = [
    "NOT_CONNECTED_BODY",
    "create_gateway_router",
    "read_form_values",
]
