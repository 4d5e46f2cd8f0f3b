from . import display, orders, pos

__all__ = ["display", "orders", "pos"]
