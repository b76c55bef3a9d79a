"""Route group exports."""

from . import account, health, orders, rates, webhooks

__all__ = ["rates", "webhooks", "orders", "account", "health"]
