"""
API routers, one module per resource.
"""

from flame_kitchen.api import (
    admin,
    auth,
    chat,
    day_session,
    kitchen,
    menu,
    orders,
    payments,
    settings,
    staff,
    upload,
    webhooks,
)

routers = [
    auth.router,
    menu.router,
    orders.router,
    payments.router,
    webhooks.router,
    day_session.router,
    admin.router,
    staff.router,
    kitchen.router,
    settings.router,
    upload.router,
    chat.router,
]

__all__ = ["routers"]
