from authgate.web.routers.auth import router as auth_router
from authgate.web.routers.device import router as device_router
from authgate.web.routers.passkey import router as passkey_router
from authgate.web.routers.profile import router as profile_router
from authgate.web.routers.users import router as users_router

__all__ = [
    "auth_router",
    "device_router",
    "passkey_router",
    "profile_router",
    "users_router",
]
