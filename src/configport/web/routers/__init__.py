from configport.web.routers.metadata import router as metadata_router
from configport.web.routers.transfer import router as transfer_router

__all__ = [
    "metadata_router",
    "transfer_router",
]
