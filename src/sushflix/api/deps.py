"""Service dependencies for FastAPI endpoints."""
from typing import Annotated

from fastapi import Depends, Request

from src.sushflix.services.storage_service import MediaStorageGateway


def get_storage_gateway(request: Request) -> MediaStorageGateway:
    """The gateway built at application start (see create_app)."""
    return request.app.state.storage_gateway


StorageGatewayDep = Annotated[MediaStorageGateway, Depends(get_storage_gateway)]
