"""The caller's personal remote collection."""
from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_user, get_services
from core.auth import SessionUser
from schemas.user import CollectionResponse, EnsureCollectionRequest
from services.container import Services

router = APIRouter(prefix="/api/user/database", tags=["user"])


@router.get("", response_model=CollectionResponse)
async def get_user_database(
    current_user: SessionUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> CollectionResponse:
    """Get the caller's collection id (null if not provisioned). Never creates one."""
    collection_id = await services.provisioner.get_collection_id(current_user.email)
    return CollectionResponse(collection_id=collection_id)


@router.post("", response_model=CollectionResponse)
async def ensure_user_database(
    data: EnsureCollectionRequest | None = None,
    current_user: SessionUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> CollectionResponse:
    """Return the caller's collection id, provisioning a collection if needed."""
    data = data or EnsureCollectionRequest()
    if data.email and data.email.strip().lower() != current_user.email.lower():
        raise HTTPException(status_code=400, detail="Email does not match the session")
    name = (data.name or current_user.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    if not services.remote.is_configured():
        raise HTTPException(status_code=503, detail="Notion is not configured")

    collection_id = await services.provisioner.ensure_collection(current_user.email, name)
    if not collection_id:
        raise HTTPException(status_code=500, detail="Failed to create user database")
    return CollectionResponse(collection_id=collection_id)
