from fastapi import APIRouter

from app.api.notifications import router as notifications_router
from app.api.social import router as social_router

router = APIRouter()

router.include_router(notifications_router)
router.include_router(social_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Inkwell API"}
