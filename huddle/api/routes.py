from fastapi import APIRouter

from huddle.api.auth import router as auth_router
from huddle.api.channels import router as channels_router
from huddle.api.dms import router as dms_router
from huddle.api.files import router as files_router
from huddle.api.messages import router as messages_router
from huddle.api.search import router as search_router
from huddle.api.users import router as users_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(users_router)
router.include_router(channels_router)
router.include_router(messages_router)
router.include_router(dms_router)
router.include_router(files_router)
router.include_router(search_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Huddle API"}
