from fastapi import APIRouter

from vidtube.api.playlists import router as playlists_router
from vidtube.api.users import router as users_router
from vidtube.api.videos import router as videos_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(videos_router, prefix="/videos", tags=["videos"])
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(playlists_router, prefix="/playlists", tags=["playlists"])
