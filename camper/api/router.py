from fastapi import APIRouter

from camper.api.routes.home import router as home_router
from camper.api.routes.campgrounds import router as campgrounds_router
from camper.api.routes.reviews import router as reviews_router
from camper.api.routes.users import router as users_router


router = APIRouter()
router.include_router(home_router, tags=["home"])
router.include_router(campgrounds_router, tags=["campgrounds"])
router.include_router(reviews_router, tags=["reviews"])
router.include_router(users_router, tags=["users"])
