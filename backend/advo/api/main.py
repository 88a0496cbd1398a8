from fastapi import APIRouter

from advo.api.routes import (
    admin,
    auth,
    favorites,
    geocode,
    images,
    login,
    ratings,
    recommendations,
    resources,
    reviews,
    user,
    users,
    utils,
)

api_router = APIRouter()
api_router.include_router(login.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(user.router)
api_router.include_router(utils.router)
api_router.include_router(resources.router)
api_router.include_router(favorites.router)
api_router.include_router(ratings.router)
api_router.include_router(reviews.router)
api_router.include_router(admin.router)
api_router.include_router(geocode.router)
api_router.include_router(recommendations.router)
api_router.include_router(images.router)
