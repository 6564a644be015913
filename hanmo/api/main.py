from fastapi import APIRouter

from hanmo.api.routes import (
    admin_menus,
    comics,
    couplets,
    credits,
    feedback,
    game,
    login,
    menus,
    permissions,
    points,
    referral,
    search,
    site_settings,
    system,
    taxonomy,
    users,
    utils,
    vip,
)

api_router = APIRouter()
api_router.include_router(login.router)
api_router.include_router(users.router)
api_router.include_router(utils.router)
api_router.include_router(permissions.router)
api_router.include_router(system.router)
api_router.include_router(site_settings.router)
api_router.include_router(admin_menus.router)
api_router.include_router(feedback.router)

# Catalogue
api_router.include_router(comics.router)
api_router.include_router(couplets.router)
api_router.include_router(taxonomy.comic_categories)
api_router.include_router(taxonomy.comic_tags)
api_router.include_router(taxonomy.couplet_categories)
api_router.include_router(taxonomy.couplet_tags)
api_router.include_router(menus.router)
api_router.include_router(search.router)

# Economy and membership
api_router.include_router(credits.router)
api_router.include_router(points.router)
api_router.include_router(game.router)
api_router.include_router(vip.router)
api_router.include_router(referral.router)
