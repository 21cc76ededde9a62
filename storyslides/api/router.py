from fastapi import APIRouter

from storyslides.endpoints import health
from storyslides.api import slides, progress, ads, admin, feed


router = APIRouter()

# Built-in endpoints
router.include_router(health.router, tags=["health"])

# Reading pipeline
router.include_router(slides.router, tags=["slides"])
router.include_router(progress.router, tags=["progress"])

# Ads and administration
router.include_router(ads.router, tags=["ads"])
router.include_router(admin.router, tags=["admin"])

# Discovery and writer analytics
router.include_router(feed.router, tags=["feed"])
