"""
HTTP routes for the portfolio content API.
"""

from fastapi import APIRouter

from portfolio.routes import auth, health, images, messages, projects, skills

router = APIRouter()
router.include_router(health.router)
router.include_router(projects.router)
router.include_router(skills.router)
router.include_router(images.router)
router.include_router(messages.router)
router.include_router(auth.router)
