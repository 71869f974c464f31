"""
API v1 Router
汇总所有 API 路由
"""

from fastapi import APIRouter

from babel_relay.api.v1.rooms import router as rooms_router
from babel_relay.api.v1.ws_rooms import router as ws_router

api_router = APIRouter()

api_router.include_router(rooms_router)
api_router.include_router(ws_router)
