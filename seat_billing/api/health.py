from __future__ import annotations
from fastapi import APIRouter

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
async def health():
    return {"status": "ok"}
