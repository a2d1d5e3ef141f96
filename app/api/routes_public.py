"""
Unauthenticated routes
"""

from fastapi import APIRouter

from app.services.repositories import use_firestore

router = APIRouter()

@router.get("/health")
async def health_check():
    """Liveness check; reports which storage backend is configured"""
    return {"status": "ok", "backend": "firestore" if use_firestore() else "sql"}
