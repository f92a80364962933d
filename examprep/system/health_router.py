from datetime import datetime

from fastapi import APIRouter

from examprep.core import config

router = APIRouter(tags=["System"])


@router.get("/")
async def root():
    return {
        "message": "ExamPrep API",
        "status": "running",
        "endpoints": {
            "health": "/api/health",
            "test": "/api/test",
            "courses": "/api/courses/student/published-courses",
        }
    }


@router.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "message": "Server is running",
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/api/test")
async def test_endpoint():
    """Connectivity probe for the frontend"""
    return {
        "success": True,
        "message": "API is working",
        "environment": config.APP_ENV,
        "timestamp": datetime.utcnow().isoformat()
    }
