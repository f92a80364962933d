"""
ExamPrep API
Application factory: middleware, error handlers and router registration
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import DuplicateKeyError

from examprep.admin.router import router as admin_router
from examprep.catalog.content_router import chapter_router, subject_router, test_router, topic_router
from examprep.catalog.course_router import router as course_router
from examprep.catalog.question_router import router as question_router
from examprep.core import config
from examprep.core.database import create_indexes, db_manager
from examprep.payments.payment_router import router as payment_router
from examprep.payments.receipt_router import router as receipt_router
from examprep.students.auth_router import router as auth_router
from examprep.students.student_router import router as student_router, user_router
from examprep.system.health_router import router as health_router
from examprep.system.upload_router import router as upload_router

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        logger.warning("Duplicate key on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=409, content={"success": False, "detail": "Duplicate record"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal Server Error"})


def create_app() -> FastAPI:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = FastAPI(title="ExamPrep API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"]
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
        if response.status_code >= 400:
            logger.warning("%s %s -> %d", request.method, request.url.path, response.status_code)
        return response

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        db_manager.connect()
        await create_indexes(db_manager.get_database())

    @app.on_event("shutdown")
    async def shutdown_event():
        db_manager.disconnect()

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(health_router)
    app.include_router(auth_router, prefix="/api/auth/email")
    app.include_router(user_router, prefix="/api/user")
    app.include_router(payment_router, prefix="/api/user/payment")
    app.include_router(receipt_router, prefix="/api/user")
    app.include_router(student_router, prefix="/api/courses/student")
    app.include_router(course_router, prefix="/api/courses")
    app.include_router(subject_router, prefix="/api/subjects")
    app.include_router(chapter_router, prefix="/api/chapters")
    app.include_router(topic_router, prefix="/api/topics")
    app.include_router(test_router, prefix="/api/tests")
    app.include_router(question_router, prefix="/api/questions")
    app.include_router(admin_router, prefix="/api/admin")
    app.include_router(upload_router, prefix="/api")

    if config.is_development():
        from examprep.dev.dev_router import router as dev_router
        app.include_router(dev_router, prefix="/api/dev")
        logger.warning("Development routes enabled under /api/dev")
    # ============================================================

    app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("examprep.main:app", host="0.0.0.0", port=8000)
