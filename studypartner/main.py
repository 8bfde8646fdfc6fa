from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

# --- ADMIN ROUTES ---
from studypartner.api.v1.admin import reports as admin_reports
from studypartner.api.v1.admin import user as admin_user

# ===== IMPORT ROUTERS =====
from studypartner.api.v1.shares import auth, notification, payment, profile, upload

# --- USER ROUTES ---
from studypartner.api.v1.user import analytics, notes, tutoring
from studypartner.core.scheduler import scheduler, start_scheduler
from studypartner.core.settings import settings

# --- MIDDLEWARE ---
from studypartner.middleware.request_context import RequestContextMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):

    # ================================
    # 1) GLOBAL HTTP CLIENT
    # ================================
    app.state.http = httpx.AsyncClient(timeout=settings.OPENAI_TIMEOUT_SECONDS)
    logger.info("🌐 HTTP client started")

    # ================================
    # 2) START APSCHEDULER
    # ================================
    start_scheduler(app.state.http)

    try:
        yield
    finally:
        # ================================
        # 3) STOP SCHEDULER
        # ================================
        try:
            scheduler.shutdown(wait=False)
            logger.info("🛑 Scheduler stopped")
        except Exception as e:
            logger.warning(f"⚠ Scheduler shutdown error: {e}")

        # ================================
        # 4) CLOSE HTTP CLIENT
        # ================================
        await app.state.http.aclose()
        logger.info("🌐 HTTP client closed")


# ===== APP CONFIG =====
app = FastAPI(
    title="StudyPartner API",
    description="Study notes with AI flashcards, quizzes and summaries; token-paid tutoring",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)
prefix = "/api/v1"

# ===== REGISTER ROUTERS =====

# --- Share ---
app.include_router(auth.router, prefix=prefix)
app.include_router(profile.router, prefix=prefix)
app.include_router(notification.router, prefix=prefix)
app.include_router(payment.router, prefix=prefix)
app.include_router(upload.router, prefix=prefix)

# --- USER ROUTES ---
app.include_router(notes.router, prefix=prefix)
app.include_router(tutoring.router, prefix=prefix)
app.include_router(analytics.router, prefix=prefix)

# --- ADMIN ROUTES ---
app.include_router(admin_user.router, prefix=prefix)
app.include_router(admin_reports.router, prefix=prefix)


# ===== ROOT =====
@app.get("/")
async def health():
    return {"message": "StudyPartner API"}


if __name__ == "__main__":
    uvicorn.run("studypartner.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
