"""
FastAPI Backend for the Grid Explorer and Tutoring Portal

Provides REST API endpoints with:
- Firebase authentication and Firestore progress for the grid explorer
- PIN-based portal tokens and Supabase persistence for tutoring
- Chat-completion powered spelling question generation
- Web Push reminders (manual and scheduled)
- Real-time progress streaming
- Calendar slots, booking requests, learning-point reviews, work progress
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import os
import sys
import time
import logging
import signal

# Setup enhanced logging with pretty formatting
from lib.logger import setup_logging, get_logger

setup_logging(level=logging.INFO, use_colors=True)

logger = get_logger("backend.main")

# Make the explorer_portal package importable when running from a checkout
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)

package_src = os.path.join(project_root, 'explorer_portal', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from explorer_portal import __version__
from explorer_portal.chat_completion import ChatCompletionUnavailable
from explorer_portal.reminder_scheduler import ReminderScheduler

from lib.clients import ServiceNotConfigured
from dependencies import build_push_dispatcher
from routers import (
    availability,
    bookings,
    chat,
    earnings,
    grid,
    learning_points,
    notifications,
    spelling,
    tutees,
    work_progress,
    worksheets,
)

_reminder_scheduler: Optional[ReminderScheduler] = None


def get_reminder_scheduler() -> ReminderScheduler:
    """Get or create the reminder scheduler."""
    global _reminder_scheduler
    if _reminder_scheduler is None:
        try:
            dispatcher = build_push_dispatcher()
        except ServiceNotConfigured as e:
            logger.warning("Push dispatcher not available", data={"error": str(e)})
            dispatcher = None
        _reminder_scheduler = ReminderScheduler(dispatcher)
    return _reminder_scheduler


# Initialize FastAPI app
app = FastAPI(
    title="Grid Explorer & Tutoring Portal API",
    description="REST API for the Singapore grid explorer and the tutoring portal",
    version=__version__
)

cors_origins = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== Error handling ====================

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ChatCompletionUnavailable)
async def chat_unavailable_handler(request: Request, exc: ChatCompletionUnavailable):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(ServiceNotConfigured)
async def service_not_configured_handler(request: Request, exc: ServiceNotConfigured):
    return JSONResponse(status_code=503, content={"detail": f"{exc.service} is not configured"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.url.path}", error=e)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    if request.url.path != "/":
        logger.response(response.status_code, f"{request.method} {request.url.path}", duration=time.time() - start_time)
    return response


# ==================== Routers ====================

app.include_router(grid.router)
app.include_router(tutees.router)
app.include_router(earnings.router)
app.include_router(spelling.router)
app.include_router(worksheets.router)
app.include_router(learning_points.router)
app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(work_progress.router)
app.include_router(chat.router)
app.include_router(notifications.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Grid Explorer & Tutoring Portal API",
        "version": __version__,
        "reminders": get_reminder_scheduler().get_status(),
    }


@app.on_event("startup")
async def startup_event():
    """Startup event - start the reminder scheduler."""
    scheduler = get_reminder_scheduler()
    await scheduler.start()
    if scheduler.running:
        logger.success("Reminder scheduler started")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event - stop the reminder scheduler."""
    scheduler = get_reminder_scheduler()
    if scheduler.running:
        await scheduler.stop()


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    try:
        uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
