from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from doctors_portal.core.config import settings
from doctors_portal.core.config_loader import load_clinic_config, get_seed_services
from doctors_portal.core.errors import NotFound, UpstreamFault
from doctors_portal.api import bookings, users
from doctors_portal.core.logger import setup_logging, logger
from doctors_portal.services.booking_service import BookingManager
from doctors_portal.services.db_service import open_store
from doctors_portal.services.notification_service import EmailNotifier
from doctors_portal.services.user_service import UserService
from contextlib import asynccontextmanager
from datetime import datetime

setup_logging(settings.LOG_LEVEL, settings.ERROR_LOG_PATH)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting Doctors Portal Backend")
    config = load_clinic_config()
    store = await open_store(settings, get_seed_services(config))
    manager = BookingManager(
        store.services,
        store.bookings,
        notifier=EmailNotifier(config, settings),
        guard=settings.DUPLICATE_GUARD,
        atomic=settings.ATOMIC_DUPLICATE_GUARD,
    )
    app.state.booking_manager = manager
    app.state.user_service = UserService(store.users)
    try:
        yield
    finally:
        # Shutdown
        await manager.drain_notifications()
        await store.close()
        logger.info("🛑 Shutting down backend")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Error bodies carry a "message" key, e.g. {"message": "forbidden access"}
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

@app.exception_handler(UpstreamFault)
async def upstream_fault_handler(request: Request, exc: UpstreamFault):
    logger.error(f"🔥 UPSTREAM FAULT on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"message": "Service Unavailable", "detail": f"{exc.operation} failed"}
    )

@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"message": "Not Found", "detail": str(exc)})

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "detail": "An unexpected error occurred. Please contact support."}
    )

# Include routers
app.include_router(bookings.router, tags=["Bookings"])
app.include_router(users.router, tags=["Users"])

@app.get("/")
async def health_check():
    return {'status': 'Doctors portal server', 'time': datetime.now().isoformat()}

@app.get("/health")
async def health_check_std():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("doctors_portal.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
