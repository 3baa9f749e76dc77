import logging
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import ALLOWED_ORIGINS, LOG_LEVEL
from database.supabase_client import get_supabase
from services.errors import ServiceError
from routes import staff
from routes.auth import router as auth_router
from routes.hospitals import router as hospitals_router
from routes.shifts import router as shifts_router
from routes.reservations import router as reservations_router
from routes.swaps import router as swaps_router
from routes.unavailability import router as unavailability_router
from routes.notifications import router as notifications_router
from routes.activities import router as activities_router
from routes.admin import router as admin_router


# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Initialize FastAPI
app = FastAPI(
    title="Hospital Rota API",
    description="Multi-hospital shift scheduling: rotas, reservations and swaps",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== ERROR RESPONSES =====
# Every failure is rendered as {"success": false, "error": "..."}

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", []) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return error_response(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(500, "Internal server error")


# ===== ROUTES =====
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(hospitals_router, prefix="/api/hospitals", tags=["hospitals"])
app.include_router(staff.router, prefix="/api/staff", tags=["staff"])
app.include_router(shifts_router, prefix="/api/shifts", tags=["shifts"])
app.include_router(reservations_router, prefix="/api/reservations", tags=["reservations"])
app.include_router(swaps_router, prefix="/api/swaps", tags=["swaps"])
app.include_router(unavailability_router, prefix="/api/unavailability", tags=["unavailability"])
app.include_router(notifications_router, prefix="/api/notifications", tags=["notifications"])
app.include_router(activities_router, prefix="/api/activities", tags=["activities"])
app.include_router(admin_router, prefix="/api", tags=["admin"])


@app.get("/")
async def root():
    return {
        "message": "Hospital Rota API v1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        result = get_supabase().table('hospitals').select('id').limit(1).execute()
        db_status = "connected" if result.data is not None else "disconnected"

        return {
            "status": "healthy",
            "database": db_status,
            "timestamp": datetime.utcnow().isoformat()
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e)
        }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
