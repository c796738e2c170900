from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded

from .config import configure_logging, settings
from .database import Base, engine
from .routers import users, facilities, bookings, availability
from .error_handlers import register_exception_handlers

configure_logging()

# -----------------------------------------
# Create DB tables (no migrations)
# -----------------------------------------
Base.metadata.create_all(bind=engine)

# -----------------------------------------
# Rate Limiter, per client IP
# -----------------------------------------
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)

app = FastAPI(
    title="Campus Facility Booking API",
    version="1.0.0",
    description="Browse campus facilities, check slot availability, and manage bookings.",
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

register_exception_handlers(app)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please try again later.",
            "error": "too_many_requests",
            "path": str(request.url.path),
        },
    )


# -----------------------------------------
# Routers (normal + versioned /api/v1)
# -----------------------------------------
for router in (users.router, facilities.router, bookings.router, availability.router):
    app.include_router(router)
    app.include_router(router, prefix="/api/v1")


@app.get("/health", tags=["health"])
def health_check():
    return {"status": "ok"}
