import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shortlet.api.routes import bookings, properties, reservations, reviews
from shortlet.core.config import get_settings
from shortlet.services.backend import BackendClient
from shortlet.services.reviews import ReviewBoard

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Update this in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.api_route("/ping", methods=["GET", "HEAD", "OPTIONS"], tags=["public"])
async def ping() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(properties.router)
app.include_router(reservations.router)
app.include_router(reviews.router)
app.include_router(bookings.router)


@app.on_event("startup")
async def _startup_backend() -> None:
    app.state.backend = BackendClient(
        settings.backend_api_url, timeout=settings.backend_timeout_seconds
    )
    app.state.reviews = ReviewBoard()
    logger.info("Forwarding API calls to %s", settings.backend_api_url)


@app.on_event("shutdown")
async def _shutdown_backend() -> None:
    await app.state.backend.aclose()


@app.get("/", tags=["public"])
async def root() -> dict[str, str]:
    return {"message": f"Welcome to {settings.app_name}"}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000)
