import logging
import math
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal

import uvicorn
from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from sqlalchemy.orm import Session, sessionmaker

from linkshortener import analytics, config, crud, database, models, qr_utils, schemas, validators
from linkshortener.errors import GoneError, NotFoundError, ShortenerError
from linkshortener.ratelimit import FixedWindowRateLimiter, rate_limit
from linkshortener.visitors import GeoLocator, client_ip, get_geolocator

# --- Logging ---
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("linkshortener")

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- DB tables ---
    models.Base.metadata.create_all(bind=database.engine)
    logger.info("URL shortener started: env=%s base_url=%s", config.ENVIRONMENT, config.BASE_URL)
    yield
    get_geolocator().close()


app = FastAPI(
    title="URL Shortener",
    description="Shorten URLs, redirect visitors and report click analytics.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Rate limit counters (one keyed store per limiter) ---
app.state.shorten_limiter = FixedWindowRateLimiter(
    config.RATE_LIMIT_MAX_REQUESTS, config.RATE_LIMIT_WINDOW_MS / 1000
)
app.state.api_limiter = FixedWindowRateLimiter(
    config.API_RATE_LIMIT_MAX_REQUESTS, config.API_RATE_LIMIT_WINDOW_MS / 1000
)
shorten_rate_limit = rate_limit("shorten_limiter", "Too many requests from this IP, please try again later.")
api_rate_limit = rate_limit("api_limiter", "Too many API requests, please slow down.")

NOT_FOUND_PAGE = """<!DOCTYPE html>
<html>
  <head><title>Link not found</title></head>
  <body>
    <h1>404 - Link not found</h1>
    <p>This short link does not exist or has been removed.</p>
  </body>
</html>
"""

EXPIRED_PAGE = """<!DOCTYPE html>
<html>
  <head><title>Link expired</title></head>
  <body>
    <h1>410 - Link expired</h1>
    <p>This short link has expired and no longer redirects.</p>
  </body>
</html>
"""


def short_url(code: str) -> str:
    return f"{config.BASE_URL}/{code}"


# ---------- Error handling ----------
@app.exception_handler(ShortenerError)
async def shortener_error_handler(request: Request, exc: ShortenerError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": "Internal server error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in errors
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message or "Invalid request"})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "Internal server error"}
    if config.ENVIRONMENT == "dev":
        content["message"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# Health check (useful for uptime monitors & load balancers)
@app.get("/health", response_model=schemas.HealthOut)
def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }


# ---------- API ----------
api = APIRouter(prefix="/api", dependencies=[Depends(api_rate_limit)])

@api.post(
    "/shorten",
    response_model=schemas.LinkOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(shorten_rate_limit)],
)
def shorten(link_in: schemas.LinkCreate, request: Request, db: Session = Depends(database.get_db)):
    link = crud.create_link(db, link_in, created_by=client_ip(request))
    logger.info("Created link: code=%s target=%s alias=%s", link.short_code, link.original_url, link.custom_alias)
    return {
        "original_url": link.original_url,
        "short_url": short_url(link.short_code),
        "short_code": link.short_code,
        "expires_at": link.expires_at,
        "created_at": link.created_at,
    }

@api.get("/urls", response_model=schemas.PaginatedLinks)
def list_links(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["createdAt", "clickCount", "expiresAt", "shortCode", "originalUrl"] = Query("createdAt", alias="sortBy"),
    order: Literal["asc", "desc"] = Query("desc"),
    db: Session = Depends(database.get_db),
):
    links = crud.get_links(db, page=page, limit=limit, sort_by=sort_by, order=order)
    total = crud.count_links(db)
    now = datetime.now(timezone.utc)
    items = [
        {
            "original_url": link.original_url,
            "short_url": short_url(link.short_code),
            "short_code": link.short_code,
            "custom_alias": link.custom_alias,
            "click_count": link.click_count,
            "expires_at": link.expires_at,
            "created_at": link.created_at,
            "is_expired": link.is_expired(now),
        }
        for link in links
    ]
    return {"items": items, "total": total, "page": page, "pages": math.ceil(total / limit), "limit": limit}

@api.get("/analytics/{short_code}", response_model=schemas.AnalyticsOut)
def link_analytics(
    short_code: str,
    days: int = Query(analytics.DEFAULT_WINDOW_DAYS, ge=1, le=365),
    db: Session = Depends(database.get_db),
):
    # Soft-deleted links keep their history
    link = crud.get_link(db, short_code, include_inactive=True)
    if not link:
        raise NotFoundError()
    clicks = crud.get_clicks_since(db, short_code, analytics.window_start(days))
    return {
        "url": {
            "original_url": link.original_url,
            "short_url": short_url(link.short_code),
            "short_code": link.short_code,
            "created_at": link.created_at,
            "expires_at": link.expires_at,
            "is_expired": link.is_expired(),
            "is_active": link.is_active,
        },
        "analytics": analytics.aggregate_clicks(link.click_count, clicks),
    }

@api.get("/qr/{short_code}", response_model=schemas.QRCodeOut)
def qr_code(short_code: str, db: Session = Depends(database.get_db)):
    link = crud.get_link(db, short_code)
    if not link:
        raise NotFoundError()
    if link.status() is models.LinkStatus.EXPIRED:
        raise GoneError()
    url = short_url(link.short_code)
    return {"qr_code": qr_utils.generate_qr_data_url(url), "short_url": url}

@api.delete("/urls/{short_code}", response_model=schemas.MessageOut)
def delete_link(short_code: str, db: Session = Depends(database.get_db)):
    if not crud.soft_delete_link(db, short_code):
        raise NotFoundError()
    logger.info("Soft-deleted link %s", short_code)
    return {"ok": True, "detail": "Short URL deleted successfully"}

app.include_router(api)


# Redirect /{code}; registered last so it never shadows the routes above
@app.get("/{short_code}", include_in_schema=False)
def redirect(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(database.get_db),
    session_factory: sessionmaker = Depends(database.get_session_factory),
    geolocator: GeoLocator = Depends(get_geolocator),
):
    link = crud.get_link(db, short_code) if validators.validate_custom_alias(short_code) else None
    if not link:
        return HTMLResponse(NOT_FOUND_PAGE, status_code=status.HTTP_404_NOT_FOUND)
    if link.status() is models.LinkStatus.EXPIRED:
        return HTMLResponse(EXPIRED_PAGE, status_code=status.HTTP_410_GONE)

    # Recorded after the response is sent; failures stay in the logs
    background_tasks.add_task(
        analytics.record_click,
        session_factory,
        geolocator,
        link.short_code,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
        referrer=request.headers.get("referer", ""),
    )
    return RedirectResponse(url=link.original_url, status_code=status.HTTP_302_FOUND)


def run():
    uvicorn.run("linkshortener.main:app", host="0.0.0.0", port=config.PORT)

if __name__ == "__main__":
    run()
