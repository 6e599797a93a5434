"""
EduThreat-CTI Dashboard API

FastAPI application serving assembled page views for the dashboard frontend.
Data comes from the EduThreat-CTI REST API; nothing is stored here.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from edu_cti_dashboard import __version__
from edu_cti_dashboard.analytics.filters import FilterSet, build_query
from edu_cti_dashboard.api.models import (
    AnalyticsView,
    AttacksView,
    DashboardView,
    IncidentDetailView,
    IncidentsView,
    MapView,
    RansomwareView,
    ThreatActorsView,
    ViewStatus,
)
from edu_cti_dashboard.api.views import DashboardViews
from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.http import build_api_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/views", tags=["views"])


def get_views(request: Request) -> DashboardViews:
    return request.app.state.views


def respond(view):
    """Return the view, or the HTTP error matching its error state."""
    state = view.state
    if state.status != ViewStatus.ERROR:
        return view
    if state.status_code == 404:
        return JSONResponse(status_code=404, content={"detail": state.message, "retryable": False})
    logger.error(f"Upstream failure: {state.message}")
    return JSONResponse(status_code=502, content={"detail": state.message, "retryable": state.retryable})


# ============================================================
# App Lifecycle
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting EduThreat-CTI Dashboard API (upstream: {app.state.views.client.base_url})")
    yield
    logger.info("Shutting down EduThreat-CTI Dashboard API...")
    app.state.views.client.close()


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI validation errors with detailed logging."""
    logger.error(f"Validation error on {request.method} {request.url}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(views: Optional[DashboardViews] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="EduThreat-CTI Dashboard API",
        description="""
        Page views for the EduThreat-CTI dashboard.

        Each view is assembled from the EduThreat-CTI REST API:
        - Incident list with filters, search and pagination
        - Incident detail with display labels and flags
        - Regional map, threat actors, attacks, ransomware and analytics pages
        """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.views = views or DashboardViews(build_api_client())

    # CORS middleware for frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"])
    app.include_router(router)
    return app


# ============================================================
# Health Check
# ============================================================

def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# ============================================================
# Page Views
# ============================================================

@router.get("/dashboard", response_model=DashboardView)
def dashboard_view(views: DashboardViews = Depends(get_views)):
    """Landing page: headline stats and rates, charts and recent incidents."""
    return respond(views.dashboard())


@router.get("/incidents", response_model=IncidentsView)
def incidents_view(
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(config.DEFAULT_PER_PAGE, ge=1, le=config.MAX_PER_PAGE, description="Items per page"),
    country: Optional[str] = Query(None, description="Filter by country"),
    attack_category: Optional[str] = Query(None, description="Filter by attack category"),
    ransomware_family: Optional[str] = Query(None, description="Filter by ransomware family"),
    threat_actor: Optional[str] = Query(None, description="Filter by threat actor"),
    institution_type: Optional[str] = Query(None, description="Filter by institution type"),
    year: Optional[int] = Query(None, description="Filter by year"),
    enriched_only: bool = Query(False, description="Only show enriched incidents"),
    search: Optional[str] = Query(None, description="Search query"),
    sort_by: str = Query("incident_date", description="Sort field"),
    sort_order: str = Query("desc", description="Sort order (asc/desc)"),
    views: DashboardViews = Depends(get_views),
):
    """Incident list with filters, search and pagination."""
    filters = FilterSet(
        country=country,
        attack_category=attack_category,
        ransomware_family=ransomware_family,
        threat_actor=threat_actor,
        institution_type=institution_type,
        year=year,
        enriched_only=enriched_only,
    )
    query = build_query(filters, search, page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order)
    return respond(views.incidents(query))


@router.get("/incidents/{incident_id}", response_model=IncidentDetailView)
def incident_detail_view(incident_id: str, views: DashboardViews = Depends(get_views)):
    """Full incident with display labels, styles and flag."""
    return respond(views.incident_detail(incident_id))


@router.get("/map", response_model=MapView)
def map_view(views: DashboardViews = Depends(get_views)):
    """Country counts grouped into regions."""
    return respond(views.map())


@router.get("/threat-actors", response_model=ThreatActorsView)
def threat_actors_view(views: DashboardViews = Depends(get_views)):
    return respond(views.threat_actors())


@router.get("/analytics", response_model=AnalyticsView)
def analytics_view(views: DashboardViews = Depends(get_views)):
    return respond(views.analytics())


@router.get("/attacks", response_model=AttacksView)
def attacks_view(views: DashboardViews = Depends(get_views)):
    return respond(views.attacks())


@router.get("/ransomware", response_model=RansomwareView)
def ransomware_view(views: DashboardViews = Depends(get_views)):
    """Ransomware families with the top family and recent ransomware incidents."""
    return respond(views.ransomware())


app = create_app()
