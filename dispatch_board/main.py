import os
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import inspect
from sqlalchemy.orm import sessionmaker

from .config import settings as default_settings, Settings
from .db import Base, SessionLocal
from .errors import DispatchError, dispatch_error_handler, request_validation_handler
from .logging import setup_logging, RequestIdMiddleware
from .auth.identity import AccountIdentityProvider
from .auth.router import session_router, pin_router, account_router, verify_pin
from .auth.security import build_gate, admin_route_guard
from .services.broadcast_hub import BroadcastHub, BroadcastCoordinator
from .services.resources import build_services
from .routes.resources import build_routers
from .routes.dashboard import router as dashboard_router
from .routes.realtime import router as realtime_router
from .models import models  # noqa: F401  (register tables on Base.metadata)


def create_app(
    cfg: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    identity_provider: Optional[AccountIdentityProvider] = None,
) -> FastAPI:
    cfg = cfg or default_settings
    session_factory = session_factory or SessionLocal
    setup_logging()
    logger = structlog.get_logger("dispatch_board.startup")
    app = FastAPI(title=cfg.app_name)

    # Collaborators live on app.state, one set per app
    hub = BroadcastHub()
    coordinator = BroadcastCoordinator(hub)
    app.state.settings = cfg
    app.state.session_factory = session_factory
    app.state.hub = hub
    app.state.coordinator = coordinator
    app.state.services = build_services(cfg, session_factory, coordinator)
    app.state.session_gate = build_gate(cfg, session_factory, identity_provider)

    app.add_exception_handler(DispatchError, dispatch_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Middlewares
    app.middleware("http")(admin_route_guard)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    # Generic per-address ceiling; the PIN check stays unthrottled
    limiter = Limiter(key_func=get_remote_address, default_limits=[cfg.rate_limit])
    limiter.exempt(verify_pin)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Routers
    app.include_router(dashboard_router)
    for router in build_routers():
        app.include_router(router)
    app.include_router(realtime_router)
    app.include_router(session_router)
    if cfg.auth_mode == "account":
        app.include_router(account_router)
    else:
        app.include_router(pin_router)

    # Metrics
    Instrumentator(registry=CollectorRegistry()).instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        logger.info("startup", auth_mode=cfg.auth_mode, database=cfg.database_url.split("://")[0])
        # Ensure local SQLite directory exists
        if cfg.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if cfg.auto_create_db:
            bind = session_factory.kw.get("bind")
            try:
                existing_tables = set(inspect(bind).get_table_names())
                missing = set(Base.metadata.tables.keys()) - existing_tables
                if missing:
                    logger.info("creating_tables", tables=sorted(missing))
                    Base.metadata.create_all(bind=bind)
                else:
                    logger.info("tables_present", count=len(existing_tables))
            except Exception as e:
                logger.error("table_check_failed", error=str(e))

    return app


app = create_app()
