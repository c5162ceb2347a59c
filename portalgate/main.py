#!/usr/bin/env python3
"""
Portal Gateway - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the module data API

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Tuple

import redis.asyncio as redis
import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from portalgate.config.provider import ConfigProvider, EnvConfigProvider
from portalgate.errors import AuthenticationFailure, InfrastructureFailure, ValidationFailure
from portalgate.logging_config import get_logging_config
from portalgate.modules.api import (
    ErrorResponse,
    ModuleDataListResponse,
    ModuleDataRecordResponse,
    ModuleDataWriteRequest,
    ModuleKeyResponse,
    WriteAcknowledgement,
)
from portalgate.modules.auth import AdminKeyModule, AuthFactory, ModuleKeyAdmin
from portalgate.modules.config import get_config
from portalgate.modules.module_data import ModuleDataService, ModuleDataStore
from portalgate.modules.storage import StorageModule

# Get configuration
config = get_config()

# Configure logging with health check suppression
log_config.dictConfig(get_logging_config(config.get("log_level", "INFO")))
logger = logging.getLogger(__name__)

# Configuration provider (centralized config access)
config_provider: ConfigProvider = EnvConfigProvider()

# Module instances (initialized at startup)
storage: Optional[StorageModule] = None
redis_client: Optional[redis.Redis] = None
data_service: Optional[ModuleDataService] = None
key_admin: Optional[ModuleKeyAdmin] = None
admin_auth: Optional[AdminKeyModule] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    global storage, redis_client, data_service, key_admin, admin_auth

    # Startup
    logger.info("Starting Portal Gateway...")

    storage = StorageModule.from_config(config)
    redis_client = await storage.connect()

    # Build authentication service via factory (dependency injection)
    auth_service = AuthFactory.build(config_provider, redis_client)
    logger.info("Authentication service initialized via factory")

    data_service = ModuleDataService(auth_service, ModuleDataStore(redis_client))
    key_admin = ModuleKeyAdmin(redis_client)

    admin_config = config_provider.get_admin_config()
    admin_auth = AdminKeyModule(admin_config.api_keys)
    if not admin_config.enabled:
        logger.warning("ADMIN_API_KEYS is empty - key administration endpoints are disabled")

    logger.info("Portal Gateway started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Portal Gateway...")
    if storage:
        await storage.disconnect()
    logger.info("Portal Gateway shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Portal Gateway",
    description="Module key authentication, visibility-scoped module data and key administration",
    version="1.0.0",
    lifespan=lifespan,
)


# Dependency injection helpers
async def verify_admin_key(
    x_api_key: Optional[str] = Header(None, description="Admin API key")
) -> Tuple[bool, Optional[str]]:
    """Verify admin API key and return service identity."""
    if not admin_auth:
        raise HTTPException(503, "Service not initialized")

    is_valid, service_identity = await admin_auth.verify_api_key(x_api_key)
    if not is_valid:
        raise HTTPException(401, "Invalid API key")

    return is_valid, service_identity


def _require_data_service() -> ModuleDataService:
    if not data_service:
        raise HTTPException(503, "Service not initialized")
    return data_service


# Module Data Endpoints


@app.post(
    "/module-data",
    response_model=WriteAcknowledgement,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def write_module_data(
    request: Request,
    x_module_id: Optional[str] = Header(None, description="Module identifier"),
    x_module_key: Optional[str] = Header(None, description="Module secret"),
):
    """
    Store a user-scoped record on behalf of a module.

    Returns:
        200: {"ok": true}
        400: Missing userId or payload
        401: Missing module headers
        403: Invalid module key
        500: Store failure
    """
    service = _require_data_service()

    if not x_module_id or not x_module_key:
        return JSONResponse(status_code=401, content={"error": "Missing module credentials."})

    try:
        body = await request.json()
    except ValueError:
        # Malformed JSON or a body that is not UTF-8
        body = None
    if not isinstance(body, dict):
        body = {}

    try:
        write = ModuleDataWriteRequest.model_validate(body)
    except ValidationError as e:
        raise ValidationFailure(f"Invalid module data body: {e.error_count()} errors") from e

    await service.write(x_module_id, x_module_key, write.user_id, write.visibility, write.payload)
    return WriteAcknowledgement(ok=True)


@app.get(
    "/module-data",
    response_model=ModuleDataListResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def read_module_data(
    module_id: Optional[str] = Query(None, description="Module whose records to read"),
    user_id: Optional[str] = Query(None, description="Only return this user's record"),
    x_module_key: Optional[str] = Header(None, description="Module secret"),
    authorization: Optional[str] = Header(None, description="Bearer token of the viewer"),
):
    """
    List a module's records visible to the caller.

    A valid module key sees everything; otherwise each record's visibility
    tier is checked against the bearer identity (if any).

    Returns:
        200: {"data": [...]}
        400: Missing module_id or empty user_id
    """
    service = _require_data_service()

    records = await service.read(
        module_id,
        user_id=user_id,
        module_key=x_module_key,
        authorization=authorization,
    )
    return ModuleDataListResponse(data=[ModuleDataRecordResponse.from_record(r) for r in records])


# Admin Endpoints


@app.post(
    "/admin/modules/{module_id}/key",
    response_model=ModuleKeyResponse,
    response_model_by_alias=True,
    status_code=201,
)
async def rotate_module_key(
    module_id: str,
    auth_info: Tuple[bool, Optional[str]] = Depends(verify_admin_key),
):
    """
    Mint a new key for a module, replacing any existing one.

    The raw secret is only returned by this call; the gateway keeps its hash.

    Returns:
        201: {moduleId, key, createdAt}
        401: Unauthorized
    """
    if not key_admin:
        raise HTTPException(503, "Service not initialized")

    secret = await key_admin.rotate(module_id)
    logger.info(f"Module key for {module_id} rotated by {auth_info[1] or 'admin'}")

    return ModuleKeyResponse(
        module_id=module_id,
        key=secret,
        created_at=datetime.now(timezone.utc),
    )


@app.delete("/admin/modules/{module_id}/key", status_code=204)
async def revoke_module_key(
    module_id: str,
    auth_info: Tuple[bool, Optional[str]] = Depends(verify_admin_key),
):
    """
    Revoke a module's key. Writes from the module fail until a new key is minted.

    Returns:
        204: Key revoked
        401: Unauthorized
        404: No key stored for this module
    """
    if not key_admin:
        raise HTTPException(503, "Service not initialized")

    if not await key_admin.revoke(module_id):
        raise HTTPException(404, f"No key stored for module '{module_id}'")

    logger.info(f"Module key for {module_id} revoked by {auth_info[1] or 'admin'}")
    return Response(status_code=204)


# Health/Monitoring Endpoints


@app.get("/healthz")
async def healthz():
    """
    Minimal liveness endpoint.

    Returns:
        200: Service is running
    """
    return {"status": "ok"}


@app.get("/health")
async def health_check():
    """
    Readiness check: Redis reachable and modules initialized.

    Returns:
        200: Service healthy
        503: Service unhealthy
    """
    environment = config.get("environment", "development")
    try:
        if redis_client:
            await redis_client.ping()
            redis_status = "connected"
        else:
            redis_status = "disconnected"

        modules_ready = all([data_service, key_admin, admin_auth])

        if redis_status == "connected" and modules_ready:
            return {
                "status": "healthy",
                "redis": redis_status,
                "modules": "initialized",
                "environment": environment,
                "version": app.version,
            }
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "redis": redis_status,
                "modules": "initialized" if modules_ready else "not initialized",
                "environment": environment,
            },
        )
    except redis.RedisError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})


# Error handlers


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request, exc):
    """Handle rejected input."""
    logger.info(f"Validation failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(AuthenticationFailure)
async def authentication_failure_handler(request, exc):
    """Handle invalid module credentials."""
    return JSONResponse(status_code=403, content={"error": str(exc)})


@app.exception_handler(InfrastructureFailure)
async def infrastructure_failure_handler(request, exc):
    """Handle store failures."""
    logger.error(f"Store failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(redis.ConnectionError)
async def redis_error_handler(request, exc):
    """Handle Redis connection errors."""
    logger.error(f"Redis connection error: {exc}")
    return JSONResponse(status_code=503, content={"error": "Database connection failed"})


def run() -> None:
    """Run the gateway with uvicorn."""
    uvicorn.run(
        "portalgate.main:app",
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=config.get("debug"),
        log_config=get_logging_config(config.get("log_level", "INFO")),
    )


if __name__ == "__main__":
    run()
