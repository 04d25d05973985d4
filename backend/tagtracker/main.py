"""
Tag Tracker - Backend API
=========================
FastAPI application for tag detections reported by IoT sensors.

ARCHITECTURE:
    Sensors publish "I saw tag X" messages on an MQTT topic. This backend
    subscribes, stores each detection as a notification, and lets the
    sensor owners query them.

    [Sensors] --MQTT--> [Broker] ---> [This Backend] ---> [MongoDB]
                                            ^
                                            |
                                     [Frontend / API clients]

WHAT YOU CAN ASK:
    - Notifications per sensor, per tag, or per time range
    - Visits per sector: how often tags entered each sector

HOW TO RUN:
    # Install dependencies
    pip install -e .

    # Copy environment config
    cp backend/env.example.txt .env
    # Edit .env with your settings

    # Run the server
    uvicorn tagtracker.main:app --reload --port 8000

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc

Author: Tag Tracker Team
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from tagtracker.routers import notifications_router, sensors_router, set_store, Unauthenticated
from tagtracker.services import MemoryStore, MessageSubscriber, MongoStore, NotificationIngestor
from tagtracker.services.broker import parse_broker_address


# Load environment variables from .env file
load_dotenv()


# =============================================================================
# CONFIGURATION
# =============================================================================

def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        STORE_BACKEND: "mongo" (default) or "memory"
        MONGO_URI: MongoDB connection string
        MONGO_DB: MongoDB database name
        MQTT_ENABLED: Start the broker subscriber (default: true)
        MQTT_BROKER: Broker host, or a URL like mqtt://host:1883
        MQTT_PORT: Broker port (default: 1883)
        MQTT_TOPIC: Topic the sensors publish on
        MQTT_CLIENT_ID: Our client id on the broker
        MQTT_RECONNECT_SECONDS: Fixed delay between reconnects (default: 1)
        MQTT_USERNAME, MQTT_PASSWORD: Optional broker credentials
        FRONTEND_URL: URL of the frontend for CORS
        LOG_LEVEL: Logging level (default: INFO)

    Defaults are set for local development.
    """

    STORE_BACKEND = os.getenv("STORE_BACKEND", "mongo").strip().lower()
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB = os.getenv("MONGO_DB", "tagtracker")

    MQTT_ENABLED = _env_flag("MQTT_ENABLED", "true")
    MQTT_BROKER, MQTT_PORT = parse_broker_address(
        os.getenv("MQTT_BROKER", "localhost"),
        int(os.getenv("MQTT_PORT", "1883")),
    )
    MQTT_TOPIC = os.getenv("MQTT_TOPIC", "notifications")
    MQTT_CLIENT_ID = os.getenv("MQTT_CLIENT_ID", "tagtracker-backend")
    MQTT_RECONNECT_SECONDS = int(os.getenv("MQTT_RECONNECT_SECONDS", "1"))
    MQTT_USERNAME = os.getenv("MQTT_USERNAME")
    MQTT_PASSWORD = os.getenv("MQTT_PASSWORD")

    # Frontend URL for CORS
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Allowed CORS origins
    CORS_ORIGINS = [
        FRONTEND_URL,
        "http://localhost:5173",    # Vite dev server
        "http://localhost:3000",    # Create React App
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


def create_store():
    """Build the store selected by STORE_BACKEND."""
    if Config.STORE_BACKEND == "memory":
        return MemoryStore()
    if Config.STORE_BACKEND != "mongo":
        raise ValueError(f"Unknown STORE_BACKEND '{Config.STORE_BACKEND}' (use 'mongo' or 'memory')")
    return MongoStore(Config.MONGO_URI, Config.MONGO_DB)


# Set during startup, read by /health
_subscriber = None

PUBLIC_MQTT_STATS = ("connected", "messages_received", "messages_dropped")


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Open the document store
        2. Inject it into the routers
        3. Connect to the MQTT broker and start ingesting
        4. Print startup information

    SHUTDOWN:
        1. Disconnect from the broker
        2. Close the store
    """
    global _subscriber

    # ========== STARTUP ==========
    print("=" * 60)
    print("TAG TRACKER - Starting Backend")
    print("=" * 60)

    store = create_store()
    set_store(store)

    if Config.MQTT_ENABLED:
        ingestor = NotificationIngestor(store)
        _subscriber = MessageSubscriber(
            broker_host=Config.MQTT_BROKER,
            broker_port=Config.MQTT_PORT,
            topic=Config.MQTT_TOPIC,
            handler=ingestor.handle_message,
            client_id=Config.MQTT_CLIENT_ID,
            reconnect_seconds=Config.MQTT_RECONNECT_SECONDS,
            username=Config.MQTT_USERNAME,
            password=Config.MQTT_PASSWORD,
        )
        _subscriber.start()

    print(f"Store backend: {Config.STORE_BACKEND}")
    if Config.MQTT_ENABLED:
        print(f"MQTT broker: {Config.MQTT_BROKER}:{Config.MQTT_PORT} (topic: {Config.MQTT_TOPIC})")
    else:
        print("MQTT ingestion disabled")
    print(f"CORS origins: {len(Config.CORS_ORIGINS)} configured")
    print("API Documentation: http://localhost:8000/docs")
    print("=" * 60)

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    print()
    print("Shutting down...")
    if _subscriber is not None:
        _subscriber.stop()
        _subscriber = None
    await store.close()
    print("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="Tag Tracker API",
    description="""
## Overview

Backend API for tag detections reported by IoT sensors over MQTT.

## How It Works

1. **Add a sensor** - Place it on one of your maps, in one of its sectors
2. **Sensors report** - Each time a sensor sees a tag it publishes
   `{"tag_id": "...", "sensor_id": "..."}` on the MQTT topic
3. **We store it** - Timestamped on arrival; unknown tags are created for you
4. **Ask questions** - Notifications per sensor, tag or time range, and
   visits per sector

## Authentication

Every endpoint needs `Authorization: Bearer <token>`.
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Unauthenticated)
async def unauthenticated_handler(request: Request, exc: Unauthenticated):
    return Response(status_code=401)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(sensors_router)
app.include_router(notifications_router)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get(
    "/",
    summary="API Information",
    description="Get basic API information and available endpoints."
)
async def root():
    """Root endpoint with API overview."""
    return {
        "name": "Tag Tracker API",
        "version": "1.0.0",
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json"
        },
        "endpoints": {
            "sensors": {
                "list": "GET /sensors/",
                "get": "GET /sensors/{sensor_id}",
                "add": "POST /sensors/",
                "update": "PATCH /sensors/{sensor_id}",
                "delete": "DELETE /sensors/{sensor_id}"
            },
            "notifications": {
                "all": "GET /notifications/",
                "range": "GET /notifications/{timestamp}/",
                "sensor": "GET /notifications/sensor/{sensor_id}/{timestamp}",
                "tag": "GET /notifications/tag/{tag_id}/{timestamp}",
                "visits": "GET /notifications/visit/{timestamp}",
                "delete_all": "DELETE /notifications/"
            }
        }
    }


@app.get(
    "/health",
    summary="Health Check",
    description="Check if the backend is running."
)
async def health():
    """Health check endpoint."""
    mqtt = {"enabled": False}
    if _subscriber is not None:
        stats = _subscriber.get_stats()
        # Public endpoint: no broker address or topic
        mqtt = {key: stats[key] for key in PUBLIC_MQTT_STATS}

    return {
        "status": "healthy",
        "store_backend": Config.STORE_BACKEND,
        "mqtt": mqtt,
    }
