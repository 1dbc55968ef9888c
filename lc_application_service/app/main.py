# FastAPI Application Entry Point
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Observability
from lc_application_service.app.config import settings
from lc_application_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor

# Database connection
from lc_application_service.infrastructure.database import connection as db_connection
# Kafka Producer lifecycle
from lc_application_service.infrastructure.kafka.producer import startup_kafka_producer, shutdown_kafka_producer

from lc_application_service.app.api.error_handlers import register_error_handlers

# API Routers
from lc_application_service.app.api.endpoints import health as health_router
from lc_application_service.app.api.endpoints import applications as applications_router
from lc_application_service.app.api.endpoints import companies as companies_router
from lc_application_service.app.api.endpoints import notifications as notifications_router

# --- FastAPI Application Instance ---
app = FastAPI(
    title="LC Application Service",
    description="Letter-of-credit application lifecycle: companies, applications, reviews and notifications.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# --- Event Handlers for DB Connection & OTel Instrumentation ---
@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        await db_connection.connect_to_mongo()
        await db_connection.ensure_indexes(db_connection.db)
        logger.info("MongoDB connection established and indexes ensured.")

        PymongoInstrumentor().instrument()
        logger.info("PyMongo instrumentation complete.")

        await startup_kafka_producer()
    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)
        raise

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    await shutdown_kafka_producer()

    db_connection.close_mongo_connection()
    logger.info("MongoDB connection closed.")

FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

# Include API Routers
app.include_router(health_router.router, prefix=settings.API_PREFIX)
app.include_router(applications_router.router, prefix=settings.API_PREFIX)
app.include_router(companies_router.router, prefix=settings.API_PREFIX)
app.include_router(notifications_router.router, prefix=settings.API_PREFIX)

logger.info("API routers included. Application setup complete.")

# To run: uvicorn lc_application_service.app.main:app --reload --port 8000
