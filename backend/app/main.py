"""
CRM Notification Intake API
FastAPI application that turns vendor lead/booking notification emails into
CRM records.
"""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from app.routers import email_intake
from app.db import supabase_admin

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="CRM Notification Intake API",
    description="Parses vendor lead and booking notifications into tenant CRM records",
    version="0.1.0",
)

# CORS is answered by the intake router itself (permissive pre-flight with an
# empty body), so no CORSMiddleware is installed here.
app.include_router(email_intake.router, prefix="/api/email-intake", tags=["email-intake"])
app.add_exception_handler(RequestValidationError, email_intake.notification_validation_handler)


@app.get("/")
async def root():
    return {"message": "CRM Notification Intake API", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/db")
async def health_db():
    """
    Test the Supabase database connection.

    Executes a lightweight query (SELECT 1 row from customers) to verify that
    the Supabase admin client can reach the record store.  Returns 503 on failure.
    """
    if supabase_admin is None:
        raise HTTPException(
            status_code=503,
            detail="Database client unavailable: SUPABASE_SERVICE_KEY is not configured",
        )

    try:
        supabase_admin.table("customers").select("id").limit(1).execute()
        return {"status": "ok", "database": "reachable"}
    except Exception as exc:
        logger.error(f"Database health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(exc)}",
        )
