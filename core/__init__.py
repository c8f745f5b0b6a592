# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the business logic behind the HTTP layer:
# - models/: Pydantic schemas for data validation
# - services/: Generation, credits, payments, OTP login, API keys, media
#
# Code in this package should NOT import FastAPI routers or Celery.
# This keeps the logic testable and reusable from both the API and workers.
# =============================================================================
