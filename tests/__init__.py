# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Magic AI API:
# - test_models.py: Unit tests for Pydantic model validation
# - test_fal_client.py: fal.ai queue submit/poll loop
# - test_generation_service.py: Key selection and debit-after-success
# - test_credit_service.py: Balance reads and compare-and-set updates
# - test_payment_service.py: Stripe Checkout and webhooks
# - test_otp_service.py: WhatsApp OTP login
# - test_api_key_service.py: Provider keys and media gallery
# - test_workers.py: Celery generation tasks
# - test_api.py: HTTP endpoints through TestClient
#
# Run tests with: pytest
# =============================================================================
