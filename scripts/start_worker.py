#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Celery Worker Entry Point
# =============================================================================
# Starts a Celery worker for queued image/video generations.
#
# Usage:
#   # Start worker (development)
#   python scripts/start_worker.py
#
#   # Or use Celery CLI directly
#   celery -A workers.celery_app worker -Q generation,default --loglevel=info
#
# Prerequisites:
#   - Redis must be running (REDIS_URL)
#   - Environment variables must be set (.env file)
# =============================================================================

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app


def main():
    """Start the Celery worker."""
    print("=" * 60)
    print("Magic AI Generation Worker")
    print("=" * 60)
    print()
    print("Consuming queues: generation, default")
    print("Press Ctrl+C to stop")
    print()

    # Each generation blocks on fal.ai polling for up to ~10 minutes
    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        "-Q", "generation,default",
        "--concurrency=4",
    ])


if __name__ == "__main__":
    main()
