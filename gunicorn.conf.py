"""
Gunicorn configuration for the Wealth Observatory API.

Env vars that override defaults:
  PORT             — TCP port to bind (default: 8000)
  WORKERS          — number of worker processes (default: 2)
  REQUEST_TIMEOUT  — seconds before a silent worker is killed (default: 180)
  LOG_LEVEL        — shared with the app's logging setup (default: INFO)

The update trigger's rate gate lives in each worker's memory, so with
WORKERS > 1 two workers can each accept one trigger inside the interval.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "2"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# The daily trigger holds its request open for the feed fetch and the
# pre-computation. A long backfill range needs a larger value.
timeout = int(os.environ.get("REQUEST_TIMEOUT", "180"))

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
# Authorization headers are never part of the access line.
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30


def on_starting(server):
    if workers > 1:
        server.log.warning(
            "Running %d workers: the update trigger rate gate is per worker, "
            "so up to %d triggers can be accepted per interval.",
            workers, workers,
        )
