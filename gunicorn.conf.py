"""
Gunicorn configuration for the Student Profile API
Workers run the ASGI app through uvicorn: gunicorn app.main:app -c gunicorn.conf.py
"""
import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("GUNICORN_WORKERS", 2))
worker_class = "uvicorn.workers.UvicornWorker"

# Only these proxies may set the client address through X-Forwarded-For
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")

# Worker lifecycle
max_requests = 1000
max_requests_jitter = 100

# Timeouts
timeout = 30
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "student_profile_api"

# Logging (application logs go through structlog to stdout)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Student Profile API ready, spawning %s workers", workers)


def worker_abort(worker):
    """Called when a worker times out."""
    worker.log.warning("Worker %s aborted", worker.pid)
