"""
Gunicorn configuration for the shift scheduling service

    gunicorn --config gunicorn_config.py wsgi:app

Threads inside one worker share that worker's entity lock table; writers
in different workers are serialized by PostgreSQL advisory locks. Each
worker also runs its own drop-expiry sweep, which is safe because the
expiry update is status-guarded.
"""
import multiprocessing
import os


def _env_int(name, default):
    return int(os.getenv(name, str(default)))


bind = os.getenv('GUNICORN_BIND', '0.0.0.0:8000')

# Threaded workers: lock waits block a thread, not the whole process
worker_class = 'gthread'
workers = _env_int('GUNICORN_WORKERS', min(multiprocessing.cpu_count() * 2 + 1, 8))
threads = _env_int('GUNICORN_THREADS', 4)

# Must exceed LOCK_TIMEOUT_SECONDS so lock waits end in a 503, not a killed worker
timeout = _env_int('GUNICORN_TIMEOUT', 60)
graceful_timeout = _env_int('GUNICORN_GRACEFUL_TIMEOUT', 30)
keepalive = _env_int('GUNICORN_KEEPALIVE', 5)
max_requests = _env_int('GUNICORN_MAX_REQUESTS', 5000)
max_requests_jitter = _env_int('GUNICORN_MAX_REQUESTS_JITTER', 500)

accesslog = os.getenv('GUNICORN_ACCESS_LOG', '-')
errorlog = os.getenv('GUNICORN_ERROR_LOG', '-')
loglevel = os.getenv('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s user=%({x-user-id}i)s %(D)sus'

proc_name = 'shift_scheduling'

limit_request_line = 4096
limit_request_fields = 100


def when_ready(server):
    server.log.info("Shift scheduling service listening on %s (%s workers x %s threads)",
                    bind, workers, threads)


def post_fork(server, worker):
    server.log.info("Worker %s started with its own lock table and expiry sweep", worker.pid)


def worker_abort(worker):
    worker.log.warning("Worker %s aborted; in-flight units of work were rolled back", worker.pid)
