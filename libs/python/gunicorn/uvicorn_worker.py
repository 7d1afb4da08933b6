"""
Uvicorn worker that leaves logging to libs.python.logging.

Uvicorn's default worker installs its own handlers on the uvicorn loggers,
which would duplicate every record once the consolidated logging is set up
in the post_fork hook.
"""

from uvicorn.workers import UvicornWorker as BaseUvicornWorker


class UvicornWorker(BaseUvicornWorker):
    """
    Uvicorn worker with uvicorn's logging configuration disabled.

    Usage:
        >>> options = get_gunicorn_config(
        ...     microservice_name="hello-kubernetes-api",
        ...     worker_class="libs.python.gunicorn.uvicorn_worker.UvicornWorker",
        ... )
    """

    CONFIG_KWARGS = {
        **BaseUvicornWorker.CONFIG_KWARGS,
        "log_config": None,
    }
