import functools
import logging

from h2o.exceptions import H2OConnectionError, H2OServerError, H2OStartupError

from utils.exceptions import ClusterConnectionError, GLMGridException

# Client errors meaning the cluster itself is gone or never came up
CLUSTER_ERRORS = (H2OConnectionError, H2OServerError, H2OStartupError)


def handle_engine_errors(operation_name: str):
    """
    Decorator for engine entry points.

    Pipeline errors pass through. Lost-cluster errors from the h2o client
    become ClusterConnectionError; anything else is wrapped in
    GLMGridException. The message names the engine class and the operation.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except GLMGridException:
                raise
            except Exception as e:
                owner = args[0] if args else None
                logger = getattr(owner, 'logger', None) or logging.getLogger(__name__)
                where = f"{type(owner).__name__}.{func.__name__}" if owner is not None else func.__name__
                logger.error(f"{operation_name} failed in {where}: {type(e).__name__}: {e}", exc_info=True)
                if isinstance(e, CLUSTER_ERRORS):
                    raise ClusterConnectionError(f"{operation_name} failed: H2O cluster unavailable ({e})") from e
                raise GLMGridException(f"{operation_name} failed: {e}") from e
        return wrapper
    return decorator
