import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import h2o
from h2o.exceptions import H2OError

from utils.exceptions import ClusterConnectionError

class ClusterManager:
    """
    Owns the connection to the H2O cluster.

    Starts (or attaches to) a local H2O JVM, reports what it connected to, and
    shuts it down again. `session()` guarantees the shutdown runs even when a
    pipeline phase raises.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.cluster_config = config.get('cluster', {})
        self.shutdown_on_exit = self.cluster_config.get('shutdown_on_exit', True)
        self._started = False

    def _init_kwargs(self) -> Dict[str, Any]:
        """Translate the cluster section into h2o.init() keyword arguments."""
        cfg = self.cluster_config
        if cfg.get('url'):
            kwargs = {'url': cfg['url']}
        else:
            kwargs = {
                'ip': cfg.get('ip', 'localhost'),
                'port': cfg.get('port', 54321),
                'nthreads': cfg.get('nthreads', -1),
            }
            if cfg.get('max_mem_size'):
                kwargs['max_mem_size'] = cfg['max_mem_size']
        kwargs['strict_version_check'] = cfg.get('strict_version_check', False)
        return kwargs

    def start(self):
        """
        Start or connect to the cluster.

        Returns:
            H2OCluster: handle of the connected cluster.

        Raises:
            ClusterConnectionError: if the JVM cannot be started or reached.
        """
        kwargs = self._init_kwargs()
        self.logger.info(f"Connecting to H2O cluster with {kwargs}")
        try:
            h2o.init(**kwargs)
        except H2OError as e:
            raise ClusterConnectionError(f"Could not start or reach the H2O cluster: {e}") from e

        self._started = True
        cluster = h2o.cluster()
        self.logger.info(
            f"Connected to H2O cluster '{cluster.cloud_name}' "
            f"(version {cluster.version}, {cluster.cloud_size} node(s))"
        )
        return cluster

    def is_running(self) -> bool:
        cluster = h2o.cluster()
        return bool(cluster is not None and cluster.is_running())

    def shutdown(self) -> None:
        """Shut the cluster down if this manager started it. Safe to call twice."""
        if not self._started:
            return
        self._started = False

        if not self.shutdown_on_exit:
            self.logger.info("Leaving H2O cluster running (shutdown_on_exit disabled).")
            return

        cluster = h2o.cluster()
        if cluster is None or not cluster.is_running():
            self.logger.info("H2O cluster already stopped.")
            return

        self.logger.info("Shutting down H2O cluster...")
        cluster.shutdown(prompt=False)

    @contextmanager
    def session(self) -> Iterator[Optional[Any]]:
        """Context manager: start on enter, shutdown on exit (also on error)."""
        cluster = self.start()
        try:
            yield cluster
        finally:
            self.shutdown()
