import pytest
from unittest.mock import Mock, MagicMock, patch
from h2o.exceptions import H2OError

from modules.cluster_manager import ClusterManager
from utils.exceptions import ClusterConnectionError

@pytest.fixture
def mock_logger():
    return Mock()

@pytest.fixture
def cluster_config():
    return {
        'cluster': {
            'url': None,
            'ip': 'localhost',
            'port': 54321,
            'nthreads': 2,
            'max_mem_size': '1G',
            'strict_version_check': False,
            'shutdown_on_exit': True,
        }
    }

@pytest.fixture
def mock_h2o():
    with patch('modules.cluster_manager.cluster_manager.h2o') as h2o_mock:
        cluster = MagicMock()
        cluster.cloud_name = "test_cloud"
        cluster.version = "3.46.0.1"
        cluster.cloud_size = 1
        cluster.is_running.return_value = True
        h2o_mock.cluster.return_value = cluster
        yield h2o_mock

def test_init_kwargs_local(cluster_config, mock_logger):
    kwargs = ClusterManager(cluster_config, mock_logger)._init_kwargs()
    assert kwargs == {
        'ip': 'localhost', 'port': 54321, 'nthreads': 2, 'max_mem_size': '1G', 'strict_version_check': False
    }

def test_init_kwargs_url_takes_precedence(cluster_config, mock_logger):
    cluster_config['cluster']['url'] = "http://h2o.internal:54321"
    kwargs = ClusterManager(cluster_config, mock_logger)._init_kwargs()
    assert kwargs == {'url': "http://h2o.internal:54321", 'strict_version_check': False}

def test_start_connects_and_reports(cluster_config, mock_logger, mock_h2o):
    manager = ClusterManager(cluster_config, mock_logger)
    cluster = manager.start()

    mock_h2o.init.assert_called_once_with(**manager._init_kwargs())
    assert cluster.cloud_name == "test_cloud"
    assert manager.is_running()

def test_start_failure_is_classified(cluster_config, mock_logger, mock_h2o):
    mock_h2o.init.side_effect = H2OError("cannot launch JVM")
    with pytest.raises(ClusterConnectionError, match="cannot launch JVM"):
        ClusterManager(cluster_config, mock_logger).start()

def test_shutdown_is_idempotent(cluster_config, mock_logger, mock_h2o):
    manager = ClusterManager(cluster_config, mock_logger)
    manager.start()
    manager.shutdown()
    manager.shutdown()
    mock_h2o.cluster.return_value.shutdown.assert_called_once_with(prompt=False)

def test_shutdown_without_start_is_noop(cluster_config, mock_logger, mock_h2o):
    ClusterManager(cluster_config, mock_logger).shutdown()
    mock_h2o.cluster.return_value.shutdown.assert_not_called()

def test_keep_cluster_running(cluster_config, mock_logger, mock_h2o):
    cluster_config['cluster']['shutdown_on_exit'] = False
    manager = ClusterManager(cluster_config, mock_logger)
    manager.start()
    manager.shutdown()
    mock_h2o.cluster.return_value.shutdown.assert_not_called()

def test_session_shuts_down_after_failure(cluster_config, mock_logger, mock_h2o):
    manager = ClusterManager(cluster_config, mock_logger)
    with pytest.raises(RuntimeError):
        with manager.session():
            raise RuntimeError("phase failed")
    mock_h2o.cluster.return_value.shutdown.assert_called_once_with(prompt=False)
