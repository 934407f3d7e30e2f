import pytest
from unittest.mock import Mock
from h2o.exceptions import H2OConnectionError, H2OResponseError, H2OServerError
from utils.exceptions import (
    GLMGridException, ConfigurationError, ClusterConnectionError, DataValidationError,
    GridSearchError, ModelSelectionError, ReportingError
)
from utils.error_handling import handle_engine_errors

def test_exception_inheritance():
    err = ConfigurationError("Test error")
    assert isinstance(err, GLMGridException)
    assert isinstance(err, Exception)
    assert str(err) == "Test error"

@pytest.mark.parametrize("exc_type", [
    ClusterConnectionError, DataValidationError, GridSearchError, ModelSelectionError, ReportingError
])
def test_all_pipeline_errors_share_base(exc_type):
    assert issubclass(exc_type, GLMGridException)


class _Engine:
    def __init__(self):
        self.logger = Mock()

    @handle_engine_errors("Dummy Op")
    def fail_with(self, exc):
        raise exc

    @handle_engine_errors("Dummy Op")
    def succeed(self):
        return 42

def test_decorator_passes_return_value():
    assert _Engine().succeed() == 42

def test_decorator_reraises_pipeline_errors_unchanged():
    engine = _Engine()
    with pytest.raises(DataValidationError, match="bad data"):
        engine.fail_with(DataValidationError("bad data"))
    engine.logger.error.assert_not_called()

def test_decorator_wraps_foreign_errors():
    engine = _Engine()
    with pytest.raises(GLMGridException, match="Dummy Op failed: boom") as exc_info:
        engine.fail_with(RuntimeError("boom"))
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    engine.logger.error.assert_called_once()

def test_decorator_names_engine_and_method_in_log():
    engine = _Engine()
    with pytest.raises(GLMGridException):
        engine.fail_with(KeyError("alpha"))
    message = engine.logger.error.call_args[0][0]
    assert "_Engine.fail_with" in message
    assert "KeyError" in message

@pytest.mark.parametrize("exc", [H2OConnectionError("refused"), H2OServerError("node died")])
def test_decorator_maps_lost_cluster_errors(exc):
    engine = _Engine()
    with pytest.raises(ClusterConnectionError, match="Dummy Op failed: H2O cluster unavailable") as exc_info:
        engine.fail_with(exc)
    assert exc_info.value.__cause__ is exc

def test_decorator_keeps_response_errors_generic():
    with pytest.raises(GLMGridException, match="Dummy Op failed: bad column") as exc_info:
        _Engine().fail_with(H2OResponseError("bad column"))
    assert not isinstance(exc_info.value, ClusterConnectionError)
