import pytest
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from modules.logging_config import LoggingConfigurator, ColoredFormatter

@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)

def test_logger_creation(tmp_path):
    log_dir = tmp_path / "logs"
    config = {'logging': {'level': 'DEBUG', 'log_to_file': True, 'log_to_console': False, 'log_dir': str(log_dir)}}
    lc = LoggingConfigurator(config)
    lc.setup()

    logger = lc.get_logger('test_mod')
    logger.info("Test message")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = log_dir / "glm_grid.log"
    assert log_file.exists()
    content = log_file.read_text(encoding='utf-8')
    assert "Test message" in content
    assert "test_logging_config:" in content
    assert "\x1b[" not in content

def test_h2o_client_logger_quieted_at_info(tmp_path):
    config = {'logging': {'level': 'INFO', 'log_to_file': False, 'log_to_console': True}}
    LoggingConfigurator(config).setup()
    assert logging.getLogger('h2o').level == logging.WARNING
    assert logging.getLogger().level == logging.INFO

def test_colored_formatter_leaves_record_untouched():
    formatter = ColoredFormatter('%(levelname)s %(message)s')
    record = logging.LogRecord('x', logging.WARNING, __file__, 1, "careful", None, None)
    output = formatter.format(record)
    assert "careful" in output
    assert "\x1b[" in output
    assert record.levelname == "WARNING"

def test_file_rotation_follows_config(tmp_path):
    config = {'logging': {'log_to_console': False, 'log_dir': str(tmp_path),
                          'file_name': 'run_42.log', 'max_file_mb': 0.5, 'backup_count': 7}}
    LoggingConfigurator(config).setup()
    handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 1
    assert handlers[0].maxBytes == 512 * 1024
    assert handlers[0].backupCount == 7
    assert Path(handlers[0].baseFilename) == (tmp_path / "run_42.log").resolve()

def test_file_rotation_defaults(tmp_path):
    lc = LoggingConfigurator({'logging': {'log_dir': str(tmp_path)}})
    assert lc.file_name == "glm_grid.log"
    assert lc.max_bytes == 5 * 1024 * 1024
    assert lc.backup_count == 3
