import copy
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from colorama import Fore, Style, init

init(autoreset=True)

# Loggers of the h2o client stack that are chatty at INFO
NOISY_LOGGERS = ('h2o', 'urllib3', 'matplotlib', 'PIL')

class ColoredFormatter(logging.Formatter):
    """Custom formatter with color support for console output."""
    COLORS = {
        'DEBUG': Fore.WHITE + Style.DIM,
        'INFO': Fore.CYAN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT
    }
    RESET = Style.RESET_ALL

    def format(self, record):
        # Color a copy so the file handler still sees the plain level name
        record = copy.copy(record)
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        return super().format(record)

class LoggingConfigurator:
    """
    Configures system-wide logging with UTF-8 support.

    Console lines stay short; the rotating file log adds milliseconds and the
    emitting module:line. File name and rotation come from the logging section.
    """

    CONSOLE_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'
    FILE_FORMAT = '%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)s | %(module)s:%(lineno)d | %(message)s'
    DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

    DEFAULT_FILE_NAME = "glm_grid.log"
    DEFAULT_MAX_MB = 5
    DEFAULT_BACKUP_COUNT = 3

    def __init__(self, config: dict):
        self.config = config.get('logging', {})
        self.log_level = getattr(logging, self.config.get('level', 'INFO').upper())
        self.log_dir = Path(self.config.get('log_dir', 'logs'))
        self.file_name = self.config.get('file_name', self.DEFAULT_FILE_NAME)
        self.max_bytes = int(float(self.config.get('max_file_mb', self.DEFAULT_MAX_MB)) * 1024 * 1024)
        self.backup_count = int(self.config.get('backup_count', self.DEFAULT_BACKUP_COUNT))

    def setup(self) -> None:
        """Setup all loggers and handlers."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)
        root_logger.handlers = []  # Clear existing

        if self.config.get('log_to_console', True):
            if sys.platform == 'win32':
                sys.stdout.reconfigure(encoding='utf-8')

            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self.log_level)

            if self.config.get('colorful_console', True):
                formatter = ColoredFormatter(self.CONSOLE_FORMAT, datefmt=self.DATE_FORMAT)
            else:
                formatter = logging.Formatter(self.CONSOLE_FORMAT, datefmt=self.DATE_FORMAT)

            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        if self.config.get('log_to_file', True):
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._add_file_handler(root_logger, self.file_name)

        # Keep the client's REST chatter out unless debugging
        if self.log_level > logging.DEBUG:
            for name in NOISY_LOGGERS:
                logging.getLogger(name).setLevel(logging.WARNING)

    def _add_file_handler(self, logger: logging.Logger, filename: str):
        file_path = self.log_dir / filename
        handler = RotatingFileHandler(
            file_path,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(self.FILE_FORMAT, datefmt=self.DATE_FORMAT))
        logger.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)
