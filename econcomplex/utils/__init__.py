from .logging import get_logger, setup_logging
