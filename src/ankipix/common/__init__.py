from .logging_config import ContextFormatter, setup_logging
from .reliability import retry_call
