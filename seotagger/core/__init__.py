from seotagger.core.config import get_config
from seotagger.core.logging import setup_logging
from seotagger.core.retry import with_retry

__all__ = ["get_config", "setup_logging", "with_retry"]
