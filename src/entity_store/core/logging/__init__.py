# entity_store/core/logging/
# ├─ builder.py       # make_dict_config(settings) + setup_logging(settings)
# ├─ formatters.py    # JsonFormatter, ColorFormatter
# ├─ filters.py       # CorrelationIdFilter, RedactFilter (+ contextvar helpers)
# └─ handlers.py      # handler dicts for dictConfig

from .builder import setup_logging, make_dict_config
from .filters import (
    CorrelationIdFilter,
    RedactFilter,
    set_correlation_id,
    reset_correlation_id,
    get_correlation_id,
)
from .formatters import JsonFormatter, ColorFormatter

__all__ = [
    "setup_logging",
    "make_dict_config",
    "CorrelationIdFilter",
    "RedactFilter",
    "set_correlation_id",
    "reset_correlation_id",
    "get_correlation_id",
    "JsonFormatter",
    "ColorFormatter",
]
