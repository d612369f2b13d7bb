from adminpanel_core.coercion import coerce, render, value_type
from adminpanel_core.config import CoreConfig, load_core_config

__version__ = "0.1.0"

__all__ = [
    "CoreConfig",
    "__version__",
    "coerce",
    "load_core_config",
    "render",
    "value_type",
]
