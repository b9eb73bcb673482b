"""libscaffold -- interactive scaffolding for JavaScript libraries."""

__version__ = "0.1.0"

from libscaffold.config import ScaffoldConfig
from libscaffold.context import Context

__all__ = ["Context", "ScaffoldConfig", "__version__"]
