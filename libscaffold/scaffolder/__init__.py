"""libscaffold scaffolder -- materialises the library template files.

Quick usage::

    from libscaffold.scaffolder import Materializer

    materializer = Materializer("/path/to/my-lib")
    writes = materializer.plan(context)
    report = await materializer.apply(writes)
"""

from libscaffold.scaffolder.catalog import (
    TEMPLATE_CATALOG,
    RenderMode,
    TemplateEntry,
    WritePolicy,
)
from libscaffold.scaffolder.generator import FileWrite, MaterializeReport, Materializer
from libscaffold.scaffolder.templates import TemplateRenderer

__all__ = [
    "FileWrite",
    "MaterializeReport",
    "Materializer",
    "RenderMode",
    "TEMPLATE_CATALOG",
    "TemplateEntry",
    "TemplateRenderer",
    "WritePolicy",
]
