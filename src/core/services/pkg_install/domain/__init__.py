"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem writes,
NO network calls. Pure input→output.
"""

from src.core.services.pkg_install.domain.dag import (  # noqa: F401
    DependencyGraph,
    DependencyNode,
    dependency_tree,
    split_dependencies,
    validate_registry,
)
from src.core.services.pkg_install.domain.summary import BatchSummary  # noqa: F401
from src.core.services.pkg_install.domain.validation import (  # noqa: F401
    RESERVED_NAMES,
    resolve_under,
    sanitize_package_list,
    validate_package_name,
    validate_script_path,
    validate_version,
)
