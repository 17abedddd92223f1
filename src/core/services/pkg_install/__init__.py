"""
Package installation service — package re-exports.

This ``__init__.py`` re-exports the public symbols so callers can write::

    from src.core.services.pkg_install import InstallManager, default_registry

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → detection → execution →
orchestration).
"""

# ── Errors ──
from src.core.services.pkg_install.errors import (  # noqa: F401
    CircularDependency,
    DependencyFailure,
    InstallationFailure,
    LockTimeout,
    PackageError,
    SystemPackageProtected,
    ValidationError,
)

# ── L0: Data ──
from src.core.services.pkg_install.data.catalog import (  # noqa: F401
    PackageRegistry,
    RegistryView,
    default_registry,
)

# ── L1: Domain ──
from src.core.services.pkg_install.domain.dag import (  # noqa: F401
    DependencyGraph,
    dependency_tree,
    validate_registry,
)
from src.core.services.pkg_install.domain.summary import BatchSummary  # noqa: F401
from src.core.services.pkg_install.domain.validation import (  # noqa: F401
    sanitize_package_list,
    validate_package_name,
    validate_version,
)

# ── L3: Detection ──
from src.core.services.pkg_install.detection.host_health import run_health_checks  # noqa: F401
from src.core.services.pkg_install.detection.install_state import (  # noqa: F401
    InstallStateDetector,
)
from src.core.services.pkg_install.detection.install_type import (  # noqa: F401
    InstallTypeDetector,
)

# ── L4: Execution ──
from src.core.services.pkg_install.execution.locks import PackageLockManager  # noqa: F401
from src.core.services.pkg_install.execution.rollback import (  # noqa: F401
    RollbackManager,
    RollbackPoint,
)

# ── L5: Orchestration ──
from src.core.services.pkg_install.orchestration.batch import (  # noqa: F401
    execute_parallel,
    execute_sequential,
    install_operation,
    remove_operation,
    run_batch,
)
from src.core.services.pkg_install.orchestration.manager import InstallManager  # noqa: F401
from src.core.services.pkg_install.orchestration.removal import RemovalEngine  # noqa: F401
