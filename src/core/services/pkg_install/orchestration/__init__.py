"""
L5 Orchestration — install, remove, and batch drivers.
"""

from src.core.services.pkg_install.orchestration.batch import (  # noqa: F401
    execute_parallel,
    execute_sequential,
    install_operation,
    remove_operation,
    run_batch,
)
from src.core.services.pkg_install.orchestration.manager import InstallManager  # noqa: F401
from src.core.services.pkg_install.orchestration.removal import (  # noqa: F401
    REASON_CRITICAL,
    REASON_UNKNOWN,
    RemovalEngine,
    RemovalPlan,
)
