"""
L4 Execution — everything that mutates the host.
"""

from src.core.services.pkg_install.execution.apt_install import (  # noqa: F401
    install_system_packages,
)
from src.core.services.pkg_install.execution.locks import (  # noqa: F401
    DEFAULT_LOCK_TIMEOUT,
    PackageLockManager,
)
from src.core.services.pkg_install.execution.rollback import (  # noqa: F401
    RollbackManager,
    RollbackPoint,
)
from src.core.services.pkg_install.execution.script_runner import (  # noqa: F401
    run_install_script,
    script_arguments,
)
from src.core.services.pkg_install.execution.subprocess_runner import (  # noqa: F401
    NONINTERACTIVE_ENV,
    run_command,
)
