"""
L3 Detection — read-only probes of the host.
"""

from src.core.services.pkg_install.detection.host_health import (  # noqa: F401
    HEALTH_CHECKS,
    run_health_checks,
)
from src.core.services.pkg_install.detection.install_state import (  # noqa: F401
    InstallStateDetector,
)
from src.core.services.pkg_install.detection.install_type import (  # noqa: F401
    InstallTypeDetector,
    VersionManagerInstall,
    parse_dpkg_list,
)
from src.core.services.pkg_install.detection.service_status import (  # noqa: F401
    is_service_active,
)
from src.core.services.pkg_install.detection.system_deps import (  # noqa: F401
    command_exists,
    missing_system_deps,
)
from src.core.services.pkg_install.detection.tool_version import (  # noqa: F401
    FLOATING_VERSIONS,
    get_system_version,
    parse_version,
)
