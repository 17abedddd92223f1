"""
L0 Data — static tables: catalog, critical packages, services, APT
patterns, removal cleanup, version managers.
"""

from src.core.services.pkg_install.data.apt_packages import (  # noqa: F401
    APT_EXTRA_PATTERNS,
    apt_patterns,
)
from src.core.services.pkg_install.data.catalog import (  # noqa: F401
    BUILD_INTENSIVE,
    RELATED_PACKAGES,
    PackageRegistry,
    RegistryView,
    default_registry,
)
from src.core.services.pkg_install.data.critical_packages import (  # noqa: F401
    CRITICAL_PACKAGES,
    critical_reason,
)
from src.core.services.pkg_install.data.removal_cleanup import (  # noqa: F401
    LEFTOVER_PATHS,
    PRE_STOP_SERVICES,
    leftover_patterns,
    pre_stop_services,
)
from src.core.services.pkg_install.data.service_units import (  # noqa: F401
    SERVICE_UNITS,
    service_unit,
)
from src.core.services.pkg_install.data.version_managers import (  # noqa: F401
    VERSION_MANAGERS,
)
