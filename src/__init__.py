"""run — package installation orchestrator."""

__version__ = "0.1.0"
