"""Generate a unified diff that adds MooseFS storage to the PVE web UI bundle."""

__all__ = [
    "config",
    "document",
    "patcher",
    "rules",
    "runtime",
    "workflow",
]

__version__ = "0.1.0"
