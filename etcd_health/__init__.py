"""Periodic health collector for etcd clusters."""

__version__ = "0.1.0"
