from etcd_health.etcd_client.client import (
    REQUEST_TIMEOUT,
    TRANSPORT_TIMEOUT,
    DiscoveryError,
    EtcdClient,
    EtcdHealthError,
    ProbeError,
    TLSInfo,
    TransportError,
    connect_to,
)
from etcd_health.etcd_client.models import Member, MemberList

__all__ = [
    "REQUEST_TIMEOUT",
    "TRANSPORT_TIMEOUT",
    "DiscoveryError",
    "EtcdClient",
    "EtcdHealthError",
    "Member",
    "MemberList",
    "ProbeError",
    "TLSInfo",
    "TransportError",
    "connect_to",
]
