from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings

from etcd_health.etcd_client.client import TLSInfo

DESCRIPTION = "gather etcd cluster health"

SAMPLE_CONFIG = """\
## Etcd seed URLs (JSON list), used only to discover members
# ETCD_HEALTH_URLS='["https://localhost:2379"]'
## path to cert file
# ETCD_HEALTH_SSL_CERT_FILE=/etc/ssl/etcd.pem
## path to ca file
# ETCD_HEALTH_SSL_CA_FILE=/etc/ssl/ca.pem
## path to key file
# ETCD_HEALTH_SSL_KEY_FILE=/etc/ssl/etcd-key.pem
## cluster name (tag)
# ETCD_HEALTH_CLUSTER=development
## how member addresses are built: "name" (scheme://<name>:port) or "client_url"
# ETCD_HEALTH_ADDRESS_SOURCE=name
# ETCD_HEALTH_MEMBER_SCHEME=https
# ETCD_HEALTH_MEMBER_PORT=2379
## seconds between collection cycles
# ETCD_HEALTH_INTERVAL_SECONDS=60
"""


class Settings(BaseSettings):
    """Collector configuration loaded from environment / .env file."""

    model_config = {
        "env_prefix": "ETCD_HEALTH_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Seed endpoints (discovery only)
    urls: list[str] = ["https://localhost:2379"]

    # TLS material shared by the seed and every member connection
    ssl_ca_file: str = ""
    ssl_cert_file: str = ""
    ssl_key_file: str = ""

    # Static tag on every record
    cluster: str = ""

    # Member address derivation
    address_source: Literal["name", "client_url"] = "name"
    member_scheme: str = "https"
    member_port: int = 2379

    # Probing
    max_concurrency: int = 8
    interval_seconds: int = 60

    # Logging
    log_level: str = "INFO"

    @property
    def tls(self) -> TLSInfo:
        return TLSInfo(
            ca_file=self.ssl_ca_file,
            cert_file=self.ssl_cert_file,
            key_file=self.ssl_key_file,
        )


settings = Settings()
