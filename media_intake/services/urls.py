from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from ..core.config import Settings
from ..schemas import OPTIMIZED_PREFERENCE, Partition

TRANSFORM_PARAMS = "fit=contain,width=1200,format=auto"


@dataclass(frozen=True)
class DeliveryConfig:
    image_host: str
    files_host: str
    scheme: str = ""  # empty: use the inbound request's scheme

    @classmethod
    def from_settings(cls, cfg: Settings) -> "DeliveryConfig":
        return cls(image_host=cfg.image_hostname, files_host=cfg.files_hostname, scheme=cfg.public_scheme)

    def host_for(self, partition: Partition) -> str:
        return self.image_host if Partition(partition) is Partition.IMAGES else self.files_host

    def protocol(self, request_scheme: str) -> str:
        scheme = (self.scheme or request_scheme or "https").rstrip(":/")
        return f"{scheme}:"


def direct_url(protocol: str, host: str, partition: Partition, key: str) -> str:
    return f"{protocol}//{host}/{Partition(partition).value}/{key}"


def build_url(
    partition: Partition,
    key: str,
    request_scheme: str,
    config: DeliveryConfig,
    preference: Optional[str] = None,
) -> str:
    """Public URL for ``<partition>/<key>``.

    Images requested with the optimized preference get the edge transformation
    path wrapped around their direct URL; everything else gets the direct URL.
    """
    partition = Partition(partition)
    protocol = config.protocol(request_scheme)
    url = direct_url(protocol, config.host_for(partition), partition, key)
    if partition is Partition.IMAGES and preference == OPTIMIZED_PREFERENCE:
        image_base = f"{protocol}//{config.image_host}"
        return f"{image_base}/cdn-cgi/image/{TRANSFORM_PARAMS}/{url}"
    return url
