"""
Host facts collector.

One-shot description of static host properties: OS, CPU models, RAM,
disks, addresses and distribution name. Holds no state between calls.
"""

import ipaddress
import logging
import os
import platform
import socket
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import psutil
import requests

logger = logging.getLogger(__name__)

PUBLIC_IP_URL = "https://api.ipify.org?format=json"
OS_RELEASE_PATH = Path("/etc/os-release")
CPUINFO_PATH = Path("/proc/cpuinfo")
SYS_BLOCK_PATH = Path("/sys/block")
UNKNOWN_DISTRO = "Unknown Linux Distribution"

BYTES_PER_GB = 1024**3


@dataclass
class DiskPartition:
    device: str
    mountpoint: str
    fstype: str
    size_gb: float
    used_gb: float
    free_gb: float
    use_percent: float


@dataclass
class StorageDevice:
    device: str
    type: str  # SSD|HDD


@dataclass
class HostFacts:
    os_type: str
    platform: str
    cpu_models: list[str]
    total_ram_gb: float
    disk_partitions: list[DiskPartition] = field(default_factory=list)
    storage_devices: list[StorageDevice] = field(default_factory=list)
    internal_ips: list[str] = field(default_factory=list)
    public_ip: Optional[str] = None
    distro: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def read_distro(path: Path = OS_RELEASE_PATH) -> str:
    """Return PRETTY_NAME from an os-release file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Error reading OS release file: {e}")
        return UNKNOWN_DISTRO

    for line in text.splitlines():
        if line.startswith("PRETTY_NAME="):
            return line.split("=", 1)[1].strip().strip('"').strip("'")
    return UNKNOWN_DISTRO


def read_cpu_models(path: Path = CPUINFO_PATH) -> list[str]:
    """One model name per logical CPU."""
    models = []
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            key, _, value = line.partition(":")
            if key.strip() == "model name":
                models.append(value.strip())
    except OSError:
        pass

    if not models:
        count = psutil.cpu_count(logical=True) or 1
        models = [platform.processor() or platform.machine()] * count
    return models


def read_storage_devices(root: Path = SYS_BLOCK_PATH) -> list[StorageDevice]:
    """Classify block devices as SSD or HDD from their rotational flag."""
    devices = []
    try:
        entries = sorted(os.listdir(root))
    except OSError:
        return devices

    for name in entries:
        try:
            rotational = (root / name / "queue" / "rotational").read_text().strip()
        except OSError:
            continue
        devices.append(StorageDevice(device=name, type="HDD" if rotational == "1" else "SSD"))
    return devices


def read_disk_partitions() -> list[DiskPartition]:
    partitions = []
    for part in psutil.disk_partitions(all=False):
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except (OSError, psutil.Error):
            continue
        partitions.append(
            DiskPartition(
                device=part.device,
                mountpoint=part.mountpoint,
                fstype=part.fstype,
                size_gb=round(usage.total / BYTES_PER_GB, 2),
                used_gb=round(usage.used / BYTES_PER_GB, 2),
                free_gb=round(usage.free / BYTES_PER_GB, 2),
                use_percent=usage.percent,
            )
        )
    return partitions


def read_internal_ips() -> list[str]:
    ips = []
    for entries in psutil.net_if_addrs().values():
        for entry in entries:
            if entry.family != socket.AF_INET:
                continue
            try:
                if ipaddress.ip_address(entry.address).is_loopback:
                    continue
            except ValueError:
                continue
            ips.append(entry.address)
    return ips


def fetch_public_ip(url: str = PUBLIC_IP_URL, timeout: float = 5.0) -> Optional[str]:
    """Look up the host's public address; None when the lookup fails."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return response.json().get("ip")
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Error fetching public IP: {e}")
        return None


def describe_host(public_ip_url: Optional[str] = PUBLIC_IP_URL, timeout: float = 5.0) -> HostFacts:
    """
    Collect host facts.

    Args:
        public_ip_url: Lookup service for the public IP; None skips the lookup
        timeout: Timeout in seconds for the public IP lookup
    """
    os_type = platform.system()
    distro = read_distro() if os_type == "Linux" else os_type

    return HostFacts(
        os_type=os_type,
        platform=platform.machine(),
        cpu_models=read_cpu_models(),
        total_ram_gb=round(psutil.virtual_memory().total / BYTES_PER_GB, 2),
        disk_partitions=read_disk_partitions(),
        storage_devices=read_storage_devices(),
        internal_ips=read_internal_ips(),
        public_ip=fetch_public_ip(public_ip_url, timeout) if public_ip_url else None,
        distro=distro,
    )
