"""
Host facts collected once at startup: user, hostname, process,
interface addresses, integrity level.

Every lookup is guarded on its own. A failure leaves that field empty
and is logged; the agent still runs with partial identity information.
"""

import os
import sys
import socket
import ctypes
import getpass
import platform
from dataclasses import dataclass, field

import psutil

from .config import log


@dataclass
class HostFacts:
    platform: str = ""
    architecture: str = ""
    username: str = ""
    user_guid: str = ""
    hostname: str = ""
    process: str = ""
    pid: int = 0
    ips: list = field(default_factory=list)
    integrity: int = 0

    def as_dict(self):
        return {
            "platform": self.platform,
            "architecture": self.architecture,
            "userName": self.username,
            "userGuid": self.user_guid,
            "hostName": self.hostname,
            "process": self.process,
            "pid": self.pid,
            "ips": list(self.ips),
            "integrity": self.integrity,
        }


# ─── Individual lookups ──────────────────────────────────────────

def get_user():
    """Return (username, user_guid). user_guid is "uid:gid" on POSIX, empty elsewhere."""
    name = getpass.getuser()
    if hasattr(os, "getuid"):
        guid = f"{os.getuid()}:{os.getgid()}"
    else:
        guid = ""
    return name, guid


def get_interface_addresses():
    """Every address on every interface, as "addr/netmask" strings."""
    ips = []
    for iface, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            if addr.netmask:
                ips.append(f"{addr.address}/{addr.netmask}")
            else:
                ips.append(addr.address)
    return ips


def get_integrity_level():
    """
    2 = regular user, 3 = elevated admin (Windows), 4 = root (POSIX).
    Raises OSError if the level cannot be determined.
    """
    if sys.platform == "win32":
        try:
            return 3 if ctypes.windll.shell32.IsUserAnAdmin() else 2
        except AttributeError as e:
            raise OSError(f"IsUserAnAdmin unavailable: {e}") from e
    return 4 if os.geteuid() == 0 else 2


# ─── Collection ──────────────────────────────────────────────────

def collect_host_facts():
    """Gather HostFacts. Never raises."""
    facts = HostFacts(
        platform=sys.platform,
        architecture=platform.machine(),
        pid=os.getpid(),
    )

    try:
        facts.username, facts.user_guid = get_user()
    except (OSError, KeyError) as e:
        # getpass raises KeyError / OSError when the uid has no passwd entry
        log.warning("There was an error getting the current user: %s", e)

    try:
        facts.hostname = socket.gethostname()
    except OSError as e:
        log.warning("There was an error getting the hostname: %s", e)

    try:
        facts.process = psutil.Process(facts.pid).exe()
    except (psutil.Error, OSError) as e:
        log.warning("There was an error getting the process name: %s", e)
        facts.process = sys.executable or ""

    try:
        facts.ips = get_interface_addresses()
    except (psutil.Error, OSError) as e:
        log.warning("There was an error getting the network interfaces: %s", e)

    try:
        facts.integrity = get_integrity_level()
    except OSError as e:
        log.debug("There was an error determining the integrity level: %s", e)

    return facts
