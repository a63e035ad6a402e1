"""Platform and OS detection utilities.

Values are reported in the vocabulary plugin manifests use in their
platform selectors (``os: linux``, ``arch: amd64``). Both can be forced
through the ``KREW_OS`` and ``KREW_ARCH`` environment variables, which is
how tests and cross-target installs pick a platform other than the host's.
"""

import os
import platform

OS_OVERRIDE_ENV = "KREW_OS"
ARCH_OVERRIDE_ENV = "KREW_ARCH"


def get_env(name: str, default: str | None = None) -> str | None:
    """Get an environment variable.

    Args:
        name: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(name, default)


def get_host_os() -> str:
    """Get the operating system of the running host, ignoring overrides.

    Returns:
        One of: "windows", "linux", "darwin" (other systems are reported
        lowercased as-is, e.g. "freebsd")
    """
    system = platform.system().lower()
    if system.startswith(("cygwin", "msys")):
        return "windows"
    return system or "linux"


def get_host_arch() -> str:
    """Get the CPU architecture of the running host, ignoring overrides.

    Returns:
        One of: "amd64", "arm64", "arm", "386" (unknown machines are
        reported lowercased as-is)
    """
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64"):
        return "amd64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine.startswith("arm"):
        return "arm"
    elif machine in ("i386", "i686", "x86"):
        return "386"
    return machine


def get_os() -> str:
    """Get the operating system used for platform matching.

    Returns:
        The value of ``KREW_OS`` if set, otherwise the host OS
    """
    return get_env(OS_OVERRIDE_ENV) or get_host_os()


def get_arch() -> str:
    """Get the CPU architecture used for platform matching.

    Returns:
        The value of ``KREW_ARCH`` if set, otherwise the host architecture
    """
    return get_env(ARCH_OVERRIDE_ENV) or get_host_arch()


def is_windows() -> bool:
    """Check if the target OS is Windows (honours ``KREW_OS``)."""
    return get_os() == "windows"


def platform_labels() -> dict[str, str]:
    """Get the labels that platform selectors are evaluated against.

    Returns:
        Dictionary with "os" and "arch" keys
    """
    return {"os": get_os(), "arch": get_arch()}


def get_home_directory() -> str:
    """Get the user's home directory."""
    return os.path.expanduser("~")
