"""
Build profile resolution.

A BuildProfile decides where the kernel image lands and which extra flags
the compiler driver receives. Profiles are resolved once at startup from the
RELEASE environment toggle and passed explicitly to KernelBuilder.

Usage:
    from build_profile import from_environment

    profile = from_environment()
    print(profile.name, profile.artifact_path)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

import env_manager

# Only this exact value selects the release profile
TRUTHY_SENTINEL = "1"

# Cargo output layout: <OUTPUT_ROOT>/<TARGET_NAME>/<profile>/<BINARY_NAME>
OUTPUT_ROOT = Path("target")
TARGET_NAME = "target"  # custom target (target.json)
BINARY_NAME = "kfs"

DEBUG = "debug"
RELEASE = "release"


@dataclass(frozen=True)
class BuildProfile:
    """Immutable build configuration for a single run."""
    name: str
    artifact_path: Path
    toolchain_flags: Tuple[str, ...] = ()


def artifact_path_for(name: str) -> Path:
    """Return the kernel image path Cargo produces for the named profile."""
    return OUTPUT_ROOT / TARGET_NAME / name / BINARY_NAME


DEBUG_PROFILE = BuildProfile(
    name=DEBUG,
    artifact_path=artifact_path_for(DEBUG),
)

RELEASE_PROFILE = BuildProfile(
    name=RELEASE,
    artifact_path=artifact_path_for(RELEASE),
    toolchain_flags=("--release",),
)


def resolve(toggle: Optional[str]) -> BuildProfile:
    """
    Resolve the build profile from the toggle value.

    The toggle is compared for exact equality with TRUTHY_SENTINEL. Absent,
    empty and any other value (including "true" or "yes") fall back to the
    debug profile; this function never raises.

    Args:
        toggle: Raw value of the RELEASE environment variable, or None

    Returns:
        RELEASE_PROFILE or DEBUG_PROFILE
    """
    if toggle == TRUTHY_SENTINEL:
        return RELEASE_PROFILE
    return DEBUG_PROFILE


def from_environment(environ: Optional[Mapping[str, str]] = None) -> BuildProfile:
    """Resolve the profile from the RELEASE variable of environ (os.environ by default)."""
    return resolve(env_manager.get(env_manager.RELEASE_TOGGLE, environ))
