from pathlib import Path
from typing import List, Optional

from build_profile import BuildProfile


class Toolchain:
    """Base class for the external programs driven by KernelBuilder.

    A Toolchain represents a program identity: which binary to launch and
    how to spell its arguments for a given BuildProfile. It never spawns
    processes itself.

    Used by:
    - KernelBuilder.plan(): composes Invocation argument lists
    """

    program = None

    def __init__(self, program: Optional[str] = None):
        if program is not None:
            self.program = program


class CargoToolchain(Toolchain):
    """Cargo compiler driver for the kernel crate."""

    program = "cargo"

    def get_build_args(self, profile: BuildProfile, quiet: bool = False) -> List[str]:
        args = ["build"]
        if quiet:
            args.append("--quiet")
        return args + list(profile.toolchain_flags)

    def get_clean_args(self) -> List[str]:
        """Return clean arguments. Cargo removes the whole target/ tree, both profiles included."""
        return ["clean"]


class QemuToolchain(Toolchain):
    """i386 system emulator used to boot the kernel image."""

    program = "qemu-system-i386"
    machine = "pc"
    memory = "128M"

    def get_run_args(self, artifact_path: Path) -> List[str]:
        # Guest COM1 goes to the invoking terminal
        return [
            "-kernel", str(artifact_path),
            "-machine", self.machine,
            "-m", self.memory,
            "-serial", "stdio",
        ]
