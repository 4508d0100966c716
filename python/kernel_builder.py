import logging
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from build_profile import BuildProfile
from toolchain import CargoToolchain, QemuToolchain

logger = logging.getLogger(__name__)

# Exit status reported when a program cannot be launched (shell convention)
COMMAND_NOT_FOUND = 127
COMMAND_NOT_EXECUTABLE = 126

SIZE_UNITS = ("KiB", "MiB", "GiB", "TiB")

USAGE = """\
available commands:
  kfs-make help        show this listing
  kfs-make build       compile the kernel image
  kfs-make run         build, then boot the kernel image under QEMU
  kfs-make print-size  build quietly, then report the kernel image size
  kfs-make clean       remove all build output (debug and release)
  kfs-make rebuild     clean, then build (alias: re)

Set RELEASE=1 to select the release profile (default: debug).
"""


class Action(Enum):
    """Commands understood by KernelBuilder.dispatch()."""
    HELP = "help"
    BUILD = "build"
    RUN = "run"
    PRINT_SIZE = "print-size"
    CLEAN = "clean"
    REBUILD = "rebuild"


ACTION_ALIASES = {"re": Action.REBUILD}


def parse_action(name: str) -> Action:
    """Map a command-line name (or alias) to an Action.

    Raises:
        ValueError: If name is not a known action
    """
    if name in ACTION_ALIASES:
        return ACTION_ALIASES[name]
    try:
        return Action(name)
    except ValueError:
        supported = ", ".join(a.value for a in Action)
        raise ValueError(
            f"Unknown action: {name}. Supported: {supported}"
        ) from None


class InvocationFailed(RuntimeError):
    """An external program exited non-zero (or could not be launched)."""

    def __init__(self, program: str, exit_code: int, step: int, action: str):
        self.program = program
        self.exit_code = exit_code
        self.step = step
        self.action = action
        super().__init__(
            f"{action}: step {step} ({program}) failed with exit code {exit_code}"
        )


class MissingArtifact(FileNotFoundError):
    """The build step succeeded but the kernel image is not where it should be."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Build succeeded but kernel image not found: {path}")


@dataclass(frozen=True)
class Invocation:
    """A single external program execution.

    check=True makes the step fail-fast: a non-zero exit aborts the action.
    """
    program: str
    args: Tuple[str, ...] = ()
    check: bool = True

    @property
    def argv(self) -> List[str]:
        return [self.program] + list(self.args)


def format_size(num_bytes: int) -> str:
    """Format a byte count with binary units, e.g. "512 B", "1.50 KiB", "2 MiB"."""
    if num_bytes < 1024:
        return f"{num_bytes} B"

    value = num_bytes
    for unit in SIZE_UNITS:
        if value < 1024 * 1024:
            return _with_fraction(value, unit)
        value //= 1024

    return _with_fraction(value, "PiB")


def _with_fraction(value: int, unit: str) -> str:
    whole = value // 1024
    hundredths = (value % 1024) * 100 // 1024
    if hundredths:
        return f"{whole}.{hundredths:02d} {unit}"
    return f"{whole} {unit}"


class KernelBuilder:
    """
    Runs build actions for the kernel crate with a fixed BuildProfile.

    Each action is planned as an ordered list of Invocations (see plan())
    and executed one process at a time. Child output goes straight to the
    terminal. The first failing checked step raises InvocationFailed and
    the remaining steps are never started.

    Actions:
    - help: print the usage listing
    - build: cargo build with the profile's flags
    - run: build, then boot the image under qemu-system-i386
    - print-size: quiet build, then report the image size
    - clean: cargo clean (wipes debug and release output)
    - rebuild: clean, then build
    """

    def __init__(
        self,
        profile: BuildProfile,
        cwd: Optional[str] = None,
        stdout: Optional[TextIO] = None,
    ):
        """
        Initialize KernelBuilder.

        Args:
            profile: Resolved build profile, read-only for the builder's lifetime
            cwd: Project directory the tools run in (default: current directory)
            stdout: Stream for usage and size reports (default: sys.stdout)
        """
        self.profile = profile
        self.cwd = Path(cwd) if cwd is not None else None
        self._stdout = stdout
        self.cargo = CargoToolchain()
        self.qemu = QemuToolchain()

    def get_artifact_path(self) -> Path:
        """Return the profile's kernel image path, relative to cwd when one is set."""
        if self.cwd is None:
            return self.profile.artifact_path
        return self.cwd / self.profile.artifact_path

    def _build_invocation(self, quiet: bool = False) -> Invocation:
        return Invocation(
            self.cargo.program,
            tuple(self.cargo.get_build_args(self.profile, quiet=quiet)),
        )

    def plan(self, action: Action) -> List[Invocation]:
        """
        Return the ordered invocations for an action.

        Args:
            action: Action to plan

        Returns:
            List of Invocation, empty for help

        Raises:
            ValueError: If action is not an Action member
        """
        if action is Action.HELP:
            return []
        if action is Action.BUILD:
            return [self._build_invocation()]
        if action is Action.RUN:
            emulator = Invocation(
                self.qemu.program,
                tuple(self.qemu.get_run_args(self.profile.artifact_path)),
                check=False,
            )
            return self.plan(Action.BUILD) + [emulator]
        if action is Action.PRINT_SIZE:
            return [self._build_invocation(quiet=True)]
        if action is Action.CLEAN:
            return [Invocation(self.cargo.program, tuple(self.cargo.get_clean_args()))]
        if action is Action.REBUILD:
            return self.plan(Action.CLEAN) + self.plan(Action.BUILD)

        raise ValueError(f"Unknown action: {action!r}")

    def dispatch(self, action: Action) -> None:
        """
        Run an action to completion.

        Args:
            action: Action to run

        Raises:
            InvocationFailed: If a checked step exits non-zero or cannot be launched
            MissingArtifact: If print-size finds no kernel image after a successful build
        """
        if action is Action.HELP:
            self._write(USAGE)
            return

        invocations = self.plan(action)
        total = len(invocations)
        for step, invocation in enumerate(invocations):
            logger.info(f"[{step + 1}/{total}] {action.value}: running {invocation.program}")
            self._run_invocation(invocation, step, action)

        if action is Action.PRINT_SIZE:
            self._report_size()

        logger.info(f"[{action.value}] Done ({self.profile.name} profile)")

    def _run_invocation(self, invocation: Invocation, step: int, action: Action) -> None:
        """Run a single step and block until its process terminates.

        Raises:
            InvocationFailed: If a checked step fails or the program cannot be launched
        """
        label = action.value
        logger.debug(f"  Working directory: {self.cwd or Path.cwd()}")
        logger.debug(f"  Command: {' '.join(invocation.argv)}")

        try:
            result = subprocess.run(invocation.argv, cwd=self.cwd, check=False)
        except FileNotFoundError:
            logger.error(f"[{label}] {invocation.program} not found. Please install it.")
            raise InvocationFailed(
                invocation.program, COMMAND_NOT_FOUND, step, label
            ) from None
        except OSError as e:
            logger.error(f"[{label}] Cannot execute {invocation.program}: {e}")
            raise InvocationFailed(
                invocation.program, COMMAND_NOT_EXECUTABLE, step, label
            ) from None
        except KeyboardInterrupt:
            if invocation.check:
                raise
            # Closing the emulator with Ctrl-C ends the run normally
            logger.info(f"[{label}] {invocation.program} interrupted")
            return

        if result.returncode == 0:
            return

        if not invocation.check:
            logger.info(f"[{label}] {invocation.program} exited with code {result.returncode}")
            return

        logger.error(f"[{label}] {invocation.program} failed with exit code {result.returncode}")
        raise InvocationFailed(invocation.program, result.returncode, step, label)

    def _report_size(self) -> None:
        artifact_path = self.get_artifact_path()
        if not artifact_path.is_file():
            raise MissingArtifact(artifact_path)

        size = artifact_path.stat().st_size
        self._write(f"{self.profile.artifact_path}: {format_size(size)}\n")

    def _write(self, text: str) -> None:
        stream = self._stdout if self._stdout is not None else sys.stdout
        stream.write(text)
        stream.flush()
