#!/usr/bin/env python3
"""
cargo-axiom — command-line client and SDK for the Axiom Proving Service.

A single-file Python client (stdlib only) that packages an OpenVM guest
project, uploads it to the proving service, polls builds, proofs, executions
and verifications until they finish, and downloads the resulting artifacts.

Usage:
    cargo-axiom register --api-key <key> [--staging]
    cargo-axiom build [--bin <bin>] [--config-id <id> | --config <toml>] [--wait]
    cargo-axiom build status --program-id <id>
    cargo-axiom build download --program-id <id> --program-type <exe|elf|source|app_exe_commit|all>
    cargo-axiom prove --program-id <id> [--input <hex|file>] [--type stark|evm] [--detach]
    cargo-axiom run --program-id <id> [--input <hex|file>] [--wait]
    cargo-axiom verify --type <stark|evm> --proof <file> [--program-id <id>] [--config-id <id>]
    cargo-axiom config status [--config-id <id>]
    cargo-axiom projects list
    cargo-axiom version

When installed next to cargo the same commands run as ``cargo axiom ...``.

Also importable as a module:
    from axiom_cli import AxiomClient, load_config, submit_build
"""

from __future__ import annotations

import abc
import argparse
import contextlib
import http.client
import io
import json
import os
import re
import secrets
import shutil
import socket
import string
import subprocess
import sys
import tarfile
import textwrap
import threading
import time
import traceback
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

# ---------------------------------------------------------------------------
# Python version guard
# ---------------------------------------------------------------------------

if sys.version_info < (3, 9):
    print("Error: Python 3.9+ is required (for Path.is_relative_to).", file=sys.stderr)
    sys.exit(1)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.4.0"
OPENVM_VERSION = "v1.3.0"

PROD_API_URL = "https://api.axiom.xyz/v1"
STAGING_API_URL = "https://api.staging.app.axiom.xyz/v1"
PROD_CONSOLE_URL = "https://prove.axiom.xyz"
STAGING_CONSOLE_URL = "https://axiom-proving-service-staging.vercel.app"
DEFAULT_API_URL = PROD_API_URL

API_KEY_HEADER = "Axiom-API-Key"
CLI_VERSION_HEADER = "Axiom-CLI-Version"

CONFIG_DIR = Path.home() / ".axiom"
CONFIG_FILE = CONFIG_DIR / "config.json"
# Relative to the directory the CLI is run from
PROJECT_ID_FILE = Path(".axiom") / "project-id"
ARTIFACTS_DIR = Path("axiom-artifacts")

TARBALL_NAME = "program.tar.gz"
AXIOM_CARGO_HOME = "axiom_cargo_home"
MAX_ARCHIVE_SIZE_MB = 1024

# Toolchain pinned for dependency resolution, and the guest toolchain OpenVM builds with
REQUIRED_RUST_TOOLCHAIN = "1.85.1"
OPENVM_RUST_TOOLCHAIN = "nightly-2025-02-14"
CLOUD_TARGET = "x86_64-unknown-linux-gnu"

POLL_INTERVAL_SECS = 10
MAX_UNKNOWN_POLLS = 30
MAX_TRANSIENT_POLL_ERRORS = 5

API_TIMEOUT_SECS = 60
UPLOAD_TIMEOUT_SECS = 300
DOWNLOAD_TIMEOUT_SECS = 600
DOWNLOAD_CHUNK_SIZE = 1024 * 1024

PROGRAM_ARTIFACT_TYPES = ("exe", "elf", "source", "app_exe_commit")
BUILD_WAIT_ARTIFACTS = ("exe", "elf")
PROOF_TYPES = ("stark", "evm")
KEY_TYPES = ("app_pk", "agg_pk", "halo2_pk", "app_vk", "agg_vk")
CONFIG_ARTIFACT_FILES = {
    "config": "config.toml",
    "evm_verifier": "evm_verifier.json",
    "app_vm_commit": "app_vm_commit",
}

# Set by main() from --debug
_DEBUG = False

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AxiomError(Exception):
    """Error raised by the proving-service client, locally or from the API."""

    def __init__(self, code: str, message: str, status: int = 0, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.status = status
        self.details = details  # last status record for job failures
        super().__init__(f"[{code}] {message}")

    @property
    def transient(self) -> bool:
        """True for server-side and network failures that may clear up on retry."""
        return self.code == "connection_error" or self.status >= 500


# ---------------------------------------------------------------------------
# Config helpers
# ---------------------------------------------------------------------------


def _default_config() -> Dict[str, Any]:
    return {
        "api_url": DEFAULT_API_URL,
        "api_key": None,
        "config_id": None,
        "console_base_url": None,
    }


def load_config(validate: bool = False) -> Dict[str, Any]:
    """Load ~/.axiom/config.json merged over the defaults.

    With validate=True, raise AxiomError("uninitialized") when no API key is
    stored, before anything touches the network.
    """
    cfg = _default_config()
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                print("Warning: Config file corrupted, using defaults", file=sys.stderr)
                data = {}
        if isinstance(data, dict):
            cfg.update(data)
    if validate and not cfg.get("api_key"):
        raise AxiomError(
            "uninitialized",
            "Axiom CLI is not initialized: no API key found. Run 'cargo axiom register' first.",
        )
    return cfg


def save_config(cfg: Dict[str, Any]) -> None:
    """Write config to ~/.axiom/config.json, creating dirs as needed."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_FILE, "w") as f:
        json.dump(cfg, f, indent=2)
        f.write("\n")
    # The file holds the API key
    os.chmod(CONFIG_FILE, 0o600)


def resolve_config_id(explicit: Optional[str], cfg: Optional[Dict[str, Any]] = None) -> str:
    """Return the config ID to use for a request.

    An explicit ID also becomes the stored default. Without one, the stored
    default is used; if there is none either, raise AxiomError("no_config_id").
    """
    if cfg is None:
        cfg = load_config()
    if explicit:
        cfg["config_id"] = explicit
        save_config(cfg)
        return explicit
    stored = cfg.get("config_id")
    if not stored:
        raise AxiomError(
            "no_config_id",
            f"No config ID provided and no default config_id in {CONFIG_FILE}. Use --config-id to specify one.",
        )
    return stored


def get_project_id(explicit: Optional[str] = None) -> Optional[str]:
    """Explicit project ID, else the one cached in ./.axiom/project-id."""
    if explicit:
        return explicit
    path = Path.cwd() / PROJECT_ID_FILE
    if path.is_file():
        value = path.read_text(encoding="utf-8").strip()
        return value or None
    return None


def set_project_id(project_id: str) -> Path:
    path = Path.cwd() / PROJECT_ID_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(project_id + "\n", encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

# ANSI colours (disabled if not a TTY)
_USE_COLOR = hasattr(sys.stdout, "isatty") and sys.stdout.isatty() and not os.environ.get("NO_COLOR")


def _c(code: str, text: str) -> str:
    if _USE_COLOR:
        return f"\033[{code}m{text}\033[0m"
    return text


def red(t: str) -> str:
    return _c("31", t)


def yellow(t: str) -> str:
    return _c("33", t)


def green(t: str) -> str:
    return _c("32", t)


def blue(t: str) -> str:
    return _c("34", t)


def cyan(t: str) -> str:
    return _c("36", t)


def bold(t: str) -> str:
    return _c("1", t)


def dim(t: str) -> str:
    return _c("2", t)


def format_bytes(n: float) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024 or unit == "GB":
            return f"{n:.0f} {unit}" if unit == "B" else f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} GB"


def calculate_duration(start: str, end: str) -> str:
    """Human duration between two RFC 3339 timestamps, e.g. '2m 5s'."""
    seconds = int((_parse_timestamp(end) - _parse_timestamp(start)).total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m {seconds % 60}s"


def _parse_timestamp(value: str) -> datetime:
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    # fromisoformat on older interpreters only takes up to microseconds
    value = re.sub(r"(\.\d{6})\d+", r"\1", value)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise AxiomError("invalid_timestamp", f"Invalid timestamp: {value}")


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _print_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
    cells = [[("-" if v is None or v == "" else str(v)) for v in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, v in enumerate(row):
            widths[i] = max(widths[i], len(v))
    print("  " + " ".join(f"{h:<{widths[i]}}" for i, h in enumerate(headers)))
    print("  " + " ".join("─" * w for w in widths))
    for row in cells:
        print("  " + " ".join(f"{v:<{widths[i]}}" for i, v in enumerate(row)))


# ---------------------------------------------------------------------------
# Progress reporting
# ---------------------------------------------------------------------------


class ProgressReporter(abc.ABC):
    """Sink for user feedback emitted by the SDK.

    The archive builder and the submission/polling pipeline only talk to this
    interface, so the same code drives the terminal renderer and the silent
    reporter used for --json output.
    """

    @abc.abstractmethod
    def on_header(self, text: str) -> None: ...

    @abc.abstractmethod
    def on_success(self, text: str) -> None: ...

    @abc.abstractmethod
    def on_info(self, text: str) -> None: ...

    @abc.abstractmethod
    def on_warning(self, text: str) -> None: ...

    @abc.abstractmethod
    def on_error(self, text: str) -> None: ...

    @abc.abstractmethod
    def on_section(self, title: str) -> None: ...

    @abc.abstractmethod
    def on_field(self, key: str, value: str) -> None: ...

    @abc.abstractmethod
    def on_status(self, text: str) -> None:
        """Transient one-line status, overwritten by the next one."""

    @abc.abstractmethod
    def on_progress_start(self, message: str, total: Optional[int] = None) -> None:
        """Start a byte progress bar (known total) or a spinner (total=None)."""

    @abc.abstractmethod
    def on_progress_update(self, current: int) -> None: ...

    @abc.abstractmethod
    def on_progress_update_message(self, message: str) -> None: ...

    @abc.abstractmethod
    def on_progress_finish(self, message: str = "") -> None: ...

    @abc.abstractmethod
    def on_clear_line(self) -> None: ...

    @abc.abstractmethod
    def on_clear_line_and_reset(self) -> None: ...


class SilentReporter(ProgressReporter):
    """Drops every event. Used when output must stay machine-readable."""

    def on_header(self, text: str) -> None:
        pass

    def on_success(self, text: str) -> None:
        pass

    def on_info(self, text: str) -> None:
        pass

    def on_warning(self, text: str) -> None:
        pass

    def on_error(self, text: str) -> None:
        pass

    def on_section(self, title: str) -> None:
        pass

    def on_field(self, key: str, value: str) -> None:
        pass

    def on_status(self, text: str) -> None:
        pass

    def on_progress_start(self, message: str, total: Optional[int] = None) -> None:
        pass

    def on_progress_update(self, current: int) -> None:
        pass

    def on_progress_update_message(self, message: str) -> None:
        pass

    def on_progress_finish(self, message: str = "") -> None:
        pass

    def on_clear_line(self) -> None:
        pass

    def on_clear_line_and_reset(self) -> None:
        pass


SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
_CLEAR_LINE = "\r\033[K"


class _ProgressBar:
    """State of one spinner or byte bar; rendering is done by TerminalReporter."""

    WIDTH = 30

    def __init__(self, message: str, total: Optional[int]):
        self.message = message
        self.total = total
        self.position = 0
        self.frame = 0
        self.started = time.monotonic()
        self.last_draw = 0.0

    def render(self) -> str:
        if self.total:
            fraction = min(1.0, self.position / self.total)
            filled = int(self.WIDTH * fraction)
            bar = "█" * filled + "░" * (self.WIDTH - filled)
            return (
                f"{self.message} [{cyan(bar)}] "
                f"{format_bytes(self.position)}/{format_bytes(self.total)} ({fraction * 100:.0f}%)"
            )
        glyph = SPINNER_FRAMES[self.frame % len(SPINNER_FRAMES)]
        self.frame += 1
        elapsed = int(time.monotonic() - self.started)
        return f"{cyan(glyph)} {self.message} {dim(f'({elapsed}s)')}"


class TerminalReporter(ProgressReporter):
    """Coloured terminal output with spinners and byte progress bars."""

    # Redraw limit for byte bars; uploads report every 8 KiB read
    REDRAW_INTERVAL = 0.1

    def __init__(self, stream=None):
        self._stream = stream
        self._lock = threading.Lock()
        self._bar: Optional[_ProgressBar] = None

    @property
    def stream(self):
        return self._stream or sys.stdout

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def _println(self, text: str = "") -> None:
        print(text, file=self.stream)

    def on_header(self, text: str) -> None:
        self._println(f"\n{bold(text)}")

    def on_success(self, text: str) -> None:
        self._println(f"{green('✓')} {text}")

    def on_info(self, text: str) -> None:
        self._println(f"{blue('ℹ')} {text}")

    def on_warning(self, text: str) -> None:
        self._println(f"{yellow('⚠')} {yellow(text)}")

    def on_error(self, text: str) -> None:
        self._println(f"{red('✗')} {red(text)}")

    def on_section(self, title: str) -> None:
        self._println(f"\n{bold(title)}:")

    def on_field(self, key: str, value: str) -> None:
        self._println(f"  {key}: {value}")

    def on_status(self, text: str) -> None:
        self._write(f"{_CLEAR_LINE}{text}")

    def on_progress_start(self, message: str, total: Optional[int] = None) -> None:
        with self._lock:
            self._bar = _ProgressBar(message, total)
            self._draw(force=True)

    def on_progress_update(self, current: int) -> None:
        with self._lock:
            if self._bar is None:
                return
            self._bar.position = current
            self._draw(force=bool(self._bar.total) and current >= self._bar.total)

    def on_progress_update_message(self, message: str) -> None:
        with self._lock:
            if self._bar is None:
                return
            self._bar.message = message
            self._draw(force=True)

    def on_progress_finish(self, message: str = "") -> None:
        with self._lock:
            bar, self._bar = self._bar, None
            if bar is None:
                return
            self._write(_CLEAR_LINE)
            if message:
                self._println(message)

    def on_clear_line(self) -> None:
        self._write(_CLEAR_LINE)

    def on_clear_line_and_reset(self) -> None:
        self._write(_CLEAR_LINE + "\n")

    def _draw(self, force: bool = False) -> None:
        # Caller holds self._lock
        now = time.monotonic()
        if not force and now - self._bar.last_draw < self.REDRAW_INTERVAL:
            return
        self._bar.last_draw = now
        self._write(f"{_CLEAR_LINE}{self._bar.render()}")


# ---------------------------------------------------------------------------
# Program input
# ---------------------------------------------------------------------------


def decode_hex_string(s: str) -> bytes:
    """
    Decode one program input value.

    '01…' is raw bytes, '02…' is native field elements written as little
    endian u32 words, so the payload after '02' must be whole 32-bit words.
    A single leading '0x' is accepted.
    """
    if s.startswith("0x"):
        s = s[2:]
    if len(s) % 2 != 0:
        raise AxiomError("invalid_input", "The hex string must be of even length")
    if not s or not all(c in string.hexdigits for c in s):
        raise AxiomError("invalid_input", "The hex string must consist of hex digits")
    if s.startswith("02"):
        if len(s) % 8 != 2:
            raise AxiomError(
                "invalid_input",
                "If the hex value starts with 02, a whole number of 32-bit elements must follow",
            )
    elif not s.startswith("01"):
        raise AxiomError("invalid_input", "The hex value must start with 01 or 02")
    return bytes.fromhex(s)


class ProgramInput:
    """Program input given on the command line: hex bytes or a JSON file."""

    def __init__(self, kind: str, value: Union[bytes, Path]):
        self.kind = kind  # "hex" or "file"
        self.value = value

    def __repr__(self) -> str:
        return f"ProgramInput({self.kind!r}, {self.value!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ProgramInput) and (self.kind, self.value) == (other.kind, other.value)


def parse_input(value: str) -> ProgramInput:
    """Interpret --input as a hex string if it is one, else as a file path."""
    try:
        return ProgramInput("hex", decode_hex_string(value))
    except AxiomError as hex_err:
        path = Path(value)
        if path.exists():
            return ProgramInput("file", path)
        raise AxiomError(
            "invalid_input",
            f"Input must be a valid file path or a hex string of even length ({hex_err.message}).",
        )


def validate_input_json(data: Any) -> Dict[str, Any]:
    """Accept {"input": [hex, ...]} or a bare [hex, ...]; validate each value."""
    if isinstance(data, list):
        data = {"input": data}
    if not isinstance(data, dict) or not isinstance(data.get("input"), list):
        raise AxiomError("invalid_input", 'Input JSON must be an array of hex strings or {"input": [...]}')
    for i, item in enumerate(data["input"]):
        if not isinstance(item, str):
            raise AxiomError("invalid_input", f"Input value #{i} must be a hex string")
        try:
            decode_hex_string(item)
        except AxiomError as e:
            raise AxiomError("invalid_input", f"Input value #{i} is invalid: {e.message}")
    return data


def input_to_json(program_input: Optional[ProgramInput]) -> Dict[str, Any]:
    """Request-body form of the input: {"input": ["0x01…", …]}."""
    if program_input is None:
        return {"input": []}
    if program_input.kind == "file":
        path = Path(program_input.value)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise AxiomError("invalid_input", f"Failed to read input file: {path}: {e}")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise AxiomError("invalid_input", f"Failed to parse input file as JSON: {path}: {e}")
        return validate_input_json(data)
    return {"input": ["0x" + bytes(program_input.value).hex()]}


# ---------------------------------------------------------------------------
# Job status model
# ---------------------------------------------------------------------------

QUEUED = "queued"
IN_PROGRESS = "in_progress"
READY = "ready"
FAILED = "failed"
CANCELED = "canceled"
UNKNOWN = "unknown"


class JobStatus:
    """Closed status variant for a server-side job.

    ``raw`` keeps the server's string; ``reason`` is set for FAILED.
    """

    __slots__ = ("state", "raw", "reason")

    def __init__(self, state: str, raw: str, reason: Optional[str] = None):
        self.state = state
        self.raw = raw
        self.reason = reason

    @property
    def terminal(self) -> bool:
        return self.state in (READY, FAILED, CANCELED)

    def __repr__(self) -> str:
        return f"JobStatus({self.state!r}, raw={self.raw!r}, reason={self.reason!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JobStatus):
            return NotImplemented
        return (self.state, self.raw, self.reason) == (other.state, other.raw, other.reason)


BUILD_STATES = {
    "not_ready": QUEUED,
    "processing": IN_PROGRESS,
    "ready": READY,
    "error": FAILED,
    "failed": FAILED,
}
PROOF_STATES = {
    "Queued": QUEUED,
    "InProgress": IN_PROGRESS,
    "Canceling": IN_PROGRESS,
    "Succeeded": READY,
    "Failed": FAILED,
    "Canceled": CANCELED,
}
EXECUTION_STATES = PROOF_STATES
VERIFY_STATES = {
    "processing": IN_PROGRESS,
    "verified": READY,
    "failed": FAILED,
}


def _classify(record: Dict[str, Any], field: str, table: Dict[str, str], default_reason: str) -> JobStatus:
    raw = record.get(field)
    raw = "" if raw is None else str(raw)
    state = table.get(raw, UNKNOWN)
    reason = (record.get("error_message") or default_reason) if state == FAILED else None
    return JobStatus(state, raw, reason)


def classify_build_status(record: Dict[str, Any]) -> JobStatus:
    return _classify(record, "status", BUILD_STATES, "Unknown error")


def classify_proof_status(record: Dict[str, Any]) -> JobStatus:
    return _classify(record, "state", PROOF_STATES, "Unknown error")


def classify_execution_status(record: Dict[str, Any]) -> JobStatus:
    return _classify(record, "status", EXECUTION_STATES, "Unknown error")


def classify_verify_status(record: Dict[str, Any]) -> JobStatus:
    return _classify(record, "result", VERIFY_STATES, "proof is invalid")


def classify_cancellation(record: Dict[str, Any]) -> JobStatus:
    """Proof status seen from a cancel request: Canceled is the goal."""
    raw = str(record.get("state") or "")
    if raw == "Canceled":
        return JobStatus(READY, raw)
    if raw == "Succeeded":
        return JobStatus(FAILED, raw, "proof completed successfully before cancellation could take effect")
    if raw == "Failed":
        return JobStatus(FAILED, raw, record.get("error_message") or "Unknown error")
    if raw in PROOF_STATES:
        return JobStatus(IN_PROGRESS, raw)
    return JobStatus(UNKNOWN, raw)


# ---------------------------------------------------------------------------
# Archive creation
# ---------------------------------------------------------------------------


def _run(cmd: List[str], cwd: Path, env: Optional[Dict[str, str]] = None) -> subprocess.CompletedProcess:
    """Run a toolchain command and capture its output."""
    if _DEBUG:
        print(dim(f"$ (cd {cwd} && {' '.join(cmd)})"), file=sys.stderr)
    try:
        return subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        raise AxiomError("tool_not_found", f"'{cmd[0]}' was not found on PATH")


def _tail(text: str, lines: int = 10) -> str:
    return "\n".join((text or "").strip().splitlines()[-lines:])


def find_git_root(start: Union[str, Path]) -> Path:
    """Walk up from start to the directory holding .git/."""
    cur = Path(start).resolve()
    for p in [cur] + list(cur.parents):
        if (p / ".git").is_dir():
            return p
    raise AxiomError(
        "not_git_repo",
        "Not in a git repository. Please run this command from within a git repository.",
    )


def find_cargo_workspace_root(start: Union[str, Path]) -> Path:
    """
    Walk up from start looking for the cargo workspace root.

    The first Cargo.toml declaring [workspace] wins; otherwise the topmost
    directory holding a Cargo.toml.
    """
    cur = Path(start).resolve()
    last_cargo_dir: Optional[Path] = None
    for p in [cur] + list(cur.parents):
        cargo_toml = p / "Cargo.toml"
        if cargo_toml.is_file():
            if "[workspace]" in cargo_toml.read_text(encoding="utf-8", errors="replace"):
                return p
            last_cargo_dir = p
    if last_cargo_dir is None:
        raise AxiomError("not_cargo_project", "Not in a Cargo project")
    return last_cargo_dir


def check_git_clean(git_root: Path) -> bool:
    proc = _run(["git", "status", "--porcelain"], cwd=git_root)
    if proc.returncode != 0:
        raise AxiomError("git_failed", f"Failed to check git status: {_tail(proc.stderr)}")
    return not proc.stdout.strip()


def get_git_commit_sha(git_root: Path) -> str:
    """Read the checked-out commit from .git/HEAD without calling git."""
    git_dir = Path(git_root) / ".git"
    try:
        head = (git_dir / "HEAD").read_text(encoding="utf-8").strip()
    except OSError:
        raise AxiomError("git_failed", "Failed to read .git/HEAD")
    if head.startswith("ref: "):
        ref = head[len("ref: "):]
        ref_file = git_dir / ref
        if ref_file.is_file():
            sha = ref_file.read_text(encoding="utf-8").strip()
        else:
            sha = ""
            packed = git_dir / "packed-refs"
            if packed.is_file():
                for line in packed.read_text(encoding="utf-8").splitlines():
                    parts = line.split()
                    if len(parts) == 2 and parts[1] == ref:
                        sha = parts[0]
                        break
        if not sha:
            raise AxiomError("git_failed", f"Got empty commit SHA from git reference {ref}")
        return sha
    if len(head) == 40 and all(c in string.hexdigits for c in head):
        return head
    raise AxiomError("git_failed", f"Unexpected format in .git/HEAD: {head}")


def list_tracked_files(git_root: Path) -> Set[str]:
    """Paths (posix, relative to git_root) that git tracks."""
    proc = _run(["git", "ls-files", "-z"], cwd=git_root)
    if proc.returncode != 0:
        raise AxiomError("git_failed", f"Failed to get git tracked files: {_tail(proc.stderr)}")
    return {p for p in proc.stdout.split("\0") if p}


def _cargo_metadata(program_dir: Path) -> Dict[str, Any]:
    proc = _run(["cargo", "metadata", "--format-version", "1", "--no-deps"], cwd=program_dir)
    if proc.returncode != 0:
        raise AxiomError("cargo_failed", f"Failed to read cargo metadata: {_tail(proc.stderr)}")
    try:
        return json.loads(proc.stdout)
    except json.JSONDecodeError:
        raise AxiomError("cargo_failed", "cargo metadata returned invalid JSON")


def resolve_binary(
    program_dir: Union[str, Path],
    requested: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """
    Pick the binary target to build.

    Considers the innermost workspace package containing program_dir, or every
    workspace package when run from the workspace root. A single binary is
    used as-is (and must match ``requested`` if given); several binaries
    require ``requested``. Returns None for library-only packages.
    """
    program_dir = Path(program_dir).resolve()
    if metadata is None:
        metadata = _cargo_metadata(program_dir)

    members = set(metadata.get("workspace_members") or [])
    packages = [p for p in metadata.get("packages", []) if not members or p.get("id") in members]
    containing = [
        p for p in packages
        if program_dir.is_relative_to(Path(p["manifest_path"]).parent.resolve())
    ]
    if containing:
        candidates = [max(containing, key=lambda p: len(p["manifest_path"]))]
    elif program_dir == Path(metadata.get("workspace_root", "")).resolve():
        candidates = packages
    else:
        raise AxiomError(
            "ambiguous_package",
            "Could not determine which Cargo package to build. "
            "Please run this command from a package directory or the workspace root.",
        )

    binaries = [
        t["name"]
        for p in candidates
        for t in p.get("targets", [])
        if "bin" in t.get("kind", [])
    ]
    if len(binaries) > 1:
        if requested is None:
            raise AxiomError(
                "ambiguous_binary",
                "Multiple binaries found. Please specify which one to build with the --bin flag. "
                f"Available binaries: {', '.join(binaries)}",
            )
        if requested not in binaries:
            raise AxiomError(
                "binary_not_found",
                f"Binary '{requested}' not found. Available binaries: {', '.join(binaries)}",
            )
        return requested
    if binaries:
        if requested is not None and requested != binaries[0]:
            raise AxiomError(
                "binary_not_found",
                f"Binary '{requested}' not found. Available binary: {binaries[0]}",
            )
        return binaries[0]
    return None


def check_toolchain(toolchain: str, cwd: Path) -> None:
    proc = _run(["cargo", f"+{toolchain}", "--version"], cwd=cwd)
    if proc.returncode != 0:
        raise AxiomError(
            "toolchain_missing",
            f"Rust toolchain '{toolchain}' is not installed. Run 'rustup toolchain install {toolchain}'.",
        )


def prefetch_dependencies(
    workspace_root: Path,
    cargo_home: Path,
    required_toolchain: str = REQUIRED_RUST_TOOLCHAIN,
    openvm_toolchain: str = OPENVM_RUST_TOOLCHAIN,
) -> None:
    """
    Fetch every cargo dependency into cargo_home so private and registry
    crates travel with the archive.

    Three passes: the cloud target, the host (cargo resolves host-only
    dependencies even when they are not compiled), and the guest toolchain
    for its std components.
    """
    for toolchain in dict.fromkeys((required_toolchain, openvm_toolchain)):
        check_toolchain(toolchain, workspace_root)

    env = dict(os.environ, CARGO_HOME=str(cargo_home))
    passes = [
        [f"+{required_toolchain}", "fetch", "--target", CLOUD_TARGET],
        [f"+{required_toolchain}", "fetch"],
        [f"+{openvm_toolchain}", "fetch"],
    ]
    for args in passes:
        proc = _run(["cargo"] + args, cwd=workspace_root, env=env)
        if proc.returncode != 0:
            raise AxiomError(
                "fetch_failed",
                f"Failed to fetch cargo dependencies (cargo {' '.join(args)}):\n{_tail(proc.stderr)}",
            )


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [s.strip() for s in value.split(",") if s.strip()]


def _under_dir(rel: str, directory: str) -> bool:
    directory = directory.strip().rstrip("/")
    if directory.startswith("./"):
        directory = directory[2:]
    return bool(directory) and (rel == directory or rel.startswith(directory + "/"))


def collect_archive_entries(
    git_root: Path,
    tracked: Set[str],
    include_dirs: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
    skip: Optional[Path] = None,
) -> List[Tuple[Path, str]]:
    """
    Walk git_root and return (absolute path, posix relative path) of every
    file that belongs in the archive.

    A file is included when git tracks it, it sits under an include dir, or
    it sits under the scratch cargo home. Any exclude pattern that is a
    substring of the relative path drops it (directories too), and exclusion
    wins over inclusion.
    """
    git_root = Path(git_root)
    entries: List[Tuple[Path, str]] = []
    for dirpath, dirnames, filenames in os.walk(git_root):
        rel_dir = Path(dirpath).relative_to(git_root)
        dirnames[:] = sorted(
            d for d in dirnames
            if not (rel_dir == Path(".") and d == ".git")
            and not any(p in (rel_dir / d).as_posix() for p in exclude_patterns)
        )
        for fname in sorted(filenames):
            fpath = Path(dirpath) / fname
            rel = (rel_dir / fname).as_posix()
            if skip is not None and fpath == skip:
                continue
            if not fpath.is_file():
                continue
            included = (
                rel in tracked
                or any(_under_dir(rel, d) for d in include_dirs)
                or AXIOM_CARGO_HOME in Path(rel).parts
            )
            if included and not any(p in rel for p in exclude_patterns):
                entries.append((fpath, rel))
    return entries


def _has_tracked(tracked: Iterable[str], filename: str) -> bool:
    return any(p == filename or p.endswith("/" + filename) for p in tracked)


def create_tar_archive(
    program_dir: Union[str, Path],
    exclude_patterns: Sequence[str] = (),
    include_dirs: Sequence[str] = (),
    required_toolchain: str = REQUIRED_RUST_TOOLCHAIN,
    openvm_toolchain: str = OPENVM_RUST_TOOLCHAIN,
    prefetch: bool = True,
) -> Path:
    """
    Build program.tar.gz in program_dir from the git tree around it.

    Entries are stored as '<git root name>/<path>' with zeroed ownership and
    timestamps. The scratch cargo home is always removed before returning;
    the archive is removed on any failure, including the size limit.
    """
    program_dir = Path(program_dir).resolve()
    git_root = find_git_root(program_dir)
    workspace_root = find_cargo_workspace_root(program_dir)

    tracked = list_tracked_files(git_root)
    if not _has_tracked(tracked, "Cargo.toml") or not _has_tracked(tracked, "Cargo.lock"):
        raise AxiomError(
            "missing_lockfile",
            "Cargo.toml and Cargo.lock are required and should be tracked by git",
        )

    tar_path = program_dir / TARBALL_NAME
    cargo_home = workspace_root / AXIOM_CARGO_HOME
    cargo_home.mkdir(parents=True, exist_ok=True)
    try:
        if prefetch:
            prefetch_dependencies(workspace_root, cargo_home, required_toolchain, openvm_toolchain)
        entries = collect_archive_entries(git_root, tracked, include_dirs, exclude_patterns, skip=tar_path)
        try:
            with tarfile.open(tar_path, mode="w:gz") as tar:
                for fpath, rel in entries:
                    with open(fpath, "rb") as f:
                        info = tar.gettarinfo(arcname=f"{git_root.name}/{rel}", fileobj=f)
                        info.uid = 0
                        info.gid = 0
                        info.uname = ""
                        info.gname = ""
                        info.mtime = 0
                        tar.addfile(info, f)
        except BaseException:
            tar_path.unlink(missing_ok=True)
            raise
    finally:
        shutil.rmtree(cargo_home, ignore_errors=True)

    size = tar_path.stat().st_size
    if size > MAX_ARCHIVE_SIZE_MB * 1024 * 1024:
        tar_path.unlink(missing_ok=True)
        raise AxiomError(
            "archive_too_large",
            f"Project archive size ({format_bytes(size)}) exceeds maximum allowed size of {MAX_ARCHIVE_SIZE_MB}MB",
        )
    return tar_path


@contextlib.contextmanager
def project_archive(program_dir: Union[str, Path], keep_tarball: bool = False, **kwargs: Any):
    """create_tar_archive() as a context manager that deletes the archive on exit."""
    tar_path = create_tar_archive(program_dir, **kwargs)
    try:
        yield tar_path
    finally:
        if not keep_tarball:
            tar_path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Multipart upload body
# ---------------------------------------------------------------------------


class MultipartStream:
    """
    multipart/form-data body read lazily from memory and disk.

    urllib sends file-like bodies by calling read() in blocks, so each read
    doubles as an upload progress tick via ``on_read(total_bytes_sent)``.
    """

    def __init__(self, segments: List[Union[bytes, Path]], on_read: Optional[Callable[[int], None]] = None):
        self._segments = segments
        self._index = 0
        self._current = None
        self._on_read = on_read
        self.sent = 0
        self.length = sum(len(s) if isinstance(s, bytes) else s.stat().st_size for s in segments)

    def read(self, size: int = -1) -> bytes:
        chunks: List[bytes] = []
        remaining = size if size is not None and size > 0 else None
        while self._index < len(self._segments):
            if self._current is None:
                seg = self._segments[self._index]
                self._current = io.BytesIO(seg) if isinstance(seg, bytes) else open(seg, "rb")
            data = self._current.read(-1 if remaining is None else remaining)
            if data:
                chunks.append(data)
                if remaining is not None:
                    remaining -= len(data)
                    if remaining == 0:
                        break
            else:
                self._current.close()
                self._current = None
                self._index += 1
        out = b"".join(chunks)
        if out:
            self.sent += len(out)
            if self._on_read is not None:
                self._on_read(self.sent)
        return out

    def close(self) -> None:
        if self._current is not None:
            self._current.close()
            self._current = None


def build_multipart(
    fields: List[Tuple[str, str, Union[bytes, Path], str]],
    on_read: Optional[Callable[[int], None]] = None,
) -> Tuple[MultipartStream, str]:
    """
    Build a streaming multipart/form-data body.

    Each field is (name, filename_or_empty, bytes_or_path, content_type).
    Returns (body_stream, content_type_header).
    """
    boundary = f"----AxiomBoundary{secrets.token_hex(16)}"
    segments: List[Union[bytes, Path]] = []
    for name, filename, data, ct in fields:
        # Strip CRLF so names cannot inject headers
        safe_name = name.replace("\r", "").replace("\n", "")
        header_lines = [f"--{boundary}"]
        if filename:
            safe_filename = filename.replace("\\", "\\\\").replace('"', '\\"')
            safe_filename = safe_filename.replace("\r", "").replace("\n", "")
            header_lines.append(f'Content-Disposition: form-data; name="{safe_name}"; filename="{safe_filename}"')
        else:
            header_lines.append(f'Content-Disposition: form-data; name="{safe_name}"')
        header_lines.append(f"Content-Type: {ct}")
        header_lines.append("")
        segments.append("\r\n".join(header_lines).encode("utf-8") + b"\r\n")
        segments.append(data)
        segments.append(b"\r\n")
    segments.append(f"--{boundary}--\r\n".encode("utf-8"))
    return MultipartStream(segments, on_read=on_read), f"multipart/form-data; boundary={boundary}"


# ---------------------------------------------------------------------------
# HTTP API Client
# ---------------------------------------------------------------------------


def program_artifacts_dir(program_id: str) -> Path:
    return ARTIFACTS_DIR / f"program-{program_id}" / "artifacts"


def proof_artifacts_dir(program_uuid: Optional[str], proof_id: str) -> Path:
    if not program_uuid:
        return ARTIFACTS_DIR / "proofs" / proof_id
    return ARTIFACTS_DIR / f"program-{program_uuid}" / "proofs" / proof_id


def run_artifacts_dir(program_uuid: str, execution_id: str) -> Path:
    return ARTIFACTS_DIR / f"program-{program_uuid}" / "runs" / execution_id


def config_artifacts_dir(config_id: str) -> Path:
    return ARTIFACTS_DIR / "configs" / config_id


# Failures raised while the response is being read; urlopen only wraps
# those that happen while connecting.
_CONNECTION_ERRORS = (http.client.HTTPException, ConnectionError, socket.timeout, TimeoutError)


def _http_error(e: urllib.error.HTTPError, context: str) -> AxiomError:
    try:
        error_body = e.read().decode("utf-8", errors="replace")
    except Exception:
        error_body = ""
    if 400 <= e.code < 500:
        return AxiomError("client_error", f"{context}: Client error ({e.code}): {error_body}", e.code)
    return AxiomError("server_error", f"{context}: request failed with status: {e.code}", e.code)


class AxiomClient:
    """
    HTTP client for the Axiom Proving Service API.

    Uses only urllib (stdlib). The CLI version sent with every request is a
    constructor argument; feedback goes to ``reporter``.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        cli_version: str = VERSION,
        reporter: Optional[ProgressReporter] = None,
        api_url: Optional[str] = None,
    ):
        self.config = config if config is not None else _default_config()
        api_url = api_url or self.config.get("api_url") or DEFAULT_API_URL
        self.api_url = api_url.rstrip("/")
        # Reject insecure HTTP connections (allow localhost/127.0.0.1 for dev)
        if not self.api_url.startswith("https://"):
            parsed = urllib.parse.urlparse(self.api_url)
            if parsed.hostname not in ("localhost", "127.0.0.1"):
                raise AxiomError(
                    "insecure_connection",
                    f"Refusing to connect over insecure HTTP to {self.api_url}. Use HTTPS.",
                )
        self.api_key: Optional[str] = self.config.get("api_key")
        self.cli_version = cli_version
        self.reporter = reporter or SilentReporter()

    # -- Low-level request --------------------------------------------------

    def _headers(self, auth: bool = True) -> Dict[str, str]:
        hdrs = {"User-Agent": f"cargo-axiom/{self.cli_version}"}
        if self.cli_version:
            hdrs[CLI_VERSION_HEADER] = self.cli_version
        if auth:
            if not self.api_key:
                raise AxiomError(
                    "uninitialized",
                    "API key not set. Run 'cargo axiom register' first.",
                )
            hdrs[API_KEY_HEADER] = self.api_key
        return hdrs

    def _url(self, path: str, query: Optional[Dict[str, Any]] = None) -> str:
        url = self.api_url + path
        if query:
            params = {k: str(v) for k, v in query.items() if v is not None}
            if params:
                url += "?" + urllib.parse.urlencode(params)
        return url

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Optional[Dict[str, Any]] = None,
        body: Union[bytes, MultipartStream, None] = None,
        content_type: Optional[str] = None,
        auth: bool = True,
        context: str = "Request failed",
        timeout: int = API_TIMEOUT_SECS,
    ) -> Any:
        """
        Make an HTTP request and return the parsed JSON response.

        4xx responses raise client_error with the server's text verbatim,
        anything else unsuccessful raises server_error.
        """
        hdrs = self._headers(auth)
        if content_type:
            hdrs["Content-Type"] = content_type
        if isinstance(body, MultipartStream):
            hdrs["Content-Length"] = str(body.length)

        req = urllib.request.Request(self._url(path, query), data=body, headers=hdrs, method=method)

        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                data = resp.read()
                if not data.strip():
                    return {}
                try:
                    return json.loads(data)
                except json.JSONDecodeError:
                    raise AxiomError("invalid_response", f"{context}: server returned invalid JSON: {data[:200]!r}")
        except urllib.error.HTTPError as e:
            raise _http_error(e, context)
        except urllib.error.URLError as e:
            raise AxiomError("connection_error", f"{context}: cannot connect to {self.api_url}: {e.reason}")
        except _CONNECTION_ERRORS as e:
            raise AxiomError("connection_error", f"{context}: connection to {self.api_url} failed: {e!r}")
        finally:
            if isinstance(body, MultipartStream):
                body.close()

    def _download(
        self,
        path: str,
        dest: Union[str, Path],
        *,
        context: str,
        label: Optional[str] = None,
        url: Optional[str] = None,
        auth: bool = True,
    ) -> Path:
        """Stream a response body into dest, creating parent directories."""
        dest = Path(dest)
        partial = dest.with_name(dest.name + ".part")
        req = urllib.request.Request(url or self._url(path), headers=self._headers(auth), method="GET")
        bar_started = False
        try:
            with urllib.request.urlopen(req, timeout=DOWNLOAD_TIMEOUT_SECS) as resp:
                dest.parent.mkdir(parents=True, exist_ok=True)
                length = resp.headers.get("Content-Length") if resp.headers else None
                total = int(length) if length and str(length).isdigit() else None
                if label:
                    self.reporter.on_progress_start(label, total)
                    bar_started = True
                written = 0
                with open(partial, "wb") as f:
                    while True:
                        chunk = resp.read(DOWNLOAD_CHUNK_SIZE)
                        if not chunk:
                            break
                        f.write(chunk)
                        written += len(chunk)
                        if bar_started:
                            self.reporter.on_progress_update(written)
            # Only a complete body ever appears at dest
            partial.replace(dest)
        except urllib.error.HTTPError as e:
            raise _http_error(e, context)
        except urllib.error.URLError as e:
            raise AxiomError("connection_error", f"{context}: cannot connect to {self.api_url}: {e.reason}")
        except _CONNECTION_ERRORS as e:
            raise AxiomError("connection_error", f"{context}: connection to {self.api_url} failed: {e!r}")
        finally:
            partial.unlink(missing_ok=True)
            if bar_started:
                self.reporter.on_progress_finish("")
        return dest

    # -- Account ------------------------------------------------------------

    def validate_api_key(self) -> Dict[str, Any]:
        """GET /validate_api_key"""
        return self._request("GET", "/validate_api_key", context="Failed to validate API key")

    # -- Programs (builds) --------------------------------------------------

    def list_programs(self, page: int = 1, page_size: int = 20, project_id: Optional[str] = None) -> Dict[str, Any]:
        """GET /programs — {"items": [...], "pagination": {...}}"""
        query = {"project_id": project_id, "page": page, "page_size": page_size}
        context = "Failed to list project programs" if project_id else "Failed to list programs"
        return self._request("GET", "/programs", query=query, context=context)

    def get_build_status(self, program_id: str) -> Dict[str, Any]:
        """GET /programs/{id}"""
        return self._request("GET", f"/programs/{program_id}", context="Failed to get build status")

    def submit_program(
        self,
        tar_path: Union[str, Path],
        query: Dict[str, Any],
        config_path: Optional[Union[str, Path]] = None,
    ) -> str:
        """POST /programs — upload a source archive (multipart) and return the program ID."""
        fields: List[Tuple[str, str, Union[bytes, Path], str]] = [
            ("program", TARBALL_NAME, Path(tar_path), "application/gzip"),
        ]
        if config_path:
            config_path = Path(config_path)
            try:
                content = config_path.read_bytes()
            except OSError:
                raise AxiomError("invalid_config_file", f"Failed to read OpenVM config file at: {config_path}")
            fields.append(("config", config_path.name, content, "application/octet-stream"))

        body, ct = build_multipart(fields, on_read=self.reporter.on_progress_update)
        self.reporter.on_progress_start("Uploading", body.length)
        try:
            resp = self._request(
                "POST", "/programs", query=query, body=body, content_type=ct,
                timeout=UPLOAD_TIMEOUT_SECS, context="Failed to submit build",
            )
        except AxiomError:
            self.reporter.on_progress_finish("")
            raise
        self.reporter.on_progress_finish(green("✓ Upload complete!"))
        program_id = resp.get("id") if isinstance(resp, dict) else None
        if not program_id:
            raise AxiomError("invalid_response", "Missing 'id' field in build response")
        return str(program_id)

    def upload_exe_raw(self, elf: bytes, vmexe: bytes, query: Dict[str, Any]) -> str:
        """POST /programs/upload-exe — upload a pre-built ELF and VMEXE."""
        body, ct = build_multipart(
            [
                ("elf", "program.elf", elf, "application/octet-stream"),
                ("vmexe", "program.vmexe", vmexe, "application/octet-stream"),
            ],
            on_read=self.reporter.on_progress_update,
        )
        self.reporter.on_progress_start("Uploading", body.length)
        try:
            resp = self._request(
                "POST", "/programs/upload-exe", query=query, body=body, content_type=ct,
                timeout=UPLOAD_TIMEOUT_SECS, context="Failed to upload program",
            )
        except AxiomError:
            self.reporter.on_progress_finish("")
            raise
        self.reporter.on_progress_finish(green("✓ Upload complete!"))
        program_id = resp.get("id") if isinstance(resp, dict) else None
        if not program_id:
            raise AxiomError("invalid_response", "Missing 'id' field in upload response")
        return str(program_id)

    def download_program(self, program_id: str, program_type: str, dest: Optional[Union[str, Path]] = None) -> Path:
        """GET /programs/{id}/download/{type} into axiom-artifacts/program-{id}/artifacts/."""
        if program_type not in PROGRAM_ARTIFACT_TYPES:
            raise AxiomError("invalid_artifact", f"Unknown program artifact type: {program_type}")
        if dest is None:
            ext = "tar.gz" if program_type == "source" else program_type
            dest = program_artifacts_dir(program_id) / f"program.{ext}"
        return self._download(
            f"/programs/{program_id}/download/{program_type}", dest,
            context=f"Failed to download {program_type}", label=f"Downloading {program_type}",
        )

    def download_build_logs(self, program_id: str, dest: Optional[Union[str, Path]] = None) -> Path:
        """GET /programs/{id}/logs"""
        if dest is None:
            dest = program_artifacts_dir(program_id) / "logs.txt"
        return self._download(f"/programs/{program_id}/logs", dest, context="Failed to download build logs")

    def move_program_to_project(self, program_id: str, project_id: str) -> None:
        """PUT /programs/{id} — reassign a program to another project."""
        body = json.dumps({"project_id": project_id}).encode("utf-8")
        self._request(
            "PUT", f"/programs/{program_id}", body=body, content_type="application/json",
            context="Failed to move program to project",
        )

    # -- Proofs -------------------------------------------------------------

    def list_proofs(self, program_id: str) -> List[Dict[str, Any]]:
        """GET /proofs?program_id=…"""
        resp = self._request("GET", "/proofs", query={"program_id": program_id}, context="Failed to list proofs")
        items = resp.get("items") if isinstance(resp, dict) else None
        if not isinstance(items, list):
            raise AxiomError("invalid_response", f"Failed to list proofs: unexpected response format: {resp}")
        return items

    def get_proof_status(self, proof_id: str) -> Dict[str, Any]:
        """GET /proofs/{id}"""
        return self._request("GET", f"/proofs/{proof_id}", context="Failed to check proof status")

    def submit_proof(
        self,
        program_id: str,
        proof_type: str,
        input_json: Dict[str, Any],
        num_gpus: Optional[int] = None,
        priority: Optional[int] = None,
    ) -> str:
        """POST /proofs — start proof generation, return the proof ID."""
        query = {"program_id": program_id, "proof_type": proof_type, "num_gpus": num_gpus, "priority": priority}
        resp = self._request(
            "POST", "/proofs", query=query, body=json.dumps(input_json).encode("utf-8"),
            content_type="application/json", context="Failed to generate proof",
        )
        proof_id = resp.get("id") if isinstance(resp, dict) else None
        if not proof_id:
            raise AxiomError("invalid_response", "Missing 'id' field in proof response")
        return str(proof_id)

    def download_proof(self, proof_id: str, proof_type: str, dest: Union[str, Path]) -> Path:
        """GET /proofs/{id}/proof/{type}"""
        return self._download(f"/proofs/{proof_id}/proof/{proof_type}", dest, context="Failed to download proof")

    def download_proof_logs(self, proof_id: str, dest: Union[str, Path]) -> Path:
        """GET /proofs/{id}/logs"""
        return self._download(f"/proofs/{proof_id}/logs", dest, context="Failed to download proof logs")

    def cancel_proof(self, proof_id: str) -> str:
        """POST /proofs/{id}/cancel — returns the server's message."""
        resp = self._request(
            "POST", f"/proofs/{proof_id}/cancel", body=b"{}", content_type="application/json",
            context="Failed to cancel proof",
        )
        if isinstance(resp, dict) and resp.get("message"):
            return str(resp["message"])
        return "Cancellation request submitted successfully"

    # -- Executions ---------------------------------------------------------

    def submit_execution(self, program_id: str, input_json: Dict[str, Any]) -> str:
        """POST /executions"""
        payload = {"program_id": program_id, "input": input_json.get("input", [])}
        resp = self._request(
            "POST", "/executions", body=json.dumps(payload).encode("utf-8"),
            content_type="application/json", context="Failed to start execution",
        )
        execution_id = resp.get("id") if isinstance(resp, dict) else None
        if not execution_id:
            raise AxiomError("invalid_response", "Missing 'id' field in execution response")
        return str(execution_id)

    def get_execution_status(self, execution_id: str) -> Dict[str, Any]:
        """GET /executions/{id}"""
        return self._request("GET", f"/executions/{execution_id}", context="Failed to check execution status")

    # -- Configs ------------------------------------------------------------

    def get_vm_config_metadata(self, config_id: str) -> Dict[str, Any]:
        """GET /configs/{id}"""
        return self._request("GET", f"/configs/{config_id}", context="Failed to get config status")

    def get_proving_key_url(self, config_id: str, key_type: str) -> str:
        """GET /configs/{id}/pk/{type} or /vk/{type} — presigned download URL."""
        if key_type not in KEY_TYPES:
            raise AxiomError("invalid_key_type", f"Invalid key type: {key_type}")
        part, kind = key_type.split("_", 1)
        resp = self._request("GET", f"/configs/{config_id}/{kind}/{part}", context="Failed to get proving key")
        url = resp.get("download_url") if isinstance(resp, dict) else None
        if not url:
            raise AxiomError("invalid_response", f"Failed to get proving key: no download_url in response: {resp}")
        return str(url)

    def download_from_url(self, url: str, dest: Union[str, Path], label: str) -> Path:
        """Download a presigned URL; it carries its own credentials."""
        return self._download("", dest, url=url, auth=False, context="Failed to download", label=label)

    def download_config_artifact(self, config_id: str, artifact: str, dest: Optional[Union[str, Path]] = None) -> Path:
        """GET /configs/{id}/{artifact}"""
        if artifact not in CONFIG_ARTIFACT_FILES:
            raise AxiomError("invalid_artifact", f"Unknown config artifact: {artifact}")
        if dest is None:
            dest = config_artifacts_dir(config_id) / CONFIG_ARTIFACT_FILES[artifact]
        return self._download(f"/configs/{config_id}/{artifact}", dest, context=f"Failed to download {artifact}")

    # -- Verification -------------------------------------------------------

    def submit_verification(self, path: str, query: Dict[str, Any], proof_json: str) -> str:
        """POST /verify or /verify/stark with the proof as a 'proof' part."""
        body, ct = build_multipart([("proof", "proof.json", proof_json.encode("utf-8"), "application/json")])
        resp = self._request(
            "POST", path, query=query, body=body, content_type=ct,
            context="Failed to send verification request",
        )
        verify_id = resp.get("id") if isinstance(resp, dict) else None
        if not verify_id:
            raise AxiomError("invalid_response", "Missing 'id' field in verification response")
        return str(verify_id)

    def get_verification_status(self, verify_id: str, proof_type: str = "evm") -> Dict[str, Any]:
        """GET /verify/{id} (EVM) or /verify/stark/{id}"""
        path = f"/verify/stark/{verify_id}" if proof_type == "stark" else f"/verify/{verify_id}"
        return self._request("GET", path, context="Failed to check verification status")

    # -- Projects -----------------------------------------------------------

    def list_projects(self, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        """GET /projects"""
        return self._request(
            "GET", "/projects", query={"page": page, "page_size": page_size}, context="Failed to list projects",
        )

    def create_project(self, name: str) -> Dict[str, Any]:
        """POST /projects — body is the JSON-encoded name."""
        return self._request(
            "POST", "/projects", body=json.dumps(name).encode("utf-8"), content_type="application/json",
            context="Failed to create project",
        )

    def get_project(self, project_id: str) -> Dict[str, Any]:
        """GET /projects/{id}"""
        return self._request("GET", f"/projects/{project_id}", context="Failed to get project")


# ---------------------------------------------------------------------------
# Submission and polling
# ---------------------------------------------------------------------------


def poll_until_terminal(
    fetch_status: Callable[[], Dict[str, Any]],
    classify: Callable[[Dict[str, Any]], JobStatus],
    reporter: ProgressReporter,
    *,
    label: str,
    messages: Optional[Dict[str, str]] = None,
    interval: Optional[float] = None,
    timeout: Optional[float] = None,
) -> Tuple[Dict[str, Any], JobStatus]:
    """
    Poll a job until it reaches a terminal state.

    Sleeps a fixed ``interval`` between polls. READY and CANCELED return
    (record, status); FAILED raises AxiomError("job_failed") carrying the
    record. Known in-progress states poll until ``timeout`` (unbounded by
    default). Unrecognized states are tolerated MAX_UNKNOWN_POLLS times in a
    row and transient API errors MAX_TRANSIENT_POLL_ERRORS times in a row;
    client errors propagate at once.

    ``messages`` maps raw server states to spinner text.
    """
    interval = POLL_INTERVAL_SECS if interval is None else interval
    messages = messages or {}
    deadline = time.monotonic() + timeout if timeout else None
    spinner = False
    unknown_polls = 0
    transient_errors = 0

    def stop() -> None:
        if spinner:
            reporter.on_progress_finish("")

    while True:
        try:
            record = fetch_status()
        except AxiomError as e:
            if not e.transient or transient_errors >= MAX_TRANSIENT_POLL_ERRORS:
                stop()
                raise
            transient_errors += 1
            message = f"{label} status unavailable, retrying ({transient_errors}/{MAX_TRANSIENT_POLL_ERRORS})"
        else:
            transient_errors = 0
            status = classify(record)
            if status.state in (READY, CANCELED):
                stop()
                return record, status
            if status.state == FAILED:
                stop()
                raise AxiomError("job_failed", f"{label} failed: {status.reason}", details=record)
            if status.state == UNKNOWN:
                unknown_polls += 1
                if unknown_polls == 1:
                    if spinner:
                        reporter.on_clear_line()
                    reporter.on_warning(f"Unrecognized {label.lower()} status '{status.raw}', still polling")
                if unknown_polls > MAX_UNKNOWN_POLLS:
                    stop()
                    raise AxiomError(
                        "unknown_status",
                        f"{label} reported unrecognized status '{status.raw}' "
                        f"{unknown_polls} times in a row; giving up",
                        details=record,
                    )
            else:
                unknown_polls = 0
            message = messages.get(status.raw) or f"{label} status: {status.raw}"

        if deadline is not None and time.monotonic() >= deadline:
            stop()
            raise AxiomError("timeout", f"Timed out waiting for {label.lower()} after {timeout:g}s")
        if not spinner:
            reporter.on_progress_start(message, None)
            spinner = True
        else:
            reporter.on_progress_update_message(message)
        time.sleep(interval)


def download_artifacts(downloads: Sequence[Tuple[str, Callable[[], Any]]], reporter: ProgressReporter) -> List[str]:
    """
    Run each download independently. Failures become warnings; returns the
    names that failed.
    """
    failed: List[str] = []
    for name, action in downloads:
        try:
            result = action()
        except (AxiomError, OSError) as e:
            reporter.on_warning(f"Failed to download {name}: {getattr(e, 'message', e)}")
            failed.append(name)
        else:
            reporter.on_success(f"{name}: {result}")
    return failed


def _field(reporter: ProgressReporter, record: Dict[str, Any], key: str, label: str) -> None:
    value = record.get(key)
    if value is not None:
        reporter.on_field(label, str(value))


def report_build_status(record: Dict[str, Any], reporter: ProgressReporter) -> None:
    reporter.on_section("Build Status")
    for key, label in (
        ("id", "ID"), ("name", "Name"), ("project_id", "Project ID"), ("project_name", "Project Name"),
        ("status", "Status"), ("program_hash", "Program Hash"), ("config_uuid", "Config ID"),
        ("created_by", "Created By"), ("created_at", "Created At"), ("last_active_at", "Last Active"),
        ("default_num_gpus", "Default Num GPUs"), ("launched_at", "Launched At"),
        ("terminated_at", "Terminated At"), ("error_message", "Error"),
    ):
        _field(reporter, record, key, label)
    reporter.on_section("Statistics")
    reporter.on_field("Cells Used", str(record.get("cells_used", 0)))
    reporter.on_field("Proofs Run", str(record.get("proofs_run", 0)))


def report_proof_status(record: Dict[str, Any], reporter: ProgressReporter) -> None:
    reporter.on_section("Proof Status")
    for key, label in (
        ("id", "ID"), ("state", "State"), ("proof_type", "Proof Type"), ("program_uuid", "Program ID"),
        ("created_by", "Created By"), ("created_at", "Created At"), ("launched_at", "Launched At"),
        ("terminated_at", "Terminated At"), ("error_message", "Error"),
    ):
        _field(reporter, record, key, label)
    reporter.on_section("Configuration")
    _field(reporter, record, "num_gpus", "Num GPUs")
    _field(reporter, record, "priority", "Priority")
    reporter.on_section("Statistics")
    reporter.on_field("Cells Used", str(record.get("cells_used", 0)))
    _field(reporter, record, "num_instructions", "Total Cycles")


def report_execution_status(record: Dict[str, Any], reporter: ProgressReporter) -> None:
    reporter.on_section("Execution Status")
    for key, label in (
        ("id", "ID"), ("status", "Status"), ("program_uuid", "Program ID"), ("created_by", "Created By"),
        ("created_at", "Created At"), ("launched_at", "Launched At"), ("terminated_at", "Terminated At"),
        ("error_message", "Error"),
    ):
        _field(reporter, record, key, label)
    if record.get("total_cycle") is not None or record.get("total_tick") is not None:
        reporter.on_section("Execution Statistics")
        _field(reporter, record, "total_cycle", "Total Cycles")
        _field(reporter, record, "total_tick", "Total Ticks")
    _report_public_values(record, reporter)


def _report_public_values(record: Dict[str, Any], reporter: ProgressReporter) -> None:
    public_values = record.get("public_values")
    if public_values is not None:
        reporter.on_section("Public Values")
        for line in json.dumps(public_values, indent=2).splitlines():
            reporter.on_info(f"  {line}")


def report_verification(record: Dict[str, Any], proof_type: str, verdict: str, reporter: ProgressReporter) -> None:
    reporter.on_section("Verification Summary")
    reporter.on_field("Verification Result", verdict)
    reporter.on_field("Verification ID", str(record.get("id", "-")))
    reporter.on_field("Proof Type", proof_type.upper())
    reporter.on_field("Completed At", str(record.get("created_at", "-")))


# -- Builds -----------------------------------------------------------------


def submit_build(
    client: AxiomClient,
    program_dir: Union[str, Path],
    *,
    config_id: Optional[str] = None,
    config_path: Optional[str] = None,
    bin_name: Optional[str] = None,
    keep_tarball: bool = False,
    exclude_files: Optional[str] = None,
    include_dirs: Optional[str] = None,
    project_id: Optional[str] = None,
    project_name: Optional[str] = None,
    allow_dirty: bool = False,
    default_num_gpus: Optional[int] = None,
    openvm_rust_toolchain: Optional[str] = None,
    prefetch: bool = True,
) -> str:
    """Archive the guest program in program_dir, upload it and return the program ID."""
    reporter = client.reporter
    program_dir = Path(program_dir).resolve()
    if not (program_dir / "Cargo.toml").exists():
        raise AxiomError("not_cargo_project", "Not in a Rust project. Make sure Cargo.toml exists.")

    git_root = find_git_root(program_dir)
    if not allow_dirty and not check_git_clean(git_root):
        raise AxiomError(
            "dirty_tree",
            "Git repository has uncommitted changes. Please commit your changes or use --allow-dirty "
            "to build anyway.\nRun 'git status' to see uncommitted changes.",
        )

    if config_id is None and config_path is None:
        config_id = client.config.get("config_id")

    workspace_root = find_cargo_workspace_root(program_dir)
    bin_to_build = resolve_binary(program_dir, bin_name)
    toolchain = openvm_rust_toolchain or OPENVM_RUST_TOOLCHAIN

    program_path = program_dir.relative_to(git_root).as_posix()
    cargo_root_path = workspace_root.relative_to(git_root).as_posix()
    query: Dict[str, Any] = {
        "program_path": program_path or ".",
        "cargo_root_path": cargo_root_path or ".",
        "config_id": config_id,
        "project_id": project_id,
        "project_name": project_name,
        "bin_name": bin_to_build,
        "default_num_gpus": default_num_gpus,
        "openvm_rust_toolchain": toolchain,
    }
    try:
        query["commit_sha"] = get_git_commit_sha(git_root)
    except AxiomError:
        pass  # builds from a fresh repo without commits are still accepted

    reporter.on_info("Creating project archive...")
    with project_archive(
        program_dir,
        keep_tarball=keep_tarball,
        exclude_patterns=_split_csv(exclude_files),
        include_dirs=_split_csv(include_dirs),
        openvm_toolchain=toolchain,
        prefetch=prefetch,
    ) as tar_path:
        reporter.on_header("Building Program")
        if config_id:
            reporter.on_field("Config ID", config_id)
        elif config_path:
            reporter.on_field("Config File", str(config_path))
        else:
            reporter.on_field("Config", "Default")
        if default_num_gpus is not None:
            reporter.on_field("Default Num GPUs", str(default_num_gpus))
        program_id = client.submit_program(tar_path, query, config_path=config_path)
        if keep_tarball:
            reporter.on_info(f"Archive kept at {tar_path}")

    reporter.on_success(f"Build initiated ({program_id})")
    return program_id


def wait_for_build_completion(
    client: AxiomClient,
    program_id: str,
    download: bool = True,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Poll a build until it is ready, then fetch exe, elf and logs."""
    reporter = client.reporter
    record, _ = poll_until_terminal(
        lambda: client.get_build_status(program_id),
        classify_build_status,
        reporter,
        label="Build",
        messages={"not_ready": "Build queued", "processing": "Building program"},
        timeout=timeout,
    )
    reporter.on_success("Build completed successfully!")
    report_build_status(record, reporter)

    if download:
        reporter.on_section("Saving Artifacts")
        downloads: List[Tuple[str, Callable[[], Any]]] = [
            (artifact, lambda artifact=artifact: client.download_program(program_id, artifact))
            for artifact in BUILD_WAIT_ARTIFACTS
        ]
        downloads.append(("logs", lambda: client.download_build_logs(program_id)))
        download_artifacts(downloads, reporter)
    return record


def download_program_artifacts(client: AxiomClient, program_id: str, program_type: str) -> List[Path]:
    """Download one artifact type, or every type for 'all' (failures become warnings)."""
    if program_type != "all":
        path = client.download_program(program_id, program_type)
        client.reporter.on_success(str(path))
        return [path]
    saved: List[Path] = []
    for artifact in PROGRAM_ARTIFACT_TYPES:
        try:
            saved.append(client.download_program(program_id, artifact))
        except (AxiomError, OSError) as e:
            client.reporter.on_warning(f"Failed to download {artifact}: {getattr(e, 'message', e)}")
        else:
            client.reporter.on_success(f"{artifact}: {saved[-1]}")
    return saved


def find_prebuilt_program(program_dir: Union[str, Path], bin_name: Optional[str] = None) -> Tuple[Path, Path]:
    """Locate target/openvm/release/<bin>.elf and its .vmexe sibling."""
    program_dir = Path(program_dir)
    if not (program_dir / "Cargo.toml").exists():
        raise AxiomError("not_cargo_project", "Not in a Rust project. Make sure Cargo.toml exists.")
    release_dir = program_dir / "target" / "openvm" / "release"
    if not release_dir.is_dir():
        raise AxiomError(
            "missing_artifact",
            f"OpenVM release build not found. Please run 'cargo openvm build' first.\nExpected directory: {release_dir}",
        )
    elf_files = sorted(p for p in release_dir.iterdir() if p.suffix == ".elf")
    if not elf_files:
        raise AxiomError(
            "missing_artifact",
            f"No ELF files found in {release_dir}. Please run 'cargo openvm build' first.",
        )
    available = [p.stem for p in elf_files]
    if bin_name is not None:
        matching = [p for p in elf_files if p.stem == bin_name]
        if not matching:
            raise AxiomError(
                "binary_not_found",
                f"ELF file '{bin_name}' not found. Available ELF files: {', '.join(available)}",
            )
        elf_path = matching[0]
    elif len(elf_files) > 1:
        raise AxiomError(
            "ambiguous_binary",
            f"Multiple ELF files found. Please specify which one to upload using --bin-name. Available: {', '.join(available)}",
        )
    else:
        elf_path = elf_files[0]
    vmexe_path = elf_path.with_suffix(".vmexe")
    if not vmexe_path.exists():
        raise AxiomError(
            "missing_artifact",
            f"VMEXE file not found at {vmexe_path}. Please run 'cargo openvm build' first.",
        )
    return elf_path, vmexe_path


def upload_exe(
    client: AxiomClient,
    program_dir: Union[str, Path],
    *,
    config_id: Optional[str] = None,
    project_id: Optional[str] = None,
    project_name: Optional[str] = None,
    bin_name: Optional[str] = None,
    program_name: Optional[str] = None,
    default_num_gpus: Optional[int] = None,
) -> str:
    """Upload a locally built ELF/VMEXE pair instead of building remotely."""
    reporter = client.reporter
    elf_path, vmexe_path = find_prebuilt_program(program_dir, bin_name)
    config_id = resolve_config_id(config_id, client.config)

    reporter.on_header("Uploading Pre-built Program")
    reporter.on_field("ELF", str(elf_path))
    reporter.on_field("VMEXE", str(vmexe_path))
    reporter.on_field("Config ID", config_id)
    if default_num_gpus is not None:
        reporter.on_field("Default Num GPUs", str(default_num_gpus))
    reporter.on_info("Program hash will be computed on the backend")

    query = {
        "config_id": config_id,
        "project_id": project_id,
        "project_name": project_name,
        "bin_name": bin_name,
        "program_name": program_name,
        "default_num_gpus": default_num_gpus,
    }
    program_id = client.upload_exe_raw(elf_path.read_bytes(), vmexe_path.read_bytes(), query)
    reporter.on_success(f"Program uploaded successfully ({program_id})")
    return program_id


# -- Proofs -----------------------------------------------------------------


def submit_proof(
    client: AxiomClient,
    program_id: Optional[str],
    program_input: Optional[ProgramInput] = None,
    proof_type: str = "stark",
    num_gpus: Optional[int] = None,
    priority: Optional[int] = None,
) -> str:
    reporter = client.reporter
    if not program_id:
        raise AxiomError("missing_argument", "Program ID is required. Use --program-id to specify.")
    if proof_type not in PROOF_TYPES:
        raise AxiomError("invalid_proof_type", f"Invalid proof type: {proof_type}. Must be 'evm' or 'stark'")
    input_json = input_to_json(program_input)

    reporter.on_header("Generating Proof")
    reporter.on_field("Program ID", program_id)
    reporter.on_field("Proof Type", proof_type.upper())
    if num_gpus is not None:
        reporter.on_field("Num GPUs", str(num_gpus))
    if priority is not None:
        reporter.on_field("Priority", str(priority))

    proof_id = client.submit_proof(program_id, proof_type, input_json, num_gpus=num_gpus, priority=priority)
    reporter.on_success(f"Proof generation initiated ({proof_id})")
    return proof_id


def wait_for_proof_completion(
    client: AxiomClient,
    proof_id: str,
    save: bool = True,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Poll a proof to completion; save the proof file and logs when asked."""
    reporter = client.reporter
    record, status = poll_until_terminal(
        lambda: client.get_proof_status(proof_id),
        classify_proof_status,
        reporter,
        label="Proof generation",
        messages={"Queued": "Proof queued", "InProgress": "Generating proof", "Canceling": "Canceling proof"},
        timeout=timeout,
    )
    if status.state == CANCELED:
        reporter.on_info("Proof generation was canceled")
        return record

    reporter.on_success("Proof generation completed successfully!")
    report_proof_status(record, reporter)

    if save:
        reporter.on_section("Saving Results")
        proof_type = str(record.get("proof_type") or "stark").lower()
        proof_dir = proof_artifacts_dir(record.get("program_uuid"), proof_id)
        download_artifacts(
            [
                (f"{proof_type.upper()} proof",
                 lambda: client.download_proof(proof_id, proof_type, proof_dir / f"{proof_type}-proof.json")),
                ("logs", lambda: client.download_proof_logs(proof_id, proof_dir / "logs.txt")),
            ],
            reporter,
        )
    return record


def cancel_proof(client: AxiomClient, proof_id: str, wait: bool = True) -> Dict[str, Any]:
    message = client.cancel_proof(proof_id)
    client.reporter.on_success(message)
    if not wait:
        return {"id": proof_id, "message": message}
    return wait_for_proof_cancellation(client, proof_id)


def wait_for_proof_cancellation(
    client: AxiomClient,
    proof_id: str,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Poll until the proof reports Canceled; finishing any other way is an error."""
    record, _ = poll_until_terminal(
        lambda: client.get_proof_status(proof_id),
        classify_cancellation,
        client.reporter,
        label="Proof cancellation",
        messages={"Canceling": "Canceling proof"},
        timeout=timeout,
    )
    client.reporter.on_success("Proof successfully canceled")
    return record


# -- Executions -------------------------------------------------------------


def submit_execution(client: AxiomClient, program_id: Optional[str], program_input: Optional[ProgramInput] = None) -> str:
    if not program_id:
        raise AxiomError("missing_argument", "Program ID is required. Use --program-id to specify.")
    input_json = input_to_json(program_input)
    client.reporter.on_header("Executing Program")
    client.reporter.on_field("Program ID", program_id)
    execution_id = client.submit_execution(program_id, input_json)
    client.reporter.on_success(f"Execution initiated ({execution_id})")
    return execution_id


def save_execution_results(record: Dict[str, Any]) -> Path:
    """Write axiom-artifacts/program-{uuid}/runs/{id}/results.json."""
    run_dir = run_artifacts_dir(str(record.get("program_uuid")), str(record.get("id")))
    run_dir.mkdir(parents=True, exist_ok=True)
    results = {
        "execution_id": record.get("id"),
        "created_at": record.get("created_at"),
        "launched_at": record.get("launched_at"),
        "terminated_at": record.get("terminated_at"),
        "total_cycles": record.get("total_cycle"),
        "total_ticks": record.get("total_tick"),
        "public_values": record.get("public_values"),
    }
    results_path = run_dir / "results.json"
    with open(results_path, "w") as f:
        json.dump(results, f, indent=2)
        f.write("\n")
    return results_path


def wait_for_execution_completion(
    client: AxiomClient,
    execution_id: str,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    reporter = client.reporter
    record, _ = poll_until_terminal(
        lambda: client.get_execution_status(execution_id),
        classify_execution_status,
        reporter,
        label="Execution",
        messages={"Queued": "Execution queued...", "InProgress": "Execution in progress..."},
        timeout=timeout,
    )
    reporter.on_success("Execution completed successfully!")
    reporter.on_section("Execution Summary")
    reporter.on_field("Execution ID", str(record.get("id", execution_id)))
    _field(reporter, record, "total_cycle", "Total Cycles")
    _field(reporter, record, "total_tick", "Total Ticks")
    _report_public_values(record, reporter)

    launched_at, terminated_at = record.get("launched_at"), record.get("terminated_at")
    if launched_at and terminated_at:
        reporter.on_section("Execution Stats")
        _field(reporter, record, "created_at", "Created")
        reporter.on_field("Initiated", launched_at)
        reporter.on_field("Finished", terminated_at)
        try:
            reporter.on_field("Duration", calculate_duration(launched_at, terminated_at))
        except AxiomError:
            pass

    reporter.on_section("Saving Results")
    download_artifacts([("results", lambda: save_execution_results(record))], reporter)
    return record


# -- Verification -----------------------------------------------------------


def _read_proof_file(proof_path: Union[str, Path]) -> str:
    proof_path = Path(proof_path)
    if not proof_path.exists():
        raise AxiomError("missing_artifact", f"Proof file does not exist: {proof_path}")
    try:
        content = proof_path.read_text(encoding="utf-8")
    except OSError as e:
        raise AxiomError("missing_artifact", f"Failed to read proof file: {proof_path}: {e}")
    # The service expects bare hex
    return content.replace("0x", "")


def submit_evm_verification(client: AxiomClient, proof_path: Union[str, Path], config_id: Optional[str] = None) -> str:
    reporter = client.reporter
    proof_json = _read_proof_file(proof_path)
    try:
        proof = json.loads(proof_json)
    except json.JSONDecodeError as e:
        raise AxiomError("invalid_proof", f"Invalid evm proof file: {e}")
    if not isinstance(proof, dict):
        raise AxiomError("invalid_proof", "Invalid evm proof file: expected a JSON object")
    config_id = resolve_config_id(config_id, client.config)
    metadata = client.get_vm_config_metadata(config_id)

    reporter.on_header("EVM Proof Verification")
    reporter.on_field("Proof File", str(proof_path))
    reporter.on_field("Config ID", config_id)
    reporter.on_field("OpenVM Version", str(metadata.get("openvm_version", "-")))
    reporter.on_info("Initiating verification...")
    verify_id = client.submit_verification("/verify", {"config_id": config_id}, proof_json)
    reporter.on_success(f"Verification request sent: {verify_id}")
    return verify_id


def submit_stark_verification(client: AxiomClient, proof_path: Union[str, Path], program_id: Optional[str]) -> str:
    reporter = client.reporter
    if not program_id:
        raise AxiomError("missing_argument", "--program-id is required for STARK proof verification")
    proof_json = _read_proof_file(proof_path)

    reporter.on_header("STARK Proof Verification")
    reporter.on_field("Proof File", str(proof_path))
    reporter.on_field("Program ID", program_id)
    reporter.on_info("Initiating verification...")
    verify_id = client.submit_verification("/verify/stark", {"program_id": program_id}, proof_json)
    reporter.on_success(f"Verification request sent: {verify_id}")
    return verify_id


def wait_for_verification_completion(
    client: AxiomClient,
    verify_id: str,
    proof_type: str = "evm",
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    reporter = client.reporter
    try:
        record, _ = poll_until_terminal(
            lambda: client.get_verification_status(verify_id, proof_type),
            classify_verify_status,
            reporter,
            label="Proof verification",
            messages={"processing": "Verifying proof..."},
            timeout=timeout,
        )
    except AxiomError as e:
        if e.code == "job_failed" and e.details is not None:
            reporter.on_error("Verification failed!")
            report_verification(e.details, proof_type, "✗ FAILED", reporter)
        raise
    reporter.on_success("Verification completed successfully!")
    report_verification(record, proof_type, "✓ VERIFIED", reporter)
    return record


# ---------------------------------------------------------------------------
# CLI Commands
# ---------------------------------------------------------------------------


def _reporter(args: argparse.Namespace) -> ProgressReporter:
    return SilentReporter() if getattr(args, "json", False) else TerminalReporter()


def _client(args: argparse.Namespace) -> AxiomClient:
    """Client for authenticated commands; fails fast without an API key."""
    cfg = load_config(validate=True)
    # AXIOM_API_URL applies to this invocation only and is never saved
    return AxiomClient(cfg, reporter=_reporter(args), api_url=os.environ.get("AXIOM_API_URL"))


def _pagination_line(resp: Dict[str, Any], noun: str) -> str:
    p = resp.get("pagination") or {}
    return f"Showing page {p.get('page', 1)} of {p.get('pages', 1)} (total: {p.get('total', 0)} {noun})"


def cmd_init(args: argparse.Namespace) -> None:
    """Write a local config from flags / AXIOM_API_KEY without contacting the API."""
    api_key = args.api_key or os.environ.get("AXIOM_API_KEY")
    if not api_key:
        raise AxiomError(
            "missing_api_key",
            "API key must be provided either with --api-key flag or AXIOM_API_KEY environment variable",
        )
    cfg = load_config()
    cfg["api_url"] = args.api_url or (STAGING_API_URL if args.staging else PROD_API_URL)
    cfg["api_key"] = api_key
    if args.config_id:
        cfg["config_id"] = args.config_id
    save_config(cfg)
    if args.json:
        print_json({"config_file": str(CONFIG_FILE), "api_url": cfg["api_url"]})
        return
    print(green("Axiom configuration initialized successfully!"))
    print(f"  Config: {CONFIG_FILE}")


def cmd_register(args: argparse.Namespace) -> None:
    """Validate an API key against the service and store it."""
    api_url = args.api_url or (STAGING_API_URL if args.staging else PROD_API_URL)
    api_key = args.api_key or os.environ.get("AXIOM_API_KEY")
    if not api_key:
        raise AxiomError(
            "missing_api_key",
            "API key must be provided either with --api-key flag or AXIOM_API_KEY environment variable",
        )

    if not args.json:
        print("Validating API key...")
    try:
        AxiomClient({"api_url": api_url, "api_key": api_key}).validate_api_key()
    except AxiomError as e:
        raise AxiomError("invalid_api_key", f"Invalid API key - {e.message}", e.status)

    cfg = _default_config()
    cfg["api_url"] = api_url
    cfg["api_key"] = api_key
    cfg["config_id"] = args.config_id or load_config().get("config_id")
    if args.staging:
        cfg["console_base_url"] = STAGING_CONSOLE_URL
    elif not args.api_url:
        cfg["console_base_url"] = PROD_CONSOLE_URL
    save_config(cfg)

    if args.json:
        print_json({"config_file": str(CONFIG_FILE), "api_url": api_url, "registered": True})
        return
    print(green("Axiom API credentials registered successfully!"))
    print(f"  API URL: {api_url}")
    print(f"  API key: {dim(api_key[:6] + '...')}")
    print(f"  Config:  {CONFIG_FILE}")


def cmd_build(args: argparse.Namespace) -> None:
    """Build the project on the proving service, or inspect existing builds."""
    client = _client(args)
    sub = getattr(args, "build_command", None)

    if sub == "status":
        record = client.get_build_status(args.program_id)
        if args.json:
            print_json(record)
        else:
            report_build_status(record, client.reporter)
        return

    if sub == "list":
        resp = client.list_programs(page=args.page, page_size=args.page_size)
        if args.json:
            print_json(resp)
            return
        items = resp.get("items", [])
        if not items:
            print("No programs found.")
            return
        _print_table(
            ["ID", "NAME", "STATUS", "PROJECT", "CREATED AT"],
            [[p.get("id"), p.get("name"), p.get("status"), p.get("project_name"), p.get("created_at")] for p in items],
        )
        print(f"\n{_pagination_line(resp, 'programs')}")
        return

    if sub == "download":
        paths = download_program_artifacts(client, args.program_id, args.program_type)
        if args.json:
            print_json({"program_id": args.program_id, "files": [str(p) for p in paths]})
        return

    if sub == "logs":
        path = client.download_build_logs(args.program_id)
        if args.json:
            print_json({"program_id": args.program_id, "logs": str(path)})
        else:
            client.reporter.on_success(str(path))
        return

    project_id = get_project_id(args.project_id)
    if project_id and not args.project_id and not args.json:
        print(f"Using project ID: {project_id}")

    program_id = submit_build(
        client,
        Path.cwd(),
        config_id=args.config_id,
        config_path=args.config,
        bin_name=args.bin,
        keep_tarball=args.keep_tarball,
        exclude_files=args.exclude_files,
        include_dirs=args.include_dirs,
        project_id=project_id,
        project_name=args.project_name,
        allow_dirty=args.allow_dirty,
        default_num_gpus=args.default_num_gpus,
        openvm_rust_toolchain=args.openvm_rust_toolchain,
    )
    if args.wait:
        record = wait_for_build_completion(client, program_id)
        if args.json:
            print_json(record)
        return
    if args.json:
        print_json({"program_id": program_id})
        return
    print("\n  To check the build status, run:")
    print(f"    cargo axiom build status --program-id {program_id}")


def cmd_upload_exe(args: argparse.Namespace) -> None:
    """Upload a pre-built ELF and VMEXE."""
    client = _client(args)
    program_id = upload_exe(
        client,
        Path.cwd(),
        config_id=args.config_id,
        project_id=get_project_id(args.project_id),
        project_name=args.project_name,
        bin_name=args.bin_name,
        program_name=args.program_name,
        default_num_gpus=args.default_num_gpus,
    )
    console_url = None
    base = client.config.get("console_base_url")
    if base:
        record = client.get_build_status(program_id)
        if record.get("project_id"):
            console_url = f"{base.rstrip('/')}/projects/{record['project_id']}"
    if args.json:
        print_json({"program_id": program_id, "console_url": console_url})
        return
    if console_url:
        print(f"Console: {console_url}")


def cmd_prove(args: argparse.Namespace) -> None:
    """Generate proofs and inspect existing ones."""
    client = _client(args)
    sub = getattr(args, "prove_command", None)

    if sub == "status":
        if args.wait:
            record = wait_for_proof_completion(client, args.proof_id, save=not args.no_save)
        else:
            record = client.get_proof_status(args.proof_id)
            if not args.json:
                report_proof_status(record, client.reporter)
        if args.json:
            print_json(record)
        return

    if sub == "logs":
        try:
            program_uuid = client.get_proof_status(args.proof_id).get("program_uuid")
        except AxiomError as e:
            client.reporter.on_warning(f"Could not fetch proof status: {e.message}")
            program_uuid = None
        path = client.download_proof_logs(args.proof_id, proof_artifacts_dir(program_uuid, args.proof_id) / "logs.txt")
        if args.json:
            print_json({"proof_id": args.proof_id, "logs": str(path)})
        else:
            client.reporter.on_success(str(path))
        return

    if sub == "download":
        output = Path(args.output) if args.output else None
        if output is None:
            try:
                program_uuid = client.get_proof_status(args.proof_id).get("program_uuid")
            except AxiomError as e:
                client.reporter.on_warning(f"Could not fetch proof status: {e.message}")
                client.reporter.on_warning("Using fallback path for proof output")
                program_uuid = None
            output = proof_artifacts_dir(program_uuid, args.proof_id) / f"{args.proof_type}-proof.json"
        path = client.download_proof(args.proof_id, args.proof_type, output)
        if args.json:
            print_json({"proof_id": args.proof_id, "proof": str(path)})
        else:
            client.reporter.on_success(str(path))
        return

    if sub == "list":
        proofs = client.list_proofs(args.program_id)
        if args.json:
            print_json(proofs)
            return
        if not proofs:
            print(f"No proofs found for program {args.program_id}.")
            return
        _print_table(
            ["ID", "STATE", "PROOF TYPE", "CREATED AT"],
            [[p.get("id"), p.get("state"), p.get("proof_type"), p.get("created_at")] for p in proofs],
        )
        return

    if sub == "cancel":
        record = cancel_proof(client, args.proof_id)
        if args.json:
            print_json(record)
        return

    proof_id = submit_proof(
        client,
        args.program_id,
        program_input=args.input,
        proof_type=args.proof_type,
        num_gpus=args.num_gpus,
        priority=args.priority,
    )
    if args.detach:
        if args.json:
            print_json({"proof_id": proof_id})
            return
        print("\n  To check the proof status, run:")
        print(f"    cargo axiom prove status --proof-id {proof_id}")
        return
    record = wait_for_proof_completion(client, proof_id, save=True)
    if args.json:
        print_json(record)


def cmd_run(args: argparse.Namespace) -> None:
    """Execute a program without proving it."""
    client = _client(args)
    if getattr(args, "run_command", None) == "status":
        record = client.get_execution_status(args.execution_id)
        if args.json:
            print_json(record)
        else:
            report_execution_status(record, client.reporter)
        return

    execution_id = submit_execution(client, args.program_id, args.input)
    if args.wait:
        record = wait_for_execution_completion(client, execution_id)
        if args.json:
            print_json(record)
        return
    if args.json:
        print_json({"execution_id": execution_id})
        return
    print("\n  To check the execution status, run:")
    print(f"    cargo axiom run status --execution-id {execution_id}")


def cmd_verify(args: argparse.Namespace) -> None:
    """Verify a STARK or EVM proof on the service."""
    client = _client(args)
    sub = getattr(args, "verify_command", None)

    if sub == "status":
        if args.wait:
            record = wait_for_verification_completion(client, args.verify_id, args.proof_type)
        else:
            record = client.get_verification_status(args.verify_id, args.proof_type)
            if not args.json:
                result = str(record.get("result", ""))
                verdict = {"verified": "✓ VERIFIED", "failed": "✗ FAILED"}.get(result, result.upper())
                report_verification(record, str(record.get("proof_type") or args.proof_type), verdict, client.reporter)
        if args.json:
            print_json(record)
        return

    proof_type = sub if sub in PROOF_TYPES else args.proof_type
    if not proof_type:
        raise AxiomError("missing_argument", "--type is required. Must be one of: stark, evm")
    if not args.proof:
        raise AxiomError("missing_argument", "--proof is required")

    if proof_type == "stark":
        verify_id = submit_stark_verification(client, args.proof, args.program_id)
    else:
        verify_id = submit_evm_verification(client, args.proof, args.config_id)

    if args.detach:
        if args.json:
            print_json({"verify_id": verify_id})
            return
        print("\n  To check the verification status, run:")
        print(f"    cargo axiom verify status --verify-id {verify_id} --type {proof_type}")
        return
    record = wait_for_verification_completion(client, verify_id, proof_type)
    if args.json:
        print_json(record)


def cmd_config(args: argparse.Namespace) -> None:
    """Inspect a VM configuration and download its artifacts."""
    client = _client(args)
    sub = getattr(args, "config_command", None)
    if sub is None:
        raise AxiomError("missing_argument", "A subcommand is required for config (status, download)")

    config_id = resolve_config_id(args.config_id, client.config)
    if sub == "status":
        meta = client.get_vm_config_metadata(config_id)
        if args.json:
            print_json(meta)
            return
        r = client.reporter
        r.on_section("Config Status")
        for key, label in (
            ("id", "ID"), ("status", "Status"), ("openvm_version", "OpenVM Version"),
            ("stark_backend_version", "STARK Backend Version"), ("active", "Active"),
            ("created_at", "Created At"), ("app_vm_commit", "App VM Commit"),
        ):
            _field(r, meta, key, label)
        return

    if args.evm_verifier:
        artifact = "evm_verifier"
    elif args.app_vm_commit:
        artifact = "app_vm_commit"
    else:
        artifact = "config"
    client.reporter.on_info(f"Downloading {artifact} for config ID: {config_id}")
    path = client.download_config_artifact(config_id, artifact, args.output)
    if args.json:
        print_json({"config_id": config_id, "artifact": artifact, "path": str(path)})
    else:
        client.reporter.on_success(f"Successfully downloaded to {path}")


def cmd_download_keys(args: argparse.Namespace) -> None:
    """Fetch a proving or verifying key for a config."""
    client = _client(args)
    config_id = resolve_config_id(args.config_id, client.config)
    client.reporter.on_info(f"Getting {args.key_type} key for config ID: {config_id}")
    url = client.get_proving_key_url(config_id, args.key_type)
    if args.url_only:
        if args.json:
            print_json({"config_id": config_id, "key_type": args.key_type, "download_url": url})
        else:
            print(f"Download URL: {url}")
        return
    dest = Path(args.output) if args.output else config_artifacts_dir(config_id) / args.key_type
    path = client.download_from_url(url, dest, label="Downloading proving key")
    if args.json:
        print_json({"config_id": config_id, "key_type": args.key_type, "path": str(path)})
    else:
        client.reporter.on_success(f"Key downloaded to {path}")


def cmd_projects(args: argparse.Namespace) -> None:
    """Manage projects and the programs inside them."""
    client = _client(args)
    sub = args.projects_command

    if sub == "list":
        resp = client.list_projects(page=args.page, page_size=args.page_size)
        if args.json:
            print_json(resp)
            return
        items = resp.get("items", [])
        if not items:
            print("No projects found.")
            return
        _print_table(
            ["ID", "NAME", "PROGRAMS", "TOTAL PROOFS", "CREATED BY", "LAST ACTIVE"],
            [
                [p.get("id"), p.get("name"), p.get("program_count", 0), p.get("total_proofs_run", 0),
                 p.get("created_by"), p.get("last_active_at")]
                for p in items
            ],
        )
        print(f"\n{_pagination_line(resp, 'projects')}")
        return

    if sub == "create":
        resp = client.create_project(args.name)
        project_id = str(resp.get("id", ""))
        if not project_id:
            raise AxiomError("invalid_response", "Missing 'id' field in project response")
        set_project_id(project_id)
        if args.json:
            print_json({"id": project_id, "name": args.name})
            return
        print(green(f"✓ Created project '{args.name}' with ID: {project_id}"))
        print(green(f"✓ Saved project ID {project_id} for future use"))
        return

    if sub == "show":
        project = client.get_project(args.project_id)
        if args.json:
            print_json(project)
            return
        print(f"\n  {bold('Project Details')}")
        print(f"  ID:               {project.get('id', '-')}")
        print(f"  Name:             {project.get('name', '-')}")
        print(f"  Program Count:    {project.get('program_count', 0)}")
        print(f"  Total Proofs Run: {project.get('total_proofs_run', 0)}")
        print(f"  Created By:       {project.get('created_by', '-')}")
        print(f"  Created At:       {project.get('created_at', '-')}")
        print(f"  Last Active At:   {project.get('last_active_at') or '-'}")
        return

    if sub == "programs":
        resp = client.list_programs(page=args.page, page_size=args.page_size, project_id=args.project_id)
        if args.json:
            print_json(resp)
            return
        items = resp.get("items", [])
        if not items:
            print(f"No programs found in project {args.project_id}")
            return
        _print_table(
            ["PROGRAM ID", "NAME", "CREATED AT"],
            [[p.get("id"), p.get("name"), p.get("created_at")] for p in items],
        )
        print(f"\n{_pagination_line(resp, 'programs')}")
        return

    if sub == "move":
        client.move_program_to_project(args.program_id, args.to_project)
        if args.json:
            print_json({"program_id": args.program_id, "project_id": args.to_project})
            return
        print(green(f"✓ Successfully moved program {args.program_id} to project {args.to_project}"))


def _git_commit() -> str:
    """Commit of the checkout this module runs from, if it is one."""
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=str(Path(__file__).resolve().parent),
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
        )
    except OSError:
        return "unknown"
    return proc.stdout.strip() if proc.returncode == 0 and proc.stdout.strip() else "unknown"


def cmd_version(args: argparse.Namespace) -> None:
    commit = _git_commit()
    if args.json:
        data = {"version": VERSION, "commit": commit}
        if args.verbose:
            data["openvm_version"] = OPENVM_VERSION
        print_json(data)
        return
    print(f"cargo-axiom v{VERSION} ({commit})")
    if args.verbose:
        print(f"OpenVM compatibility: version {OPENVM_VERSION}")


COMPLETION_FILES = {
    "bash": "cargo-axiom.bash",
    "zsh": "_cargo-axiom",
    "fish": "cargo-axiom.fish",
}


def render_completions(shell: str, commands: Dict[str, List[str]]) -> str:
    """Completion script for the top-level commands and their subcommands."""
    top = " ".join(sorted(commands))
    if shell == "bash":
        cases = "\n".join(
            f'        {name}) COMPREPLY=($(compgen -W "{" ".join(subs)}" -- "$cur")); return ;;'
            for name, subs in sorted(commands.items()) if subs
        )
        return textwrap.dedent("""\
            _cargo_axiom() {{
                local cur prev
                cur="${{COMP_WORDS[COMP_CWORD]}}"
                prev="${{COMP_WORDS[COMP_CWORD-1]}}"
                case "$prev" in
            {cases}
                esac
                COMPREPLY=($(compgen -W "{top}" -- "$cur"))
            }}
            complete -F _cargo_axiom cargo-axiom
            """).format(cases=cases, top=top)
    if shell == "zsh":
        return textwrap.dedent("""\
            #compdef cargo-axiom
            _arguments '1: :({top})' '*::arg:->args'
            """).format(top=top)
    lines = [f"complete -c cargo-axiom -f -n '__fish_use_subcommand' -a '{top}'"]
    for name, subs in sorted(commands.items()):
        if subs:
            lines.append(f"complete -c cargo-axiom -f -n '__fish_seen_subcommand_from {name}' -a '{' '.join(subs)}'")
    return "\n".join(lines) + "\n"


def _subcommand_tree(parser: argparse.ArgumentParser) -> Dict[str, List[str]]:
    tree: Dict[str, List[str]] = {}
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            for name, sub in action.choices.items():
                tree[name] = []
                for sub_action in sub._actions:
                    if isinstance(sub_action, argparse._SubParsersAction):
                        tree[name] = sorted(sub_action.choices)
    return tree


def cmd_completions(args: argparse.Namespace) -> None:
    filename = COMPLETION_FILES[args.shell]
    script = render_completions(args.shell, _subcommand_tree(build_parser()))
    with open(filename, "w") as f:
        f.write(script)
    if args.json:
        print_json({"shell": args.shell, "file": filename})
        return
    print(green(f"Generated completion file: {filename}"))
    hints = {
        "bash": f"  mkdir -p ~/.bash_completion.d && cp {filename} ~/.bash_completion.d/\n"
                f"  echo 'source ~/.bash_completion.d/{filename}' >> ~/.bashrc",
        "zsh": f"  mkdir -p ~/.zfunc && cp {filename} ~/.zfunc/\n"
               "  echo 'fpath=(~/.zfunc $fpath); autoload -U compinit && compinit' >> ~/.zshrc",
        "fish": f"  mkdir -p ~/.config/fish/completions && cp {filename} ~/.config/fish/completions/",
    }
    print(f"\n  To install {args.shell} completions:\n{hints[args.shell]}")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _positive_int(lo: int, hi: int, what: str) -> Callable[[str], int]:
    def parse(value: str) -> int:
        try:
            n = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{what} must be a number")
        if not lo <= n <= hi:
            raise argparse.ArgumentTypeError(f"{what} must be between {lo} and {hi}")
        return n
    return parse


def _input_arg(value: str) -> ProgramInput:
    try:
        return parse_input(value)
    except AxiomError as e:
        raise argparse.ArgumentTypeError(e.message)


def build_parser() -> argparse.ArgumentParser:
    # Global flags are accepted before or after any subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", default=argparse.SUPPRESS,
        help="Show full error traces and toolchain commands")
    common.add_argument("--json", action="store_true", default=argparse.SUPPRESS,
        help="Machine-readable JSON output")

    parser = argparse.ArgumentParser(
        prog="cargo-axiom",
        description="cargo-axiom — client for the Axiom Proving Service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[common],
        epilog=textwrap.dedent("""\
            examples:
              cargo axiom register --api-key <key>
              cargo axiom build --wait
              cargo axiom build status --program-id <id>
              cargo axiom prove --program-id <id> --input 0x01aa --type evm
              cargo axiom run --program-id <id> --input input.json --wait
              cargo axiom verify --type evm --proof evm-proof.json
              cargo axiom projects list
        """),
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add(sp, name: str, **kwargs) -> argparse.ArgumentParser:
        return sp.add_parser(name, parents=[common], **kwargs)

    # -- init / register ----------------------------------------------------
    for name, help_text in (("init", "Initialize Axiom configuration"),
                            ("register", "Register Axiom API credentials")):
        p = add(subparsers, name, help=help_text)
        p.add_argument("--api-url", help="API URL (default: production)")
        p.add_argument("--api-key", help="Axiom API key (default: $AXIOM_API_KEY)")
        p.add_argument("--staging", action="store_true", help="Use the staging API")
        p.add_argument("--config-id", help="Default VM config ID to store")

    # -- build --------------------------------------------------------------
    p_build = add(subparsers, "build", help="Build the project on Axiom Proving Service")
    config_src = p_build.add_mutually_exclusive_group()
    config_src.add_argument("--config-id", help="The configuration ID to use for the build")
    config_src.add_argument("--config", help="Path to an OpenVM TOML configuration file")
    p_build.add_argument("--bin", help="The binary to build, if there are multiple binaries in the project")
    p_build.add_argument("--keep-tarball", action="store_true", help="Keep the tar archive after uploading")
    p_build.add_argument("--exclude-files", help="Comma-separated list of patterns to exclude")
    p_build.add_argument("--include-dirs", help="Comma-separated list of directories to include even if not tracked by git")
    p_build.add_argument("--project-id", help="The project ID to associate with the build")
    p_build.add_argument("--project-name", help="Create a new project with this name for the build")
    p_build.add_argument("--allow-dirty", action="store_true", help="Allow building with uncommitted changes")
    p_build.add_argument("--default-num-gpus", type=_positive_int(1, 10000, "Number of GPUs"),
        help="Default number of GPUs for proofs of this program")
    p_build.add_argument("--openvm-rust-toolchain", help=f"Guest toolchain (default: {OPENVM_RUST_TOOLCHAIN})")
    p_build.add_argument("--wait", action="store_true", help="Wait for the build to complete and download artifacts")
    build_sub = p_build.add_subparsers(dest="build_command")
    p = add(build_sub, "status", help="Check the status of a build")
    p.add_argument("--program-id", required=True)
    p = add(build_sub, "list", help="List programs")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=20)
    p = add(build_sub, "download", help="Download build artifacts")
    p.add_argument("--program-id", required=True)
    p.add_argument("--program-type", required=True, choices=list(PROGRAM_ARTIFACT_TYPES) + ["all"])
    p = add(build_sub, "logs", help="Download build logs")
    p.add_argument("--program-id", required=True)

    # -- upload-exe ---------------------------------------------------------
    p_upload = add(subparsers, "upload-exe", help="Upload a pre-built ELF and VMEXE")
    p_upload.add_argument("--config-id", help="The configuration ID to use")
    p_upload.add_argument("--project-id", help="The project ID to associate with the program")
    p_upload.add_argument("--project-name", help="The project name if creating a new project")
    p_upload.add_argument("--bin-name", help="The binary name")
    p_upload.add_argument("--program-name", help="Custom program name")
    p_upload.add_argument("--default-num-gpus", type=_positive_int(1, 10000, "Number of GPUs"))

    # -- prove --------------------------------------------------------------
    p_prove = add(subparsers, "prove", help="Generate a proof using the Axiom Proving Service")
    p_prove.add_argument("--program-id", help="The ID of the program to generate a proof for")
    p_prove.add_argument("--input", type=_input_arg, help="Input to the program (hex string or JSON file)")
    p_prove.add_argument("--type", dest="proof_type", choices=PROOF_TYPES, default="stark")
    p_prove.add_argument("--detach", action="store_true", help="Don't wait for completion")
    p_prove.add_argument("--num-gpus", type=_positive_int(1, 10000, "Number of GPUs"))
    p_prove.add_argument("--priority", type=_positive_int(1, 10, "Priority"))
    prove_sub = p_prove.add_subparsers(dest="prove_command")
    p = add(prove_sub, "status", help="Check the status of a proof")
    p.add_argument("--proof-id", required=True)
    p.add_argument("--wait", action="store_true", help="Wait for the proof to complete")
    p.add_argument("--no-save", action="store_true", help="Don't save the proof artifact on completion")
    p = add(prove_sub, "logs", help="Download logs for a proof")
    p.add_argument("--proof-id", required=True)
    p = add(prove_sub, "download", help="Download a proof")
    p.add_argument("--proof-id", required=True)
    p.add_argument("--type", dest="proof_type", choices=PROOF_TYPES, required=True)
    p.add_argument("--output", help="Output file path")
    p = add(prove_sub, "list", help="List all proofs for a program")
    p.add_argument("--program-id", required=True)
    p = add(prove_sub, "cancel", help="Cancel a running proof")
    p.add_argument("--proof-id", required=True)

    # -- run ----------------------------------------------------------------
    p_run = add(subparsers, "run", help="Execute a program using the Axiom Execution Service")
    p_run.add_argument("--program-id", help="The ID of the program to execute")
    p_run.add_argument("--input", type=_input_arg, help="Input to the program (hex string or JSON file)")
    p_run.add_argument("--wait", action="store_true", help="Wait for the execution to complete")
    run_sub = p_run.add_subparsers(dest="run_command")
    p = add(run_sub, "status", help="Check the status of an execution")
    p.add_argument("--execution-id", required=True)

    # -- verify -------------------------------------------------------------
    p_verify = add(subparsers, "verify", help="Verify a proof using the Axiom Verifying Service")
    p_verify.add_argument("--type", dest="proof_type", choices=PROOF_TYPES)
    p_verify.add_argument("--program-id", help="Program ID (required for STARK proofs)")
    p_verify.add_argument("--config-id", help="Config ID (EVM proofs; defaults to the stored one)")
    p_verify.add_argument("--proof", help="Path to the proof file")
    p_verify.add_argument("--detach", action="store_true", help="Don't wait for completion")
    verify_sub = p_verify.add_subparsers(dest="verify_command")
    p = add(verify_sub, "evm", help="Verify an EVM proof")
    p.add_argument("--proof", required=True)
    p.add_argument("--config-id")
    p = add(verify_sub, "stark", help="Verify a STARK proof")
    p.add_argument("--proof", required=True)
    p.add_argument("--program-id", required=True)
    p = add(verify_sub, "status", help="Check the status of a verification")
    p.add_argument("--verify-id", required=True)
    p.add_argument("--type", dest="proof_type", choices=PROOF_TYPES, default="evm")
    p.add_argument("--wait", action="store_true")

    # -- config -------------------------------------------------------------
    p_config = add(subparsers, "config", help="Manage VM configuration artifacts")
    config_sub = p_config.add_subparsers(dest="config_command")
    p = add(config_sub, "status", help="Get config information")
    p.add_argument("--config-id")
    p = add(config_sub, "download", help="Download config artifacts")
    p.add_argument("--config-id")
    which = p.add_mutually_exclusive_group()
    which.add_argument("--evm-verifier", action="store_true", help="Download the EVM verifier instead of the config")
    which.add_argument("--app-vm-commit", action="store_true", help="Download the app VM commitment instead of the config")
    p.add_argument("--output", help="Output file path")

    # -- download-keys ------------------------------------------------------
    p_keys = add(subparsers, "download-keys", help="Download proving keys")
    p_keys.add_argument("--config-id")
    p_keys.add_argument("--type", dest="key_type", required=True, choices=KEY_TYPES)
    p_keys.add_argument("--output", help="Output file path")
    p_keys.add_argument("--url-only", action="store_true", help="Print the download URL instead of downloading")

    # -- projects -----------------------------------------------------------
    p_projects = add(subparsers, "projects", help="Manage projects")
    projects_sub = p_projects.add_subparsers(dest="projects_command", required=True)
    p = add(projects_sub, "list", help="List all projects")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=20)
    p = add(projects_sub, "create", help="Create a new project")
    p.add_argument("name")
    p = add(projects_sub, "show", help="Show details for a project")
    p.add_argument("--project-id", required=True)
    p = add(projects_sub, "programs", help="List programs in a project")
    p.add_argument("--project-id", required=True)
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=20)
    p = add(projects_sub, "move", help="Move a program to a different project")
    p.add_argument("--program-id", required=True)
    p.add_argument("--to-project", required=True)

    # -- version / completions ----------------------------------------------
    p_version = add(subparsers, "version", help="Display version information")
    p_version.add_argument("--verbose", action="store_true")
    p_completions = add(subparsers, "completions", help="Generate shell completions")
    p_completions.add_argument("shell", choices=sorted(COMPLETION_FILES))

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    global _DEBUG

    argv = list(sys.argv[1:] if argv is None else argv)
    # cargo passes the subcommand name through: `cargo axiom build` -> ["axiom", "build"]
    if argv and argv[0] == "axiom":
        argv = argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    args.debug = getattr(args, "debug", False)
    args.json = getattr(args, "json", False)
    _DEBUG = args.debug

    try:
        if args.command == "init":
            cmd_init(args)
        elif args.command == "register":
            cmd_register(args)
        elif args.command == "build":
            cmd_build(args)
        elif args.command == "upload-exe":
            cmd_upload_exe(args)
        elif args.command == "prove":
            cmd_prove(args)
        elif args.command == "run":
            cmd_run(args)
        elif args.command == "verify":
            cmd_verify(args)
        elif args.command == "config":
            cmd_config(args)
        elif args.command == "download-keys":
            cmd_download_keys(args)
        elif args.command == "projects":
            cmd_projects(args)
        elif args.command == "version":
            cmd_version(args)
        elif args.command == "completions":
            cmd_completions(args)
        else:
            parser.print_help()
            sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except (AxiomError, OSError) as e:
        message = e.message if isinstance(e, AxiomError) else str(e)
        if args.json:
            print(json.dumps({"error": message}), file=sys.stderr)
        else:
            print(red(f"Error: {message}"), file=sys.stderr)
            if args.debug:
                traceback.print_exc()
        sys.exit(1)
    except Exception as e:
        message = f"unexpected {type(e).__name__}: {e}"
        if args.json:
            print(json.dumps({"error": message}), file=sys.stderr)
        else:
            print(red(f"Error: {message}"), file=sys.stderr)
            print(dim("Re-run with --debug for the full traceback."), file=sys.stderr)
        if args.debug:
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
