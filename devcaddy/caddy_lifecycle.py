"""
Caddy process management.

devcaddy only launches Caddy when the admin API is not answering. The
process is started with `caddy run`, its admin endpoint bound to the port
from caddy.json, and stderr appended to ~/.devcaddy/caddy.log. Caddy logs
JSON lines; it is ready once it logs "serving initial configuration".
"""

import json
import logging
import os
import platform
import re
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from .config import CaddySettings, get_devcaddy_dir
from .errors import CaddyNotFoundError, CaddySpawnError
from .timeouts import get_timeout

logger = logging.getLogger("devcaddy.caddy_lifecycle")

IS_WINDOWS = platform.system() == "Windows"

READY_MESSAGE = "serving initial configuration"
POLL_INTERVAL = 0.1
MAX_LOG_BYTES = 5 * 1024 * 1024

VERSION_PATTERN = re.compile(r"v?(\d+)\.(\d+)\.(\d+)")


@dataclass
class CaddyProcess:
    pid: int
    log_file: Path
    popen: subprocess.Popen | None = None

    def is_running(self) -> bool:
        if self.popen is not None:
            return self.popen.poll() is None
        return is_pid_alive(self.pid)


def get_pid_file() -> Path:
    return get_devcaddy_dir() / "caddy.pid"


def get_log_file() -> Path:
    return get_devcaddy_dir() / "caddy.log"


def find_caddy_executable() -> str | None:
    """Find the Caddy executable: DEVCADDY_CADDY_BIN, PATH, then common locations"""
    override = os.getenv("DEVCADDY_CADDY_BIN")
    if override:
        return override if Path(override).exists() else None

    cmd = shutil.which("caddy")
    if cmd:
        return cmd

    if IS_WINDOWS:
        base = Path(os.environ.get("LOCALAPPDATA", "")) / "Microsoft" / "WinGet" / "Packages"
        if base.exists():
            for path in base.glob("CaddyServer.Caddy*\\caddy.exe"):
                return str(path)
        common_paths = [
            Path("C:/Program Files/Caddy/caddy.exe"),
            Path("C:/Caddy/caddy.exe"),
        ]
    else:
        common_paths = [
            Path("/usr/local/bin/caddy"),
            Path("/usr/bin/caddy"),
            Path("/opt/homebrew/bin/caddy"),
            Path.home() / ".local" / "bin" / "caddy",
        ]

    for path in common_paths:
        if path.exists():
            return str(path)

    return None


def parse_caddy_version(output: str) -> tuple[int, int, int] | None:
    """Parse `caddy version` output such as 'v2.7.6 h1:...'"""
    match = VERSION_PATTERN.search(output or "")
    if not match:
        return None
    return (int(match.group(1)), int(match.group(2)), int(match.group(3)))


def get_caddy_version(caddy_exe: str) -> tuple[int, int, int] | None:
    try:
        result = subprocess.run(
            [caddy_exe, "version"],
            capture_output=True,
            text=True,
            check=False,
            timeout=get_timeout("caddy_version"),
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Could not run %s version: %s", caddy_exe, e)
        return None
    return parse_caddy_version(result.stdout)


def read_pid(pid_file: Path | None = None) -> int | None:
    """Read the PID Caddy wrote with --pidfile"""
    pid_file = pid_file or get_pid_file()
    try:
        return int(pid_file.read_text().strip())
    except (OSError, ValueError):
        return None


def is_pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
        return True
    except OSError:
        return False


def running_pid() -> int | None:
    """PID of the Caddy devcaddy launched, if it is still alive"""
    pid = read_pid()
    if pid and is_pid_alive(pid):
        return pid
    return None


def rotate_log(log_file: Path, max_bytes: int | None = None) -> bool:
    """Move a log past max_bytes to <name>.1, replacing the previous one"""
    limit = MAX_LOG_BYTES if max_bytes is None else max_bytes
    try:
        if log_file.stat().st_size <= limit:
            return False
        log_file.replace(log_file.with_name(log_file.name + ".1"))
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Could not rotate %s: %s", log_file, e)
        return False
    return True


def _reap(process: subprocess.Popen) -> None:
    """Wait on Caddy in the background so an early exit leaves no zombie"""
    threading.Thread(target=process.wait, name="caddy-reaper", daemon=True).start()


def is_ready_line(line: str) -> bool:
    """True for the JSON log line Caddy emits once its config is live"""
    line = line.strip()
    if not line:
        return False
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return False
    return isinstance(record, dict) and record.get("msg") == READY_MESSAGE


def _terminate(process: subprocess.Popen) -> None:
    process.terminate()
    try:
        process.wait(timeout=get_timeout("caddy_terminate"))
    except subprocess.TimeoutExpired:
        process.kill()


def wait_until_ready(process: subprocess.Popen, log_file: Path, offset: int, timeout: float) -> None:
    """
    Follow log_file from offset until Caddy reports it is serving.

    Raises CaddySpawnError if the process exits first or the timeout expires.
    """
    deadline = time.monotonic() + timeout
    buffer = ""

    with open(log_file, encoding="utf-8", errors="replace") as log:
        log.seek(offset)
        while True:
            chunk = log.read()
            if chunk:
                buffer += chunk
                *lines, buffer = buffer.split("\n")
                for line in lines:
                    if is_ready_line(line):
                        return
                    logger.debug("caddy: %s", line)
                continue

            code = process.poll()
            if code is not None:
                # Flush whatever was written right before exiting
                if is_ready_line(buffer + log.read()):
                    return
                raise CaddySpawnError(f"Caddy exited with code {code}. See {log_file}")

            if time.monotonic() >= deadline:
                _terminate(process)
                raise CaddySpawnError(f"Caddy did not serve its configuration within {timeout:g}s. See {log_file}")

            time.sleep(POLL_INTERVAL)


def spawn_caddy(settings: CaddySettings, caddy_exe: str | None = None, timeout: float | None = None) -> CaddyProcess:
    """Launch `caddy run` and block until it serves its initial configuration"""
    caddy_exe = caddy_exe or find_caddy_executable()
    if not caddy_exe:
        raise CaddyNotFoundError("Caddy not found. Install it or set DEVCADDY_CADDY_BIN.")

    devcaddy_dir = get_devcaddy_dir()
    devcaddy_dir.mkdir(parents=True, exist_ok=True)
    pid_file = get_pid_file()
    log_file = get_log_file()
    # Only spawned when no Caddy is running, so nothing else writes the log
    rotate_log(log_file)
    log_file.touch(exist_ok=True)
    offset = log_file.stat().st_size

    env = os.environ.copy()
    env["CADDY_ADMIN"] = settings.admin_address

    cmd = [caddy_exe, "run", "--pidfile", str(pid_file)]
    logger.info("Starting %s with admin on %s", " ".join(cmd), settings.admin_address)

    creationflags = 0
    if IS_WINDOWS and hasattr(subprocess, "CREATE_NEW_PROCESS_GROUP"):
        creationflags = subprocess.CREATE_NEW_PROCESS_GROUP

    try:
        with open(log_file, "a", encoding="utf-8") as log:
            process = subprocess.Popen(
                cmd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=log,
                start_new_session=not IS_WINDOWS,
                creationflags=creationflags,
            )
    except OSError as e:
        raise CaddySpawnError(f"Failed to start {caddy_exe}: {e}") from e

    wait_until_ready(process, log_file, offset, timeout if timeout is not None else get_timeout("caddy_ready"))
    _reap(process)
    logger.info("Caddy ready (pid %s)", process.pid)
    return CaddyProcess(pid=process.pid, log_file=log_file, popen=process)
