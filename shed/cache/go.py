"""
Go build backend.

Versions are resolved through the Go module proxy protocol
(https://go.dev/ref/mod#goproxy-protocol) and executables are built with
``go install <import path>@<version>``.

An import path names a package, not a module, so resolution tries every
prefix of the import path as a module path, longest first, the same way the
go command does. The first module the proxy knows about wins.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from shed.config.settings import DEFAULT_GO_PROXY
from shed.core.download import DownloadError, RemoteNotFoundError, fetch_json
from shed.core.exceptions import BuildError, ResolutionError
from shed.core.interfaces import Builder
from shed.core.platform import PlatformInfo, detect_platform
from shed.core.tool import REF_LATEST, escape_path, short_name

logger = logging.getLogger(__name__)


def candidate_modules(import_path: str) -> List[str]:
    """
    List module paths that could provide ``import_path``, longest first.

    Example:
        >>> candidate_modules("github.com/a/b/cmd/c")
        ['github.com/a/b/cmd/c', 'github.com/a/b/cmd', 'github.com/a/b', 'github.com/a', 'github.com']
    """
    parts = import_path.split("/")
    return ["/".join(parts[:i]) for i in range(len(parts), 0, -1)]


class GoBuilder(Builder):
    """
    Builds tools with the go command.

    Attributes:
        go_binary: Go executable to run
        proxy: Base URL of the Go module proxy
        http_timeout: Timeout for proxy requests in seconds
    """

    def __init__(
        self,
        go_binary: str = "go",
        proxy: str = DEFAULT_GO_PROXY,
        http_timeout: float = 30,
        platform: Optional[PlatformInfo] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        self.go_binary = go_binary
        self.proxy = proxy.rstrip("/")
        self.http_timeout = http_timeout
        self.platform = platform or detect_platform()
        self._env = env

    def _info_url(self, module: str, ref: str) -> str:
        if ref == REF_LATEST:
            return f"{self.proxy}/{escape_path(module)}/@latest"
        return f"{self.proxy}/{escape_path(module)}/@v/{escape_path(ref)}.info"

    def resolve_version(self, import_path: str, ref: str) -> str:
        """Resolve ``ref`` by asking the module proxy about each candidate module."""
        ref = ref or REF_LATEST

        for module in candidate_modules(import_path):
            url = self._info_url(module, ref)
            try:
                info = fetch_json(url, timeout=self.http_timeout)
            except RemoteNotFoundError:
                logger.debug(f"No module {module}@{ref} on proxy")
                continue
            except DownloadError as e:
                raise ResolutionError(import_path, ref, str(e)) from e

            version = info.get("Version") if isinstance(info, dict) else None
            if not version:
                raise ResolutionError(
                    import_path, ref, f"proxy returned no version for module {module}"
                )

            logger.debug(f"Resolved {import_path}@{ref} to {version} (module {module})")
            return version

        raise ResolutionError(import_path, ref, "no module provides this import path")

    def build(self, import_path: str, version: str, dest_dir: Path) -> Path:
        """Run ``go install`` with GOBIN pointing at ``dest_dir``."""
        env = dict(os.environ if self._env is None else self._env)
        env["GOBIN"] = str(dest_dir)
        cmd = [self.go_binary, "install", f"{import_path}@{version}"]

        logger.info(f"Building {import_path}@{version}")
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, cwd=dest_dir, env=env
            )
        except OSError as e:
            raise BuildError(
                import_path, version, f"failed to execute {self.go_binary}: {e}"
            ) from e

        if result.returncode != 0:
            output = result.stderr.strip() or result.stdout.strip()
            raise BuildError(
                import_path,
                version,
                f"'{' '.join(cmd)}' exited with code {result.returncode}\n{output}",
            )

        executable = dest_dir / f"{short_name(import_path)}{self.platform.exe_suffix}"
        if not executable.is_file():
            raise BuildError(
                import_path, version, f"go install did not produce {executable.name}"
            )
        return executable


__all__ = ["GoBuilder", "candidate_modules"]
