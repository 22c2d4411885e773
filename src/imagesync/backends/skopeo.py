"""Image transport backed by the skopeo command-line tool."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from typing import List, Optional

from ..endpoints import ArchiveFile, Endpoint, OciLayoutDir, Repository, SingleImage
from ..errors import ConfigurationError, CopyError, ListingError
from . import TLSPolicy

logger = logging.getLogger(__name__)

# Signature verification is out of scope: every image is accepted.
ACCEPT_ANYTHING_POLICY = {"default": [{"type": "insecureAcceptAnything"}]}


def transport_reference(endpoint: Endpoint) -> str:
    """Renders ``endpoint`` in skopeo's ``transport:reference`` syntax."""
    if isinstance(endpoint, ArchiveFile):
        return f"{endpoint.format.value}:{endpoint.path}"
    if isinstance(endpoint, OciLayoutDir):
        return f"oci:{endpoint.path}"
    if isinstance(endpoint, (SingleImage, Repository)):
        return f"docker://{endpoint.reference}"
    raise TypeError(f"unsupported endpoint {endpoint!r}")


class SkopeoClient:
    """Lists and copies images by running ``skopeo``."""

    def __init__(self, executable: str = "skopeo", show_progress: bool = True):
        self.executable = executable
        self.show_progress = show_progress

    def _run(self, args: List[str], capture_stdout: bool) -> subprocess.CompletedProcess:
        cmd = [self.executable] + args
        logger.debug("Executing: %s", " ".join(cmd))
        if capture_stdout or not self.show_progress:
            stdout: Optional[int] = subprocess.PIPE
        else:
            stdout = None
        try:
            return subprocess.run(
                cmd, check=True, stdout=stdout, stderr=subprocess.PIPE, text=True
            )
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"{self.executable!r} not found, is skopeo installed?"
            ) from e

    def list_tags(self, repository: Repository, tls_verify: bool) -> List[str]:
        args = ["list-tags"]
        if not tls_verify:
            args.append("--tls-verify=false")
        args.append(transport_reference(repository))

        try:
            proc = self._run(args, capture_stdout=True)
        except subprocess.CalledProcessError as e:
            raise ListingError(str(repository), (e.stderr or "").strip() or str(e)) from e

        try:
            payload = json.loads(proc.stdout)
        except ValueError as e:
            raise ListingError(str(repository), f"unexpected skopeo output: {e}") from e
        return list(payload.get("Tags") or [])

    def copy(self, source: Endpoint, destination: Endpoint, tls: TLSPolicy) -> None:
        # Each call gets its own policy file so concurrent copies never share one.
        with tempfile.NamedTemporaryFile(
            mode="w", delete=False, suffix=".policy.json"
        ) as tmp_policy:
            json.dump(ACCEPT_ANYTHING_POLICY, tmp_policy)
            policy_path = tmp_policy.name

        try:
            args = ["copy", "--all", "--policy", policy_path]
            if not tls.source_verify:
                args.append("--src-tls-verify=false")
            if not tls.destination_verify:
                args.append("--dest-tls-verify=false")
            args += [transport_reference(source), transport_reference(destination)]

            try:
                self._run(args, capture_stdout=False)
            except subprocess.CalledProcessError as e:
                raise CopyError(
                    str(source), str(destination), (e.stderr or "").strip() or str(e)
                ) from e
        finally:
            if os.path.exists(policy_path):
                os.unlink(policy_path)
