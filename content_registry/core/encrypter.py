"""
Encryption collaborators.

The encryption itself happens outside this service. An Encrypter turns a
master file into an EncryptedArtifact: an output file plus the content key,
checksum and length. This module provides:
- Abstract Encrypter interface
- StubEncrypter for development and tests (copies bytes, no encryption)
- CommandEncrypter that delegates to an external packaging tool
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import secrets
import shlex
import shutil
import subprocess
import tempfile
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import structlog

from ..config import Settings
from ..errors import EncryptionError
from .artifact import EncryptedArtifact

logger = structlog.get_logger()


def sha256_file(path: Path) -> str:
    """Hex sha256 of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class Encrypter(ABC):
    """Abstract base class for the encryption step."""

    def __init__(self, work_directory: Optional[str] = None):
        self.work_directory = Path(work_directory or tempfile.gettempdir())

    def _output_path(self) -> Path:
        self.work_directory.mkdir(parents=True, exist_ok=True)
        return self.work_directory / f"{uuid.uuid4().hex}.enc"

    @abstractmethod
    def encrypt(self, input_path: Path, disposition: str) -> EncryptedArtifact:
        """Encrypt input_path and return the produced artifact.

        Args:
            input_path: Master file to encrypt
            disposition: Display filename for the encrypted artifact

        Returns:
            EncryptedArtifact whose file the caller removes after use

        Raises:
            EncryptionError: If no artifact could be produced
        """
        pass


class StubEncrypter(Encrypter):
    """Development encrypter.

    Copies the input unchanged and invents a random 32-byte content key. The
    artifact is shaped exactly like the real one so the registration path is
    exercised end to end.
    """

    def encrypt(self, input_path: Path, disposition: str) -> EncryptedArtifact:
        output = self._output_path()
        try:
            shutil.copyfile(input_path, output)
            checksum = sha256_file(output)
            length = output.stat().st_size
        except OSError as e:
            output.unlink(missing_ok=True)
            raise EncryptionError(f"Cannot prepare {input_path}: {e}") from e

        logger.info(
            "stub_encrypt_complete",
            input=str(input_path),
            disposition=disposition,
            length=length,
        )
        return EncryptedArtifact(
            content_key=secrets.token_bytes(32),
            path=output,
            location=disposition,
            length=length,
            sha256=checksum,
        )


class CommandEncrypter(Encrypter):
    """Runs an external packaging tool.

    The tool is called as ``<command> --input IN --output OUT --disposition NAME``
    and must print a JSON object on stdout:

        {"content_key": "<base64>", "checksum": "<hex>", "size": 123, "output": "OUT"}

    checksum and size are optional; output defaults to the requested path.
    """

    def __init__(
        self,
        command: str,
        work_directory: Optional[str] = None,
        timeout_seconds: int = 300,
    ):
        super().__init__(work_directory)
        if not command:
            raise ValueError("CommandEncrypter needs a command")
        self.command: List[str] = shlex.split(command)
        self.timeout_seconds = timeout_seconds

    def encrypt(self, input_path: Path, disposition: str) -> EncryptedArtifact:
        output = self._output_path()
        args = self.command + [
            "--input",
            str(input_path),
            "--output",
            str(output),
            "--disposition",
            disposition,
        ]
        log = logger.bind(input=str(input_path), disposition=disposition)
        log.info("encrypt_command_start", command=self.command[0])

        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            output.unlink(missing_ok=True)
            raise EncryptionError(f"Encryption tool failed to run: {e}") from e

        if completed.returncode != 0:
            output.unlink(missing_ok=True)
            log.error(
                "encrypt_command_failed",
                returncode=completed.returncode,
                stderr=completed.stderr[-2000:],
            )
            raise EncryptionError(
                f"Encryption tool exited with status {completed.returncode}"
            )

        try:
            result = json.loads(completed.stdout)
            content_key = base64.b64decode(result["content_key"], validate=True)
            size = result.get("size")
            length = int(size) if size is not None else None
        except (ValueError, KeyError, TypeError, binascii.Error) as e:
            output.unlink(missing_ok=True)
            raise EncryptionError(f"Unreadable encryption tool output: {e}") from e

        produced = Path(result.get("output") or output)
        if not produced.is_file():
            raise EncryptionError(f"Encryption tool produced no file at {produced}")

        log.info("encrypt_command_complete", output=str(produced), size=length)
        return EncryptedArtifact(
            content_key=content_key,
            path=produced,
            location=disposition,
            length=length,
            sha256=result.get("checksum"),
        )


def get_encrypter(settings: Settings) -> Encrypter:
    """Build the encrypter selected by settings."""
    if settings.encrypter == "stub":
        return StubEncrypter(settings.work_directory)
    elif settings.encrypter == "command":
        return CommandEncrypter(
            settings.encrypt_command,
            work_directory=settings.work_directory,
            timeout_seconds=settings.encrypt_timeout_seconds,
        )
    raise ValueError(
        f"Unsupported encrypter: {settings.encrypter}. Supported: stub, command"
    )
