# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/errors.py

from __future__ import annotations


class SetupError(RuntimeError):
    """Base class for provisioning failures. ``stage`` names the failing step."""

    stage = "setup"

    def __init__(self, message: str, *, stage: str | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ProvisioningAborted(SetupError):
    """Operator declined to continue. Not a failure: exit code 0."""


class MissingBinaryError(SetupError):
    stage = "binaries"


class DirectoryError(SetupError):
    stage = "directory"


class PortCheckError(SetupError):
    """Bind failed for a reason other than the port being taken."""

    stage = "ports"


class ConfigInitError(SetupError):
    stage = "identity"


class IdentityTimeout(SetupError):
    stage = "identity"


class SnapshotDownloadError(SetupError):
    stage = "snapshot"


class SnapshotImportError(SetupError):
    stage = "snapshot"


class ServiceError(SetupError):
    stage = "service"


class BootstrapError(SetupError):
    stage = "bootstrap"


class ProtocolLookupError(SetupError):
    stage = "bootstrap"


class ClientError(SetupError):
    """An octez-client call failed."""

    stage = "baker"


class FaucetError(SetupError):
    stage = "baker"


class RegistrationError(SetupError):
    """Delegate registration failed. The operator may fund the key and retry."""

    stage = "baker"


class InsufficientFaucetAmount(SetupError, ValueError):
    stage = "baker"


class CommandError(RuntimeError):
    """A local command exited non-zero."""

    def __init__(self, argv, returncode: int, stdout: str = "", stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout).strip()
        msg = f"{' '.join(self.argv)} failed (rc={returncode})"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
