"""Exceptions raised by the EmonCMS MyElectric integration."""
from __future__ import annotations

from enum import StrEnum


class EmonCMSError(Exception):
    """Base error raised by the EmonCMS client."""


class EmonCMSAuthError(EmonCMSError):
    """Raised when the API key is rejected."""


class MyElectricErrorKind(StrEnum):
    """Kinds of failure surfaced on the error stream."""

    GENERIC = "generic"
    NOT_CONFIGURED = "not_configured"
    UPDATE_FAILED = "update_failed"


class MyElectricError(Exception):
    """Failure of the MyElectric app."""

    kind = MyElectricErrorKind.GENERIC


class NotConfiguredError(MyElectricError):
    """Raised when the use or kWh feed has not been selected."""

    kind = MyElectricErrorKind.NOT_CONFIGURED


class UpdateFailedError(MyElectricError):
    """Raised when the app configuration could not be saved."""

    kind = MyElectricErrorKind.UPDATE_FAILED


class AppConfigNotFoundError(KeyError):
    """Raised when no configuration record exists for an app id."""


def error_kind(err: BaseException) -> MyElectricErrorKind:
    """Classify ``err``; anything that is not an app error is generic."""
    if isinstance(err, MyElectricError):
        return err.kind
    return MyElectricErrorKind.GENERIC
