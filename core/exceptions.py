"""Custom exceptions for the application."""

from __future__ import annotations


class VoiceLockException(Exception):
    """Base exception for the voice lock service."""
    pass


class AudioValidationError(VoiceLockException):
    """Raised when an audio signal cannot be turned into features."""
    pass


class ProfileEmptyError(VoiceLockException):
    """Raised when verification is attempted with no enrolled embeddings."""
    pass


class ModelUnavailableError(VoiceLockException):
    """Raised when the embedding model cannot produce an embedding."""
    pass


class ModelLoadError(ModelUnavailableError):
    """Raised when ML model fails to load."""
    pass


class TransportError(VoiceLockException):
    """Raised when the arm transport fails to open or write."""
    pass


class ArmLockedError(VoiceLockException):
    """Raised when an arm command is issued while the voice lock is engaged."""
    pass


class ArmNotConnectedError(VoiceLockException):
    """Raised when an arm command is issued without a connected transport."""
    pass
