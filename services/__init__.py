"""Services module - Business logic layer.

This module provides the main service classes for the application:
- VoiceAuthService: Voice lock (enroll, verify, reset, status)
- CommandRelay: Lock-gated relay of robotic arm commands

Submodules:
- audio: Audio decoding utilities
- voice: Voice processing (MFCC, embedding, matching, session)
- arm: Robotic arm command relay
- interfaces: Service interfaces
"""

from services.voice_service import VoiceAuthService
from services.arm.command_relay import CommandRelay

__all__ = [
    "VoiceAuthService",
    "CommandRelay",
]
