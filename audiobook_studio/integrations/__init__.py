"""Clients for external HTTP services."""

from .command_client import CommandResult, CommandServerClient
from .elevenlabs_client import ElevenLabsClient, PhonemeRule

__all__ = ["CommandResult", "CommandServerClient", "ElevenLabsClient", "PhonemeRule"]
