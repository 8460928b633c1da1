"""Timeout values in seconds."""

from dataclasses import dataclass


@dataclass
class Timeouts:
    LONG: int = 60
    QUERY: int = 15
    DERIVE: int = 25
