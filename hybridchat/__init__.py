"""hybridchat - dual-backend (cloud / on-device) streaming chat core."""

__version__ = "1.0.0"
