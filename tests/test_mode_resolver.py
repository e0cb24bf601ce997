"""
Tests for backend resolution and mode labels.
"""

import pytest

from hybridchat.core.mode_resolver import active_mode_label, resolve_backend
from hybridchat.models.session import Backend, ConnectionMode


class TestResolveBackend:
    """Every combination of mode, connectivity and local availability."""

    @pytest.mark.parametrize("mode, online, local_available, expected", [
        (ConnectionMode.CLOUD, True, True, Backend.CLOUD),
        (ConnectionMode.CLOUD, True, False, Backend.CLOUD),
        (ConnectionMode.CLOUD, False, True, Backend.LOCAL),
        (ConnectionMode.CLOUD, False, False, Backend.LOCAL),
        (ConnectionMode.LOCAL, True, True, Backend.LOCAL),
        (ConnectionMode.LOCAL, True, False, Backend.LOCAL),
        (ConnectionMode.LOCAL, False, True, Backend.LOCAL),
        (ConnectionMode.LOCAL, False, False, Backend.LOCAL),
        (ConnectionMode.AUTO, True, True, Backend.CLOUD),
        (ConnectionMode.AUTO, True, False, Backend.CLOUD),
        (ConnectionMode.AUTO, False, True, Backend.LOCAL),
        (ConnectionMode.AUTO, False, False, Backend.LOCAL),
    ])
    def test_resolution(self, mode, online, local_available, expected):
        assert resolve_backend(mode, online, local_available) == expected

    def test_never_cloud_while_offline(self):
        for mode in ConnectionMode:
            assert resolve_backend(mode, False, True) == Backend.LOCAL


class TestActiveModeLabel:
    @pytest.mark.parametrize("mode, online, expected", [
        (ConnectionMode.AUTO, True, "Auto (Cloud)"),
        (ConnectionMode.AUTO, False, "Auto (Offline)"),
        (ConnectionMode.CLOUD, True, "Cloud (Gemini 2.5)"),
        (ConnectionMode.CLOUD, False, "Cloud (Gemini 2.5)"),
        (ConnectionMode.LOCAL, True, "Offline (Gemini Nano)"),
    ])
    def test_labels(self, mode, online, expected):
        assert active_mode_label(mode, online) == expected
