"""Unit tests for MicrophoneSource.

sounddevice is replaced with a fake module so no input device is needed.
"""

from __future__ import annotations

import asyncio
import sys
import types

import pytest

from live_infra.audio.source import MicrophoneSource
from live_infra.errors import AudioDeviceError


class FakeRawInputStream:
    instances: list[FakeRawInputStream] = []

    def __init__(self, *, samplerate, channels, dtype, blocksize, device, callback):
        self.kwargs = {
            "samplerate": samplerate,
            "channels": channels,
            "dtype": dtype,
            "blocksize": blocksize,
            "device": device,
        }
        self.callback = callback
        self.started = False
        self.closed = False
        FakeRawInputStream.instances.append(self)

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


@pytest.fixture
def fake_sounddevice(monkeypatch):
    FakeRawInputStream.instances = []
    module = types.ModuleType("sounddevice")
    module.RawInputStream = FakeRawInputStream
    monkeypatch.setitem(sys.modules, "sounddevice", module)
    return module


class TestMicrophoneSource:
    """Test capture lifecycle."""

    @pytest.mark.asyncio
    async def test_start_opens_mono_int16_stream(self, fake_sounddevice):
        """Test stream parameters."""
        source = MicrophoneSource(sample_rate=16000, block_duration=0.1)
        await source.start()

        (stream,) = FakeRawInputStream.instances
        assert stream.started is True
        assert stream.kwargs == {
            "samplerate": 16000,
            "channels": 1,
            "dtype": "int16",
            "blocksize": 1600,
            "device": None,
        }
        assert source.running is True
        await source.stop()

    @pytest.mark.asyncio
    async def test_chunks_yield_captured_blocks(self, fake_sounddevice):
        """Test blocks delivered by the callback come out of chunks()."""
        source = MicrophoneSource()
        await source.start()
        stream = FakeRawInputStream.instances[0]

        stream.callback(b"\x01\x00", 1, None, None)
        stream.callback(b"\x02\x00", 1, None, None)
        await asyncio.sleep(0)
        await source.stop()

        received = [chunk async for chunk in source.chunks()]
        assert received == [b"\x01\x00", b"\x02\x00"]
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_cannot_restart(self, fake_sounddevice):
        """Test the source is single-use."""
        source = MicrophoneSource()
        await source.start()
        await source.stop()

        with pytest.raises(RuntimeError):
            await source.start()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, fake_sounddevice):
        """Test stopping twice."""
        source = MicrophoneSource()
        await source.start()
        await source.stop()
        await source.stop()

        assert source.running is False

    @pytest.mark.asyncio
    async def test_missing_sounddevice(self, monkeypatch):
        """Test a helpful error when the voice extra is not installed."""
        monkeypatch.setitem(sys.modules, "sounddevice", None)

        with pytest.raises(AudioDeviceError) as exc_info:
            await MicrophoneSource().start()

        assert "live-infra[voice]" in exc_info.value.hint

    @pytest.mark.asyncio
    async def test_device_failure(self, fake_sounddevice):
        """Test a device that cannot be opened."""

        def broken(**kwargs):
            raise OSError("device busy")

        fake_sounddevice.RawInputStream = broken

        with pytest.raises(AudioDeviceError, match="device busy"):
            await MicrophoneSource(device=3).start()
