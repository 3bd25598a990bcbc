import asyncio

import pytest

from mediabot.config.settings import AudioConfig
from mediabot.core.errors import ConversionError
from mediabot.services.convert import FFmpegConverter
from mediabot.services.ytdlp import CompletedProcess, SubprocessExecutor


def fake_run(returncode=0, stdout=b"", stderr=b"", write=None, raises=None):
    calls = []

    async def run(cmd, timeout, capture_stderr=True):
        calls.append(cmd)
        if raises:
            raise raises
        if write is not None:
            with open(cmd[-1], "wb") as f:
                f.write(write)
        return CompletedProcess(returncode, stdout, stderr)

    run.calls = calls
    return staticmethod(run)


@pytest.mark.asyncio
async def test_probe_missing_binary_degrades():
    converter = FFmpegConverter(AudioConfig(ffmpeg_binary="mediabot-no-such-ffmpeg"))
    available, version = await converter.probe()
    assert available is False
    assert version == "unknown"
    assert converter.available is False


@pytest.mark.asyncio
async def test_probe_records_version(monkeypatch):
    monkeypatch.setattr(SubprocessExecutor, "run", fake_run(stdout=b"ffmpeg version 6.1 Copyright\nbuilt with gcc"))
    converter = FFmpegConverter(AudioConfig())
    assert await converter.probe() == (True, "ffmpeg version 6.1 Copyright")


@pytest.mark.asyncio
async def test_probe_timeout_degrades(monkeypatch):
    monkeypatch.setattr(SubprocessExecutor, "run", fake_run(raises=asyncio.TimeoutError()))
    converter = FFmpegConverter(AudioConfig())
    assert (await converter.probe())[0] is False


@pytest.mark.asyncio
async def test_convert_when_unavailable(tmp_path):
    converter = FFmpegConverter(AudioConfig())
    converter.available = False
    with pytest.raises(ConversionError):
        await converter.convert(tmp_path / "in.webm", tmp_path / "out.mp3")


@pytest.mark.asyncio
async def test_convert_success(tmp_path, monkeypatch):
    run = fake_run(write=b"ID3")
    monkeypatch.setattr(SubprocessExecutor, "run", run)
    converter = FFmpegConverter(AudioConfig())
    source = tmp_path / "in.webm"
    source.write_bytes(b"webm")

    out = await converter.convert(source, tmp_path / "out.mp3")

    assert out.read_bytes() == b"ID3"
    cmd = run.__func__.calls[0]
    assert cmd[0] == "ffmpeg"
    assert "libmp3lame" in cmd
    assert cmd[cmd.index("-i") + 1] == str(source)


@pytest.mark.asyncio
async def test_nonzero_exit_is_failure(tmp_path, monkeypatch):
    monkeypatch.setattr(SubprocessExecutor, "run", fake_run(returncode=1, stderr=b"Invalid data", write=b"x"))
    with pytest.raises(ConversionError, match="Invalid data"):
        await FFmpegConverter(AudioConfig()).convert(tmp_path / "in.webm", tmp_path / "out.mp3")


@pytest.mark.asyncio
async def test_empty_output_is_failure(tmp_path, monkeypatch):
    monkeypatch.setattr(SubprocessExecutor, "run", fake_run(write=b""))
    with pytest.raises(ConversionError):
        await FFmpegConverter(AudioConfig()).convert(tmp_path / "in.webm", tmp_path / "out.mp3")


@pytest.mark.asyncio
async def test_missing_binary_at_convert_time(tmp_path, monkeypatch):
    monkeypatch.setattr(SubprocessExecutor, "run", fake_run(raises=FileNotFoundError("ffmpeg")))
    with pytest.raises(ConversionError):
        await FFmpegConverter(AudioConfig()).convert(tmp_path / "in.webm", tmp_path / "out.mp3")


def test_needs_conversion():
    converter = FFmpegConverter(AudioConfig(target_format=".MP3"))
    assert converter.audio.target_format == "mp3"
    assert converter.needs_conversion("webm")
    assert not converter.needs_conversion("mp3")
    assert not converter.needs_conversion(".MP3")


def test_other_containers_use_default_encoder(tmp_path):
    cmd = FFmpegConverter(AudioConfig(target_format="ogg")).build_command(tmp_path / "a.webm", tmp_path / "a.ogg")
    assert "libmp3lame" not in cmd
    assert cmd[-1].endswith("a.ogg")
