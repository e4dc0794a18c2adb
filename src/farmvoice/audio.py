"""
Audio utilities for the voice assistant.

- WAV read/write (mono 16-bit PCM) for placeholder audio
- Container sniffing so uploads without an explicit encoding still get a
  sensible speech-recognition hint
"""

import io
import wave
from dataclasses import dataclass
from typing import Optional

PLACEHOLDER_SAMPLE_RATE = 16000
PLACEHOLDER_SECONDS = 0.5

WEBM_MAGIC = b"\x1a\x45\xdf\xa3"
OGG_MAGIC = b"OggS"
FLAC_MAGIC = b"fLaC"
AMR_MAGIC = b"#!AMR\n"
AMR_WB_MAGIC = b"#!AMR-WB\n"


@dataclass(frozen=True)
class AudioFormat:
    """Encoding name (Google RecognitionConfig style) plus sample rate."""
    encoding: str
    sample_rate: Optional[int] = None


def read_wav_mono_pcm16(wav_bytes: bytes) -> tuple[int, bytes]:
    """
    Read a WAV byte string and return (sample_rate, PCM16 bytes).

    Raises ValueError for empty input, non-16-bit audio or more than one channel.
    """
    if not wav_bytes:
        raise ValueError("Empty WAV")

    try:
        with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
            channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as e:
        raise ValueError(f"Invalid WAV: {e}") from e

    if sample_width != 2:
        raise ValueError(f"Unsupported WAV sample width: {sample_width * 8} bits")
    if channels != 1:
        raise ValueError(f"Unsupported channel count: {channels}")

    return int(sample_rate), frames


def write_wav_mono_pcm16(pcm_bytes: bytes, sample_rate: int) -> bytes:
    """Create a mono 16-bit PCM WAV byte string from PCM bytes."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm_bytes or b"")
    return buf.getvalue()


def silence_wav(seconds: float = PLACEHOLDER_SECONDS, sample_rate: int = PLACEHOLDER_SAMPLE_RATE) -> bytes:
    """A WAV file of digital silence."""
    samples = max(1, int(sample_rate * max(0.0, seconds)))
    return write_wav_mono_pcm16(b"\x00\x00" * samples, sample_rate)


def wav_duration_seconds(wav_bytes: bytes) -> float:
    if not wav_bytes:
        return 0.0
    sample_rate, pcm = read_wav_mono_pcm16(wav_bytes)
    if sample_rate <= 0:
        return 0.0
    return (len(pcm) // 2) / float(sample_rate)


def _wav_format(audio_bytes: bytes) -> Optional[AudioFormat]:
    try:
        with wave.open(io.BytesIO(audio_bytes), "rb") as wf:
            if wf.getsampwidth() != 2:
                return None
            return AudioFormat("LINEAR16", int(wf.getframerate()))
    except (wave.Error, EOFError):
        return None


def sniff_audio_format(audio_bytes: bytes) -> Optional[AudioFormat]:
    """
    Guess the recognition encoding from the container's magic bytes.

    Opus in WebM/Ogg is always decoded at 48kHz by browsers' MediaRecorder, so
    those report 48000. Returns None when the container is not recognized.
    """
    if not audio_bytes:
        return None

    head = audio_bytes[:16]
    if head.startswith(b"RIFF") and audio_bytes[8:12] == b"WAVE":
        return _wav_format(audio_bytes)
    if head.startswith(WEBM_MAGIC):
        return AudioFormat("WEBM_OPUS", 48000)
    if head.startswith(OGG_MAGIC):
        return AudioFormat("OGG_OPUS", 48000)
    if head.startswith(FLAC_MAGIC):
        return AudioFormat("FLAC", None)
    if head.startswith(AMR_WB_MAGIC):
        return AudioFormat("AMR_WB", 16000)
    if head.startswith(AMR_MAGIC):
        return AudioFormat("AMR", 8000)
    return None
