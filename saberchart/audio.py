import logging
from pathlib import Path

import numpy as np
import soundfile as sf
from aubio import source

from .errors import AudioDecodeError, AudioEncodeError, InsufficientDataError
from .models import Track

logger = logging.getLogger(__name__)

HOP_SIZE = 512
SUPPORTED_EXTENSIONS = (".wav", ".flac", ".ogg", ".aiff", ".aif", ".mp3", ".m4a")


# ------------------------------
# DECODE
# ------------------------------
def _read_soundfile(path: Path) -> tuple[np.ndarray, int, dict]:
    with sf.SoundFile(str(path)) as f:
        metadata = f.copy_metadata()
        audio = f.read(dtype="float32", always_2d=True)
        return audio.T, f.samplerate, metadata


def _read_aubio(path: Path) -> tuple[np.ndarray, int]:
    src = source(str(path), 0, HOP_SIZE)
    sr = src.samplerate
    blocks = []
    try:
        while True:
            samples, read = src.do_multi()
            blocks.append(np.array(samples[:, :read], dtype=np.float32))
            if read < HOP_SIZE:
                break
    finally:
        src.close()
    return np.concatenate(blocks, axis=1), sr


def load_track(audio_path: str | Path) -> Track:
    """Decode an audio file into a :class:`Track` with title and artist tags."""
    path = Path(audio_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    metadata = {}
    try:
        channels, sr, metadata = _read_soundfile(path)
    except RuntimeError as sf_exc:
        logger.debug("soundfile cannot read %s (%s), trying aubio", path.name, sf_exc)
        try:
            channels, sr = _read_aubio(path)
        except RuntimeError as exc:
            raise AudioDecodeError(f"Could not decode {path}: {exc}") from exc

    if channels.size == 0:
        raise InsufficientDataError(f"No samples decoded from {path}")

    title = (metadata.get("title") or "").strip() or path.stem
    artist = (metadata.get("artist") or "").strip() or "Unknown"
    track = Track(channels=channels, sample_rate=int(sr), title=title, artist=artist)
    logger.info("Loaded %s: %d ch, %d Hz, %.1f s", path.name, channels.shape[0], sr, track.duration_seconds)
    return track


# ------------------------------
# MIX
# ------------------------------
def mix_channels(channels: np.ndarray, mode: str = "sum") -> np.ndarray:
    """Fold PCM of shape (n_channels, n_samples) into one envelope.

    ``sum`` adds the channels, ``peak`` keeps the largest magnitude per sample.
    """
    channels = np.asarray(channels, dtype=np.float64)
    if channels.ndim == 1:
        channels = channels[np.newaxis, :]
    if channels.ndim != 2:
        raise ValueError(f"Expected 1-D or 2-D PCM, got shape {channels.shape}")

    if mode == "sum":
        envelope = channels.sum(axis=0)
    elif mode == "peak":
        envelope = np.abs(channels).max(axis=0) if channels.shape[0] else np.zeros(0)
    else:
        raise ValueError(f"Unknown mix mode: {mode!r}")

    envelope.setflags(write=False)
    return envelope


# ------------------------------
# ENCODE
# ------------------------------
def encode_song(track: Track, output_file: str | Path) -> Path:
    """Write the track as Ogg/Vorbis under any file name (usually ``song.egg``)."""
    output_file = Path(output_file)
    data = np.clip(np.asarray(track.channels, dtype=np.float32).T, -1.0, 1.0)
    try:
        sf.write(str(output_file), data, track.sample_rate, format="OGG", subtype="VORBIS")
    except RuntimeError as exc:
        raise AudioEncodeError(f"Could not encode {output_file}: {exc}") from exc
    return output_file
