import logging
import random
import re
import shutil
from pathlib import Path

from .analysis import (
    ENERGY_CHUNK,
    START_OFFSET,
    average_energy,
    detect_peaks,
    estimate_tempo,
    quantize_peaks,
)
from .audio import encode_song, load_track, mix_channels
from .errors import ConfigError, InsufficientDataError
from .formats import add_difficulty, beatmap_filename, create_info, level_document, write_json
from .generator import ChartGenerator, seed_for
from .models import Chart, Track
from .profiles import DIFFICULTIES, PRESETS, get_profile, load_profiles

logger = logging.getLogger(__name__)

UNSAFE_CHARS = re.compile(r'[/\\?%*:|"<>]')

DEFAULT_CFG = {
    "tempo_window": 0.5,
    "energy_chunk": ENERGY_CHUNK,
    "start_offset": START_OFFSET,
    "beat_snap": True,
    "seed": None,
    "difficulties": list(DIFFICULTIES),
    "profiles": None,
    "encode_audio": True,
    "cover": None,
    "preview": None,
}


def resolve_cfg(cfg: dict | None) -> dict:
    cfg = dict(cfg or {})
    unknown = sorted(set(cfg) - set(DEFAULT_CFG))
    if unknown:
        raise ConfigError(f"Unknown config keys: {unknown}")
    resolved = {**DEFAULT_CFG, **{k: v for k, v in cfg.items() if v is not None}}
    if resolved["tempo_window"] <= 0:
        raise ConfigError(f"tempo_window must be positive, got {resolved['tempo_window']}")
    if int(resolved["energy_chunk"]) < 2:
        raise ConfigError(f"energy_chunk must be at least 2, got {resolved['energy_chunk']}")
    return resolved


def unique_directory(parent: Path, name: str) -> Path:
    base = UNSAFE_CHARS.sub("_", name) or "untitled"
    path = parent / base
    index = 0
    while path.exists():
        index += 1
        path = parent / f"{base} ({index})"
    return path


class BeatmapGenerator:
    def __init__(
        self,
        audio_path: str | Path | None = None,
        *,
        cfg: dict | None = None,
        track: Track | None = None,
    ):
        if (audio_path is None) == (track is None):
            raise ValueError("Pass exactly one of audio_path or track")

        self.audio_path = None
        if audio_path is not None:
            self.audio_path = Path(audio_path).expanduser().resolve()
            if not self.audio_path.exists():
                raise FileNotFoundError(f"Audio file not found: {self.audio_path}")

        self.cfg = resolve_cfg(cfg)
        self.track = track
        available = load_profiles(self.cfg["profiles"]) if self.cfg["profiles"] else PRESETS
        self.profiles = {name: get_profile(name, available) for name in self.cfg["difficulties"]}

        self.tempo = None
        self.seed = None
        self.charts: dict[str, Chart] = {}
        self.export_data = {}

    @classmethod
    def from_track(cls, track: Track, cfg: dict | None = None) -> "BeatmapGenerator":
        return cls(track=track, cfg=cfg)

    # ------------------------------
    # GENERATE & EXPORT
    # ------------------------------
    def generate_charts(self) -> dict[str, Chart]:
        cfg = self.cfg

        # --------------------------
        # Load audio
        # --------------------------
        if self.track is None:
            self.track = load_track(self.audio_path)
        track = self.track
        sr = track.sample_rate
        if track.n_samples == 0 or sr <= 0:
            raise InsufficientDataError("Audio is empty")

        peak_envelope = mix_channels(track.channels, "peak")
        samples = mix_channels(track.channels, "sum")
        chunk = int(cfg["energy_chunk"])
        avg_energy = average_energy(samples, chunk)

        # --------------------------
        # Tempo
        # --------------------------
        tempo_peaks = detect_peaks(peak_envelope, sr, max(1, round(sr * cfg["tempo_window"])))
        self.tempo = estimate_tempo(tempo_peaks, sr)

        base_seed = cfg["seed"]
        if base_seed is None:
            base_seed = random.SystemRandom().randrange(2**32)
        self.seed = int(base_seed)
        logger.info("%s: %.1f s, %d bpm, seed %d", track.title, track.duration_seconds, self.tempo, self.seed)

        # --------------------------
        # Per-difficulty charts
        # --------------------------
        self.charts = {}
        for name in cfg["difficulties"]:
            profile = self.profiles[name]
            tier_seed = seed_for(self.seed, name)
            peaks = detect_peaks(peak_envelope, sr, max(1, round(sr * profile.buffer_size)))
            beats = quantize_peaks(
                peaks,
                self.tempo,
                samples,
                profile,
                start_offset=cfg["start_offset"],
                snap=cfg["beat_snap"],
                chunk_size=chunk,
            )
            generator = ChartGenerator(profile, random.Random(tier_seed), average_energy=avg_energy, seed=tier_seed)
            self.charts[name] = generator.generate(beats)

        # --------------------------
        # Documents
        # --------------------------
        info = create_info(track.title, track.artist, self.tempo, cover_filename="")
        info_rng = random.Random(seed_for(self.seed, "info"))
        levels = {}
        for name, chart in self.charts.items():
            profile = self.profiles[name]
            add_difficulty(info, profile, info_rng)
            levels[beatmap_filename(profile)] = level_document(chart, self.tempo)

        self.export_data = {"info": info, "levels": levels}
        return self.charts

    def export(self, output_dir: str | Path | None = None) -> Path:
        if not self.export_data:
            raise ValueError("No charts generated yet. Call generate_charts() first.")
        if output_dir is None:
            if self.audio_path is None:
                raise ValueError("output_dir is required for in-memory tracks")
            output_dir = unique_directory(self.audio_path.parent, self.track.title)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        info = dict(self.export_data["info"])
        cover = self.cfg["cover"]
        if cover:
            cover = Path(cover).expanduser()
            if not cover.exists():
                raise FileNotFoundError(f"Cover image not found: {cover}")
            cover_name = f"cover{cover.suffix.lower()}"
            shutil.copyfile(cover, output_dir / cover_name)
            info["_coverImageFilename"] = cover_name

        # Song first, info.dat last
        if self.cfg["encode_audio"]:
            encode_song(self.track, output_dir / info["_songFilename"])

        for filename, level in self.export_data["levels"].items():
            write_json(level, output_dir / filename)
        write_json(info, output_dir / "info.dat", indent=2)

        if self.cfg["preview"]:
            self.preview(self.cfg["preview"])

        print(f"Exported charts to {output_dir}")
        return output_dir

    def preview(self, output_file: str | Path) -> Path:
        from .preview import render_preview

        if not self.charts:
            raise ValueError("No charts generated yet. Call generate_charts() first.")
        return render_preview(list(self.charts.values()), output_file, title=self.track.title)
