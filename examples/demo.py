from saberchart import BeatmapGenerator

AUDIO_FILE_PATH = "path/to/your/audiofile.wav"
PROFILES = None # profiles.json with per-difficulty overrides, e.g. {"hard": {"min_volume": 0.2}}
SEED = 1234 # fixed seed for reproducible charts, None for a fresh one

generator = BeatmapGenerator(AUDIO_FILE_PATH, cfg={"profiles": PROFILES, "seed": SEED})
charts = generator.generate_charts()

for name, chart in charts.items():
    print(name, len(chart.notes), "notes", len(chart.sliders), "sliders")

# Write info.dat, level files and song.egg
out_dir = generator.export("demo_map")

# Optional preview
generator.preview(out_dir / "preview.png")
