"""
coarsen.py — Merge the superpixels of an image into coherent regions
Usage:
    python3 coarsen.py --image photo.jpg
    python3 coarsen.py --image photo.jpg --labels tags.png --config edges
    python3 coarsen.py --image photo.jpg --strategy greedy_largest --plot

Labels are either a BGR tag image (24-bit label per pixel) or, when not
given, a SLIC over-segmentation of the input.
"""

import argparse
import json
import logging
import cv2

from superpixel_merge import (
    MergePipeline, MergeRecorder, OversegmentConfig, PassConfig, PipelineConfig,
    SuperpixelExtractor, TraversalConfig, STRATEGIES, load_pipeline_config,
    plot_region_graph,
)

# ── Args ──────────────────────────────────────────────────────────────────────

parser = argparse.ArgumentParser()
parser.add_argument("--image",      required=True,      help="Path to input image")
parser.add_argument("--labels",     default=None,       help="BGR tag image; SLIC if omitted")
parser.add_argument("--config",     default="pipeline", help="Shipped config name or a .yaml path")
parser.add_argument("--strategy",   default=None,       choices=sorted(STRATEGIES),
                    help="Run this single pass instead of the configured passes")
parser.add_argument("--preset",     default=None,       help="Back-projection preset, e.g. HIGH_FIVE8")
parser.add_argument("--segments",   type=int, default=400, help="SLIC superpixel count")
parser.add_argument("--output",     default="output",   help="Output filename prefix")
parser.add_argument("--plot",       action="store_true", help="Also save a region graph plot")
parser.add_argument("--log-level",  default="INFO")
args = parser.parse_args()

logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

cfg = load_pipeline_config(args.config)
if args.strategy:
    cfg = PipelineConfig(
        colorspace=cfg.colorspace,
        num_bins=cfg.num_bins,
        connectivity=cfg.connectivity,
        passes=[PassConfig(args.strategy, TraversalConfig(preset=args.preset))],
    )
elif args.preset:
    for p in cfg.passes:
        p.options.preset = args.preset

image = cv2.imread(args.image)
if image is None:
    raise FileNotFoundError(f"Could not read image: {args.image}")

labels = None
if args.labels:
    labels = cv2.imread(args.labels, cv2.IMREAD_COLOR)
    if labels is None:
        raise FileNotFoundError(f"Could not read label image: {args.labels}")

print(f"[coarsen] passes: {[p.strategy for p in cfg.passes]}")
recorder  = MergeRecorder()
extractor = SuperpixelExtractor(OversegmentConfig(n_segments=args.segments))
pipeline  = MergePipeline(cfg, observer=recorder, extractor=extractor)
result    = pipeline.run(image, labels)

print(f"[coarsen] {result.n_initial} -> {result.n_regions} regions ({result.n_merges} merges)")
for name, n_merges, n_left in recorder.passes:
    print(f"  {name:<16} {n_merges:>6} merges  {n_left:>6} regions")

result.save(args.output)
with open(f"{args.output}_summary.json", "w") as f:
    json.dump(result.as_dict(), f, indent=2)

if args.plot:
    plot_region_graph(result.graph, image, save_path=f"{args.output}_graph.png")
